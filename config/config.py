"""
Configuration classes for clinic-pharmacy-intelligence.
Defines forecasting hyperparameters and reorder policy in a type-safe, immutable way.
"""

import os
from dataclasses import dataclass, fields

from utils.env import load_project_dotenv


# Fewest days of history the reservoir path may run on
MIN_HISTORY_DAYS_FLOOR = 3


@dataclass(frozen=True)
class ForecastConfig:
    reservoir_size: int = 50  # Small reservoir for low-transaction clinics
    spectral_radius: float = 0.95
    input_scaling: float = 0.3
    leaking_rate: float = 0.3
    safety_stock_multiplier: float = 1.5
    forecast_horizon: int = 30  # days
    retrain_threshold: float = 0.5  # RMSE increase that triggers retraining
    ridge_regularization: float = 0.01
    lead_time_days: int = 7
    service_level: float = 0.95
    min_history_days: int = 3  # Below this the fallback heuristic is used
    seed: int | None = 42

    def __post_init__(self):
        if self.reservoir_size < 1:
            raise ValueError(f"reservoir_size must be positive, got {self.reservoir_size}")
        if self.forecast_horizon < 0:
            raise ValueError(f"forecast_horizon must be >= 0, got {self.forecast_horizon}")
        if not 0.0 < self.leaking_rate <= 1.0:
            raise ValueError(f"leaking_rate must be in (0, 1], got {self.leaking_rate}")
        if self.spectral_radius <= 0:
            raise ValueError(f"spectral_radius must be positive, got {self.spectral_radius}")
        if self.ridge_regularization < 0:
            raise ValueError("ridge_regularization must be >= 0")
        if self.lead_time_days < 0:
            raise ValueError("lead_time_days must be >= 0")
        if not 0.0 < self.service_level < 1.0:
            raise ValueError(f"service_level must be in (0, 1), got {self.service_level}")
        if self.min_history_days < MIN_HISTORY_DAYS_FLOOR:
            raise ValueError(
                f"min_history_days must be >= {MIN_HISTORY_DAYS_FLOOR}, got {self.min_history_days}"
            )


ENV_PREFIX = "FORECAST_"


def load_forecast_config(**overrides) -> ForecastConfig:
    """
    Build a ForecastConfig from ``FORECAST_*`` environment variables.

    The project-level ``.env`` is loaded first (existing variables win). Keyword
    overrides take precedence over the environment, e.g.
    ``FORECAST_RESERVOIR_SIZE=80`` sets ``reservoir_size``.
    """
    load_project_dotenv()
    values = {}
    for f in fields(ForecastConfig):
        raw = os.getenv(ENV_PREFIX + f.name.upper())
        if raw is None or raw == "":
            continue
        if f.name == "seed":
            values[f.name] = None if raw.lower() == "none" else int(raw)
        elif f.type is int:
            values[f.name] = int(raw)
        else:
            values[f.name] = float(raw)
    values.update(overrides)
    return ForecastConfig(**values)


# Example usage:
# config = ForecastConfig(forecast_horizon=14)
# env_config = load_forecast_config(seed=7)
