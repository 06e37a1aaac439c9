"""
Data models for demand forecasting results.
Includes the daily demand series, Markov regime state, reservoir model and
the ForecastResult returned to callers.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any

import numpy as np
import pandas as pd

from .enums import ActivityRegime, RiskLevel
from .inventory import InventoryBatch


@dataclass(frozen=True)
class HistoricalDemandPoint:
    """Outbound volume of one drug profile on one calendar day."""

    date: date
    drug_id: str  # Representative batch id
    generic_name: str
    stock_out_volume: float
    remaining_shelf_life: int  # Days from `date` to the reference expiry, floored at 0
    expiry_date: date | None = None


@dataclass(frozen=True)
class MarkovState:
    """Activity regime of the trailing week plus transition bookkeeping."""

    current: ActivityRegime = ActivityRegime.LOW
    transition_counts: dict[str, int] = field(default_factory=dict)
    consecutive_days: int = 0


@dataclass
class ReservoirModel:
    """
    Echo State Network parameters.

    `weights` and `input_weights` are fixed after initialization; only
    `readout_weights` is learned. `mean` and `std` are the normalization
    parameters of the series the readout was trained on.
    """

    weights: np.ndarray  # (N, N) sparse recurrent matrix
    input_weights: np.ndarray  # (N, n_inputs) stored random input projection
    state: np.ndarray  # (N,)
    readout_weights: np.ndarray  # (N,)
    mean: float = 0.0
    std: float = 1.0
    last_error: float = 0.0
    training_samples: int = 0
    seed: int | None = None

    @property
    def size(self) -> int:
        return int(self.weights.shape[0])

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view of the model, suitable for external persistence."""
        return {
            "weights": self.weights.tolist(),
            "input_weights": self.input_weights.tolist(),
            "state": self.state.tolist(),
            "readout_weights": self.readout_weights.tolist(),
            "mean": float(self.mean),
            "std": float(self.std),
            "last_error": float(self.last_error),
            "training_samples": int(self.training_samples),
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReservoirModel":
        weights = np.asarray(data["weights"], dtype=float)
        size = weights.shape[0]
        return cls(
            weights=weights,
            input_weights=np.asarray(data["input_weights"], dtype=float),
            state=np.asarray(data.get("state", np.zeros(size)), dtype=float),
            readout_weights=np.asarray(data.get("readout_weights", np.zeros(size)), dtype=float),
            mean=float(data.get("mean", 0.0)),
            std=float(data.get("std", 1.0)),
            last_error=float(data.get("last_error", 0.0)),
            training_samples=int(data.get("training_samples", 0)),
            seed=data.get("seed"),
        )


@dataclass(frozen=True)
class PredictionPoint:
    date: date
    predicted_demand: float
    confidence_lower: float
    confidence_upper: float
    stock_level: float


@dataclass(frozen=True)
class ExpiryWarning:
    batch_number: str
    expiry_date: date
    quantity: int
    days_until_expiry: int


@dataclass
class ForecastResult:
    """Forecast, reorder policy and risk assessment for one drug profile."""

    drug_id: str
    generic_name: str
    brand_name: str
    strength: str
    current_stock: int
    predictions: list[PredictionPoint]
    safety_stock: int
    reorder_point: int
    expiry_warnings: list[ExpiryWarning]
    next_restock_date: date | None
    risk_level: RiskLevel
    model_confidence: float
    markov_state: MarkovState
    is_fallback: bool = False
    model: ReservoirModel | None = None

    def to_dataframe(self) -> pd.DataFrame:
        """Predictions as a DataFrame indexed by date."""
        columns = [
            "date",
            "predicted_demand",
            "confidence_lower",
            "confidence_upper",
            "stock_level",
        ]
        records = [
            {name: getattr(point, name) for name in columns} for point in self.predictions
        ]
        df = pd.DataFrame(records, columns=columns)
        return df.set_index("date")


@dataclass
class AtRiskDrug:
    forecast: ForecastResult
    risk_score: int
    most_critical_batch: InventoryBatch | None = None


@dataclass
class ForecastSummary:
    """Aggregate view over the forecasts of every monitored drug profile."""

    monitored: int
    average_confidence: float
    critical_count: int
    days_until_better_accuracy: int | None
