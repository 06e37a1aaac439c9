"""
Echo State Network (reservoir computing) demand forecaster.

A fixed, sparse random reservoir with leaky tanh neurons; only the linear
readout is trained. Designed for clinics with short, sparse demand
histories, so the reservoir is small and training is a closed-form
per-neuron ridge estimate.

Randomness comes from a seeded ``numpy.random.Generator``. The input
projection is drawn once at initialization and stored on the model, so a
given seed (or a stored model) always reproduces the same forecast.
"""

from collections.abc import Sequence
from datetime import date, timedelta

import numpy as np

from config.config import ForecastConfig
from models.forecast import PredictionPoint, ReservoirModel
from utils.demand_history import denormalize, normalize_time_series
from utils.logger import get_logger

from .risk import calculate_rmse

CONNECTIVITY = 0.1  # Fraction of non-zero recurrent weights
N_INPUTS = 2  # Normalized demand and relative time position
CONFIDENCE_BAND_FRACTION = 0.2  # Band half-width as a fraction of historical std


def normalize_spectral_radius(weights: np.ndarray, target_radius: float) -> np.ndarray:
    """
    Scale `weights` so the max absolute row sum equals `target_radius`.

    The max row sum bounds the spectral radius from above, so this is an
    approximation rather than an eigenvalue computation.
    """
    if weights.size == 0:
        return weights
    max_row_sum = float(np.abs(weights).sum(axis=1).max())
    if max_row_sum == 0:
        return weights
    return weights * (target_radius / max_row_sum)


def initialize_reservoir(
    config: ForecastConfig, rng: np.random.Generator | None = None
) -> ReservoirModel:
    """Create a fresh reservoir with zero state and an untrained readout."""
    rng = rng if rng is not None else np.random.default_rng(config.seed)
    n = config.reservoir_size
    mask = rng.random((n, n)) < CONNECTIVITY
    weights = np.where(mask, rng.uniform(-1.0, 1.0, size=(n, n)), 0.0)
    weights = normalize_spectral_radius(weights, config.spectral_radius)
    input_weights = rng.uniform(-1.0, 1.0, size=(n, N_INPUTS))
    return ReservoirModel(
        weights=weights,
        input_weights=input_weights,
        state=np.zeros(n),
        readout_weights=np.zeros(n),
        seed=config.seed,
    )


def update_reservoir_state(
    state: np.ndarray,
    inputs: Sequence[float],
    model: ReservoirModel,
    config: ForecastConfig,
) -> np.ndarray:
    """
    One leaky-integrator step:
    ``(1 - a) * s + a * tanh(input_scaling * W_in @ u + W @ s)``.
    """
    u = np.asarray(inputs, dtype=float)
    if u.shape[0] != model.input_weights.shape[1]:
        raise ValueError(
            f"Expected {model.input_weights.shape[1]} input features, got {u.shape[0]}"
        )
    activation = config.input_scaling * (model.input_weights @ u) + model.weights @ state
    leak = config.leaking_rate
    return (1.0 - leak) * state + leak * np.tanh(activation)


def train_readout(
    states: Sequence[Sequence[float]] | np.ndarray,
    targets: Sequence[float] | np.ndarray,
    regularization: float = 0.01,
    size: int = 50,
) -> np.ndarray:
    """
    Per-dimension ridge estimate of the readout weights.

    Each coefficient is fitted independently:
    ``w_i = sum_t(x_t[i] * y_t) / (sum_t(x_t[i]^2) + regularization)``.
    This ignores cross-neuron covariance; it is not a full multivariate
    ridge solve and must not be replaced by one without changing outputs.

    Empty or length-mismatched inputs give all-zero weights.
    """
    if len(states) == 0 or len(states) != len(targets):
        width = len(states[0]) if len(states) else size
        return np.zeros(width)
    x = np.asarray(states, dtype=float)
    y = np.asarray(targets, dtype=float)
    numerator = x.T @ y
    denominator = (x**2).sum(axis=0) + regularization
    return np.divide(numerator, denominator, out=np.zeros_like(numerator), where=denominator != 0)


def predict_from_state(state: np.ndarray, readout_weights: np.ndarray) -> float:
    """Readout prediction, clamped at zero since demand cannot be negative."""
    k = min(len(state), len(readout_weights))
    return max(0.0, float(np.dot(state[:k], readout_weights[:k])))


class ReservoirForecaster:
    """
    Trains an Echo State Network readout on a daily demand series and rolls
    the forecast forward over the configured horizon.
    """

    def __init__(self, config: ForecastConfig | None = None):
        self.config = config or ForecastConfig()
        self.logger = get_logger(self.__class__.__name__)

    def fit(
        self, demands: Sequence[float], model: ReservoirModel | None = None
    ) -> ReservoirModel:
        """
        Train the readout on `demands`.

        Each step feeds ``[x_t, t / n]`` (normalized demand and time position)
        and targets ``x_{t+1}``. A supplied `model` contributes its fixed
        weights and input projection; it is not modified.
        """
        normalized, mean, std = normalize_time_series(demands)
        base = model if model is not None else initialize_reservoir(self.config)
        if model is not None and base.size != self.config.reservoir_size:
            self.logger.warning(
                f"Stored reservoir has {base.size} neurons, config asks for {self.config.reservoir_size}; using stored size"
            )

        n = len(normalized)
        state = np.zeros(base.size)
        states: list[np.ndarray] = []
        targets: list[float] = []
        for t in range(n - 1):
            state = update_reservoir_state(state, [normalized[t], t / n], base, self.config)
            states.append(state.copy())
            targets.append(float(normalized[t + 1]))

        readout = train_readout(
            states, targets, self.config.ridge_regularization, size=base.size
        )
        fitted = [predict_from_state(s, readout) for s in states]
        error = calculate_rmse(fitted, targets)
        self.logger.debug(
            f"Readout trained on {len(states)} samples (mean={mean:.2f}, std={std:.2f}, rmse={error:.3f})"
        )
        return ReservoirModel(
            weights=base.weights,
            input_weights=base.input_weights,
            state=state,
            readout_weights=readout,
            mean=mean,
            std=std,
            last_error=error,
            training_samples=len(states),
            seed=base.seed,
        )

    def rollout(
        self,
        model: ReservoirModel,
        history_length: int,
        current_stock: float,
        start_date: date,
    ) -> list[PredictionPoint]:
        """
        Predict one value per calendar day from `start_date`, drawing the
        running stock level down by each prediction (never below zero).
        """
        horizon = self.config.forecast_horizon
        band = model.std * CONFIDENCE_BAND_FRACTION
        state = model.state.copy()
        stock = float(current_stock)
        predictions: list[PredictionPoint] = []

        for day in range(horizon):
            normalized_pred = predict_from_state(state, model.readout_weights)
            demand = max(0.0, denormalize(normalized_pred, model.mean, model.std))
            stock = max(0.0, stock - demand)
            predictions.append(
                PredictionPoint(
                    date=start_date + timedelta(days=day),
                    predicted_demand=round(demand, 1),
                    confidence_lower=max(0.0, demand - band),
                    confidence_upper=demand + band,
                    stock_level=round(stock, 1),
                )
            )
            time_position = (history_length + day) / (history_length + horizon)
            state = update_reservoir_state(
                state, [normalized_pred, time_position], model, self.config
            )
        return predictions
