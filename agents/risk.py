"""
Risk and reorder calculations.

Safety stock, reorder point, expiry warnings, next restock date and the
ordinal risk level for a drug profile, plus the error metrics used to decide
when the forecaster should be retrained.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date

import numpy as np

from models.enums import RiskLevel
from models.forecast import (
    ExpiryWarning,
    ForecastResult,
    HistoricalDemandPoint,
    PredictionPoint,
)
from models.inventory import DrugProfile, InventoryBatch
from utils.drug_grouping import batches_for_profile

EXPIRY_WARNING_DAYS = 90
CRITICAL_EXPIRY_DAYS = 30
HIGH_EXPIRY_DAYS = 60
HIGH_DEPLETION_DAYS = 7
MEDIUM_DEPLETION_DAYS = 14
FULL_CONFIDENCE_HISTORY_DAYS = 30
FALLBACK_CONFIDENCE = 30.0
DEFAULT_DAILY_DEMAND = 1.0

# Points per risk level for the composite risk score
RISK_LEVEL_POINTS = {
    RiskLevel.CRITICAL: 40,
    RiskLevel.HIGH: 30,
    RiskLevel.MEDIUM: 20,
    RiskLevel.LOW: 10,
}


def z_score_for(service_level: float) -> float:
    return 1.65 if service_level >= 0.95 else 1.28


def calculate_safety_stock(
    predicted_demand: Sequence[float],
    lead_time_days: int = 7,
    service_level: float = 0.95,
    multiplier: float = 1.5,
) -> int:
    """Safety stock = ceil(z * sigma * sqrt(lead time) * multiplier), sigma over the predictions."""
    if len(predicted_demand) == 0:
        return 0
    std_dev = float(np.std(np.asarray(predicted_demand, dtype=float)))
    safety_stock = z_score_for(service_level) * std_dev * math.sqrt(lead_time_days) * multiplier
    return math.ceil(safety_stock)


def calculate_reorder_point(
    predicted_demand: Sequence[float], safety_stock: int, lead_time_days: int = 7
) -> int:
    """
    Average demand over the first lead-time days, times lead time, plus safety stock.

    A horizon shorter than the lead time is averaged over the days it has,
    not divided by the full lead time.
    """
    window = list(predicted_demand[:lead_time_days])
    average = sum(window) / len(window) if window else 0.0
    return math.ceil(average * lead_time_days + safety_stock)


def check_expiry_warnings(
    batches: Iterable[InventoryBatch], profile: DrugProfile, as_of: date
) -> list[ExpiryWarning]:
    """Batches of `profile` expiring within 90 days (exclusive of today), soonest first."""
    warnings = []
    for batch in batches_for_profile(batches, profile):
        if batch.expiry_date is None:
            continue
        days = (batch.expiry_date - as_of).days
        if 0 < days < EXPIRY_WARNING_DAYS:
            warnings.append(
                ExpiryWarning(
                    batch_number=batch.batch_number,
                    expiry_date=batch.expiry_date,
                    quantity=batch.quantity,
                    days_until_expiry=days,
                )
            )
    return sorted(warnings, key=lambda w: w.days_until_expiry)


def find_next_restock_date(
    predictions: Sequence[PredictionPoint], reorder_point: float
) -> date | None:
    """First forecast day whose stock level is at or below the reorder point."""
    for point in predictions:
        if point.stock_level <= reorder_point:
            return point.date
    return None


def calculate_risk_level(
    current_stock: float,
    reorder_point: float,
    predictions: Sequence[PredictionPoint],
    expiry_warnings: Sequence[ExpiryWarning],
) -> RiskLevel:
    """
    Precedence, first match wins:
    - critical: stock already below the reorder point, or a batch expires within 30 days
    - high: reorder point reached within 7 days, or a batch expires within 60 days
    - medium: reorder point reached within 14 days
    - low: otherwise
    """
    if current_stock < reorder_point or any(
        w.days_until_expiry < CRITICAL_EXPIRY_DAYS for w in expiry_warnings
    ):
        return RiskLevel.CRITICAL

    def depletes_within(days: int) -> bool:
        return any(p.stock_level <= reorder_point for p in predictions[:days])

    if depletes_within(HIGH_DEPLETION_DAYS) or any(
        w.days_until_expiry < HIGH_EXPIRY_DAYS for w in expiry_warnings
    ):
        return RiskLevel.HIGH
    if depletes_within(MEDIUM_DEPLETION_DAYS):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def calculate_model_confidence(history_days: int) -> float:
    return min(100.0, history_days / FULL_CONFIDENCE_HISTORY_DAYS * 100.0)


def fallback_demand_estimate(series: Sequence[HistoricalDemandPoint]) -> float:
    """Mean daily demand of the history, or 1 unit/day for a drug with no history."""
    if not series:
        return DEFAULT_DAILY_DEMAND
    return sum(point.stock_out_volume for point in series) / len(series)


def calculate_rmse(predictions: Sequence[float], actuals: Sequence[float]) -> float:
    """Root mean squared error; 0 for empty or mismatched inputs."""
    if len(predictions) == 0 or len(predictions) != len(actuals):
        return 0.0
    errors = np.asarray(predictions, dtype=float) - np.asarray(actuals, dtype=float)
    return float(np.sqrt(np.mean(errors**2)))


def should_retrain(
    predictions: Sequence[float],
    actuals: Sequence[float],
    previous_error: float,
    threshold: float = 0.5,
) -> bool:
    """True when the RMSE rose by more than `threshold` over `previous_error`."""
    return calculate_rmse(predictions, actuals) - previous_error > threshold


def calculate_risk_score(
    forecast: ForecastResult, earliest_expiry: date | None, as_of: date
) -> int:
    """
    Composite 10-100 score used to rank drugs for attention: risk level
    (10-40) + earliest batch expiry (0-30) + days until restock (0-30).
    """
    score = RISK_LEVEL_POINTS[forecast.risk_level]

    if earliest_expiry is not None:
        days_to_expiry = (earliest_expiry - as_of).days
        if days_to_expiry <= 30:
            score += 30
        elif days_to_expiry <= 60:
            score += 20
        elif days_to_expiry <= 90:
            score += 10

    if forecast.next_restock_date is not None:
        days_to_restock = (forecast.next_restock_date - as_of).days
        if days_to_restock <= 7:
            score += 30
        elif days_to_restock <= 14:
            score += 20
        elif days_to_restock <= 21:
            score += 10

    return score


def days_until_better_accuracy(confidence: float) -> int | None:
    """Rough number of days of extra history before the forecast becomes reliable."""
    if confidence >= 80:
        return None
    if confidence >= 50:
        return 7
    return 14
