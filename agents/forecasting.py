"""
Inventory forecast agent for clinic-pharmacy-intelligence.

Runs the full pipeline for a drug profile: daily demand aggregation, Markov
regime detection, reservoir forecast (or the low-data fallback), and the
reorder and risk assessment. Every call is a pure function of its inputs;
reservoir models and Markov states are returned to the caller, who decides
whether to thread them into the next call.
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, timedelta

from config.config import ForecastConfig
from models.enums import RiskLevel
from models.forecast import (
    AtRiskDrug,
    ExpiryWarning,
    ForecastResult,
    ForecastSummary,
    HistoricalDemandPoint,
    MarkovState,
    PredictionPoint,
    ReservoirModel,
)
from models.inventory import DrugProfile, InventoryBatch, StockMovement
from utils.demand_history import build_daily_series
from utils.drug_grouping import batches_for_profile, expiry_sort_key, group_inventory_by_drug
from utils.logger import get_logger

from .regime import detect_markov_state
from .reservoir import ReservoirForecaster
from .risk import (
    FALLBACK_CONFIDENCE,
    calculate_model_confidence,
    calculate_reorder_point,
    calculate_risk_level,
    calculate_risk_score,
    calculate_safety_stock,
    check_expiry_warnings,
    days_until_better_accuracy,
    fallback_demand_estimate,
    find_next_restock_date,
    should_retrain,
)

FALLBACK_BAND_FRACTION = 0.5
DEFAULT_AT_RISK_LIMIT = 6


class InventoryForecastAgent:
    """
    Forecasts stock depletion per drug profile and flags reorder and expiry risk.

    Profiles with fewer than `config.min_history_days` days of outbound
    history get a flat mean-demand forecast with fixed low confidence instead
    of the reservoir forecast.
    """

    def __init__(self, config: ForecastConfig | None = None):
        self.config = config or ForecastConfig()
        self.logger = get_logger(self.__class__.__name__)
        self.forecaster = ReservoirForecaster(self.config)
        self.logger.info(
            f"InventoryForecastAgent initialized: reservoir={self.config.reservoir_size}, "
            f"horizon={self.config.forecast_horizon}d, seed={self.config.seed}"
        )

    def generate_forecast(
        self,
        batches: Iterable[InventoryBatch],
        movements: Iterable[StockMovement],
        profile: DrugProfile,
        stored_model: ReservoirModel | None = None,
        previous_state: MarkovState | None = None,
        as_of: date | None = None,
    ) -> ForecastResult | None:
        """
        Forecast demand and stock for `profile`.

        Args:
            batches: Current inventory snapshot (any profiles).
            movements: Stock movement history (any profiles).
            profile: Drug profile to forecast.
            stored_model: Previously trained reservoir whose fixed weights are reused.
            previous_state: Markov state from an earlier call, continues transition counts.
            as_of: First forecast day and reference for expiry; defaults to today.

        Returns:
            The ForecastResult, or None when no batch matches the profile.
        """
        matching = batches_for_profile(batches, profile)
        if not matching:
            self.logger.info(f"No batches match {profile}; skipping forecast")
            return None

        as_of = as_of or date.today()
        current_stock = sum(batch.quantity for batch in matching)
        series = build_daily_series(movements, matching, profile)
        markov_state = detect_markov_state(series, previous_state)
        expiry_warnings = check_expiry_warnings(matching, profile, as_of)

        if len(series) < self.config.min_history_days:
            self.logger.info(
                f"{profile}: {len(series)} days of history, using fallback forecast"
            )
            return self._fallback_forecast(
                matching, current_stock, series, markov_state, expiry_warnings, as_of
            )

        model = self.forecaster.fit([point.stock_out_volume for point in series], stored_model)
        predictions = self.forecaster.rollout(model, len(series), current_stock, as_of)
        demand = [point.predicted_demand for point in predictions]
        safety_stock = calculate_safety_stock(
            demand,
            self.config.lead_time_days,
            self.config.service_level,
            self.config.safety_stock_multiplier,
        )
        reorder_point = calculate_reorder_point(demand, safety_stock, self.config.lead_time_days)

        result = self._build_result(
            matching[0],
            current_stock,
            predictions,
            safety_stock,
            reorder_point,
            expiry_warnings,
            calculate_model_confidence(len(series)),
            markov_state,
            is_fallback=False,
            model=model,
        )
        self.logger.info(
            f"{profile}: risk={result.risk_level.value}, reorder_point={reorder_point}, "
            f"confidence={result.model_confidence:.0f}%, regime={markov_state.current.value}"
        )
        return result

    def needs_retraining(
        self,
        model: ReservoirModel,
        predictions: Sequence[float],
        actuals: Sequence[float],
    ) -> bool:
        """
        True when the error on recently observed demand exceeds the model's
        training error by more than `config.retrain_threshold`.
        """
        retrain = should_retrain(
            predictions, actuals, model.last_error, self.config.retrain_threshold
        )
        if retrain:
            self.logger.info(
                f"Reservoir error rose above {model.last_error:.3f} + {self.config.retrain_threshold}; retraining advised"
            )
        return retrain

    def _fallback_forecast(
        self,
        matching: Sequence[InventoryBatch],
        current_stock: int,
        series: Sequence[HistoricalDemandPoint],
        markov_state: MarkovState,
        expiry_warnings: list[ExpiryWarning],
        as_of: date,
    ) -> ForecastResult:
        average = fallback_demand_estimate(series)
        stock = float(current_stock)
        predictions = []
        for day in range(self.config.forecast_horizon):
            stock = max(0.0, stock - average)
            predictions.append(
                PredictionPoint(
                    date=as_of + timedelta(days=day),
                    predicted_demand=average,
                    confidence_lower=average * (1 - FALLBACK_BAND_FRACTION),
                    confidence_upper=average * (1 + FALLBACK_BAND_FRACTION),
                    stock_level=stock,
                )
            )

        lead_time = self.config.lead_time_days
        safety_stock = math.ceil(average * lead_time * self.config.safety_stock_multiplier)
        reorder_point = math.ceil(average * lead_time + safety_stock)
        return self._build_result(
            matching[0],
            current_stock,
            predictions,
            safety_stock,
            reorder_point,
            expiry_warnings,
            FALLBACK_CONFIDENCE,
            markov_state,
            is_fallback=True,
            model=None,
        )

    def _build_result(
        self,
        representative: InventoryBatch,
        current_stock: int,
        predictions: list[PredictionPoint],
        safety_stock: int,
        reorder_point: int,
        expiry_warnings: list[ExpiryWarning],
        model_confidence: float,
        markov_state: MarkovState,
        is_fallback: bool,
        model: ReservoirModel | None,
    ) -> ForecastResult:
        return ForecastResult(
            drug_id=representative.id,
            generic_name=representative.generic_name,
            brand_name=representative.brand_name,
            strength=representative.strength,
            current_stock=current_stock,
            predictions=predictions,
            safety_stock=safety_stock,
            reorder_point=reorder_point,
            expiry_warnings=expiry_warnings,
            next_restock_date=find_next_restock_date(predictions, reorder_point),
            risk_level=calculate_risk_level(
                current_stock, reorder_point, predictions, expiry_warnings
            ),
            model_confidence=model_confidence,
            markov_state=markov_state,
            is_fallback=is_fallback,
            model=model,
        )

    def forecast_all(
        self,
        batches: Iterable[InventoryBatch],
        movements: Iterable[StockMovement],
        stored_models: Mapping[str, ReservoirModel] | None = None,
        previous_states: Mapping[str, MarkovState] | None = None,
        as_of: date | None = None,
    ) -> list[ForecastResult]:
        """
        One forecast per drug profile in the inventory, in grouping order.

        `stored_models` and `previous_states` are keyed by `DrugProfile.key`.
        """
        batches = list(batches)
        movements = list(movements)
        stored_models = stored_models or {}
        previous_states = previous_states or {}
        as_of = as_of or date.today()

        forecasts = []
        for group in group_inventory_by_drug(batches):
            key = group.profile.key
            forecast = self.generate_forecast(
                batches,
                movements,
                group.profile,
                stored_model=stored_models.get(key),
                previous_state=previous_states.get(key),
                as_of=as_of,
            )
            if forecast is not None:
                forecasts.append(forecast)
        return forecasts

    def rank_at_risk(
        self,
        forecasts: Iterable[ForecastResult],
        batches: Iterable[InventoryBatch],
        as_of: date | None = None,
        limit: int = DEFAULT_AT_RISK_LIMIT,
    ) -> list[AtRiskDrug]:
        """Highest risk scores first, at most `limit` entries."""
        batches = list(batches)
        as_of = as_of or date.today()
        ranked = []
        for forecast in forecasts:
            profile = DrugProfile(forecast.generic_name, forecast.brand_name, forecast.strength)
            profile_batches = batches_for_profile(batches, profile)
            most_critical = min(
                profile_batches,
                key=lambda batch: expiry_sort_key(batch.expiry_date),
                default=None,
            )
            earliest_expiry = most_critical.expiry_date if most_critical else None
            score = calculate_risk_score(forecast, earliest_expiry, as_of)
            ranked.append(AtRiskDrug(forecast, score, most_critical))
        ranked.sort(
            key=lambda entry: (entry.risk_score, entry.forecast.risk_level.rank), reverse=True
        )
        return ranked[:limit]

    def summarize(self, forecasts: Sequence[ForecastResult]) -> ForecastSummary:
        if forecasts:
            average = sum(f.model_confidence for f in forecasts) / len(forecasts)
        else:
            average = 0.0
        critical = sum(
            1 for f in forecasts if f.risk_level in (RiskLevel.CRITICAL, RiskLevel.HIGH)
        )
        return ForecastSummary(
            monitored=len(forecasts),
            average_confidence=average,
            critical_count=critical,
            days_until_better_accuracy=days_until_better_accuracy(average),
        )


def generate_forecast(
    batches: Iterable[InventoryBatch],
    movements: Iterable[StockMovement],
    profile: DrugProfile,
    config: ForecastConfig | None = None,
    stored_model: ReservoirModel | None = None,
    previous_state: MarkovState | None = None,
    as_of: date | None = None,
) -> ForecastResult | None:
    """Convenience wrapper around InventoryForecastAgent.generate_forecast."""
    agent = InventoryForecastAgent(config)
    return agent.generate_forecast(
        batches,
        movements,
        profile,
        stored_model=stored_model,
        previous_state=previous_state,
        as_of=as_of,
    )
