from datetime import date, timedelta

import pytest

from agents.forecasting import InventoryForecastAgent, generate_forecast
from config.config import ForecastConfig
from models.enums import ActivityRegime, RiskLevel
from models.inventory import DrugProfile
from utils.data_generation import generate_synthetic_clinic_data

AS_OF = date(2024, 3, 1)
AMOXIL = DrugProfile("Amoxicillin", "Amoxil", "500mg")
LOSARTAN = DrugProfile("Losartan", "Cozaar", "50mg")


@pytest.fixture
def agent():
    return InventoryForecastAgent(ForecastConfig(reservoir_size=20, seed=5))


@pytest.fixture
def history(make_out):
    """Twenty days of steady dispensing of about five units a day."""
    volumes = [5, 4, 6, 5, 5, 7, 3, 5, 6, 4, 5, 5, 6, 4, 5, 6, 5, 4, 6, 5]
    start = AS_OF - timedelta(days=len(volumes))
    return [make_out("A", v, start + timedelta(days=i)) for i, v in enumerate(volumes)]


@pytest.fixture
def batches(make_batch):
    return [
        make_batch("A", 300, "2025-01-31"),
        make_batch("L", 50, "2025-06-30", generic_name="Losartan", brand_name="Cozaar", strength="50mg"),
    ]


def test_unknown_profile_returns_none(agent, batches, history):
    assert agent.generate_forecast(batches, history, DrugProfile("Ibuprofen", "", ""), as_of=AS_OF) is None


def test_fallback_forecast_without_history(agent, batches, history):
    result = agent.generate_forecast(batches, history, LOSARTAN, as_of=AS_OF)
    assert result.is_fallback
    assert result.model is None
    assert result.model_confidence == 30.0
    assert len(result.predictions) == 30
    first = result.predictions[0]
    assert first.date == AS_OF
    assert first.predicted_demand == 1.0
    assert (first.confidence_lower, first.confidence_upper) == (0.5, 1.5)
    assert first.stock_level == 49.0
    assert result.safety_stock == 11  # ceil(1 * 7 * 1.5)
    assert result.reorder_point == 18  # ceil(1 * 7 + 11)
    assert result.next_restock_date is None
    assert result.risk_level is RiskLevel.LOW
    assert result.markov_state.current is ActivityRegime.LOW


def test_fallback_with_short_history_uses_mean(agent, make_batch, make_out):
    batches = [make_batch("A", 100, "2025-01-31")]
    movements = [make_out("A", 2, "2024-02-27"), make_out("A", 4, "2024-02-28")]
    result = agent.generate_forecast(batches, movements, AMOXIL, as_of=AS_OF)
    assert result.is_fallback
    assert result.predictions[0].predicted_demand == 3.0
    assert result.safety_stock == 32  # ceil(3 * 7 * 1.5)


def test_reservoir_forecast(agent, batches, history):
    result = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF)
    assert not result.is_fallback
    assert result.model is not None
    assert result.model.training_samples == 19
    assert result.model_confidence == pytest.approx(20 / 30 * 100)
    assert result.current_stock == 300
    assert result.drug_id == "A"
    assert len(result.predictions) == 30
    assert all(p.predicted_demand >= 0 and p.stock_level >= 0 for p in result.predictions)
    assert result.markov_state.current is ActivityRegime.NORMAL


def test_reservoir_forecast_is_deterministic(agent, batches, history):
    first = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF)
    second = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF)
    assert first.predictions == second.predictions
    assert first.reorder_point == second.reorder_point


def test_low_stock_is_critical(agent, make_batch, history):
    result = agent.generate_forecast([make_batch("A", 5, "2025-01-31")], history, AMOXIL, as_of=AS_OF)
    assert result.current_stock < result.reorder_point
    assert result.risk_level is RiskLevel.CRITICAL


def test_confidence_grows_with_history(agent, batches, history):
    shorter = agent.generate_forecast(batches, history[-10:], AMOXIL, as_of=AS_OF)
    longer = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF)
    assert shorter.model_confidence < longer.model_confidence


def test_markov_state_threads_between_calls(agent, batches, history):
    first = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF)
    second = agent.generate_forecast(
        batches, history, AMOXIL, previous_state=first.markov_state, as_of=AS_OF
    )
    assert second.markov_state.consecutive_days == 2
    assert second.markov_state.transition_counts == {"normal_activity_to_normal_activity": 1}


def test_stored_model_weights_are_reused(agent, batches, history):
    first = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF)
    other = InventoryForecastAgent(ForecastConfig(reservoir_size=20, seed=99))
    second = other.generate_forecast(batches, history, AMOXIL, stored_model=first.model, as_of=AS_OF)
    assert second.predictions == first.predictions


def test_expiry_warning_raises_risk(agent, make_batch, history):
    batches = [make_batch("A", 300, AS_OF + timedelta(days=20))]
    result = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF)
    assert len(result.expiry_warnings) == 1
    assert result.risk_level is RiskLevel.CRITICAL


def test_module_level_generate_forecast(batches, history):
    result = generate_forecast(batches, history, LOSARTAN, config=ForecastConfig(forecast_horizon=7), as_of=AS_OF)
    assert len(result.predictions) == 7


def test_forecast_all_rank_and_summary():
    batches, movements = generate_synthetic_clinic_data(num_days=40, seed=3)
    agent = InventoryForecastAgent(ForecastConfig(reservoir_size=20))
    as_of = date(2024, 2, 10)

    forecasts = agent.forecast_all(batches, movements, as_of=as_of)
    assert len(forecasts) == len({b.profile.key for b in batches})
    assert any(f.is_fallback for f in forecasts)  # Cetirizine has no dispensing history
    assert any(not f.is_fallback for f in forecasts)

    ranked = agent.rank_at_risk(forecasts, batches, as_of=as_of, limit=3)
    assert len(ranked) == 3
    scores = [entry.risk_score for entry in ranked]
    assert scores == sorted(scores, reverse=True)
    assert all(entry.most_critical_batch is not None for entry in ranked)

    summary = agent.summarize(forecasts)
    assert summary.monitored == len(forecasts)
    assert 0 < summary.average_confidence <= 100
    assert summary.critical_count == sum(
        1 for f in forecasts if f.risk_level in (RiskLevel.CRITICAL, RiskLevel.HIGH)
    )


def test_summarize_empty(agent):
    summary = agent.summarize([])
    assert summary.monitored == 0
    assert summary.average_confidence == 0.0
    assert summary.days_until_better_accuracy == 14


def test_longer_minimum_history_uses_fallback(batches, history):
    agent = InventoryForecastAgent(ForecastConfig(reservoir_size=20, min_history_days=30))
    result = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF)
    assert result.is_fallback
    assert result.model_confidence == 30.0


def test_rank_at_risk_keeps_low_risk_forecasts(agent, batches, history):
    forecasts = [agent.generate_forecast(batches, history, LOSARTAN, as_of=AS_OF)]
    assert forecasts[0].risk_level is RiskLevel.LOW
    ranked = agent.rank_at_risk(forecasts, batches, as_of=AS_OF)
    assert len(ranked) == 1
    assert ranked[0].risk_score == 10


def test_needs_retraining_follows_configured_threshold(agent, batches, history):
    model = agent.generate_forecast(batches, history, AMOXIL, as_of=AS_OF).model
    predictions = [5.0, 5.0, 5.0, 5.0]
    # RMSE of this week against the predictions is 1.0
    actuals = [6.0, 4.0, 6.0, 4.0]
    rise = 1.0 - model.last_error

    strict = InventoryForecastAgent(ForecastConfig(reservoir_size=20, retrain_threshold=rise - 0.1))
    lenient = InventoryForecastAgent(ForecastConfig(reservoir_size=20, retrain_threshold=rise + 0.1))
    assert strict.needs_retraining(model, predictions, actuals)
    assert not lenient.needs_retraining(model, predictions, actuals)
