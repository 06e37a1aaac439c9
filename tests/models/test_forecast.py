from datetime import date

import numpy as np
import pandas as pd

from models.enums import ActivityRegime, RiskLevel
from models.forecast import ForecastResult, MarkovState, PredictionPoint, ReservoirModel


def _model() -> ReservoirModel:
    return ReservoirModel(
        weights=np.eye(3) * 0.5,
        input_weights=np.ones((3, 2)),
        state=np.array([0.1, 0.2, 0.3]),
        readout_weights=np.array([1.0, -1.0, 0.5]),
        mean=4.0,
        std=2.0,
        last_error=0.25,
        training_samples=9,
        seed=7,
    )


def test_reservoir_model_dict_preserves_parameters():
    model = _model()
    restored = ReservoirModel.from_dict(model.to_dict())
    assert restored.size == 3
    np.testing.assert_array_equal(restored.weights, model.weights)
    np.testing.assert_array_equal(restored.input_weights, model.input_weights)
    np.testing.assert_array_equal(restored.readout_weights, model.readout_weights)
    assert restored.mean == 4.0
    assert restored.std == 2.0
    assert restored.training_samples == 9
    assert restored.seed == 7


def test_reservoir_model_from_dict_defaults_missing_state():
    restored = ReservoirModel.from_dict({"weights": np.zeros((4, 4)).tolist(), "input_weights": [[0, 0]] * 4})
    assert restored.state.shape == (4,)
    assert restored.readout_weights.shape == (4,)
    assert restored.std == 1.0


def test_markov_state_defaults():
    state = MarkovState()
    assert state.current is ActivityRegime.LOW
    assert state.transition_counts == {}
    assert state.consecutive_days == 0


def test_forecast_result_to_dataframe():
    predictions = [
        PredictionPoint(date(2024, 3, 1), 2.0, 1.5, 2.5, 18.0),
        PredictionPoint(date(2024, 3, 2), 3.0, 2.5, 3.5, 15.0),
    ]
    result = ForecastResult(
        drug_id="INV-1",
        generic_name="Paracetamol",
        brand_name="Biogesic",
        strength="500mg",
        current_stock=20,
        predictions=predictions,
        safety_stock=2,
        reorder_point=20,
        expiry_warnings=[],
        next_restock_date=date(2024, 3, 1),
        risk_level=RiskLevel.HIGH,
        model_confidence=50.0,
        markov_state=MarkovState(),
    )
    df = result.to_dataframe()
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ["predicted_demand", "confidence_lower", "confidence_upper", "stock_level"]
    assert df.loc[date(2024, 3, 2), "stock_level"] == 15.0
    assert len(df) == 2
