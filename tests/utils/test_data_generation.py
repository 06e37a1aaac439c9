import pytest

from models.enums import MovementType
from models.inventory import InventoryBatch, StockMovement
from utils.data_generation import DEFAULT_DRUG_CATALOG, generate_synthetic_clinic_data

TEST_START_DATE = "2024-01-01"
TEST_NUM_DAYS = 30
TEST_SEED = 123


@pytest.fixture(scope="module")  # Generate data once for the module
def generated_data():
    """Fixture to generate data once for multiple tests."""
    return generate_synthetic_clinic_data(
        start_date_str=TEST_START_DATE, num_days=TEST_NUM_DAYS, batches_per_drug=2, seed=TEST_SEED
    )


def test_output_types(generated_data):
    batches, movements = generated_data
    assert all(isinstance(b, InventoryBatch) for b in batches)
    assert all(isinstance(m, StockMovement) for m in movements)


def test_batch_count(generated_data):
    batches, _ = generated_data
    assert len(batches) == len(DEFAULT_DRUG_CATALOG) * 2
    assert len({b.id for b in batches}) == len(batches)


def test_every_batch_has_a_receipt(generated_data):
    batches, movements = generated_data
    receipts = {m.inventory_item_id for m in movements if m.type == MovementType.IN}
    assert receipts == {b.id for b in batches}


def test_outbound_movements_within_range(generated_data):
    batches, movements = generated_data
    batch_ids = {b.id for b in batches}
    outs = [m for m in movements if m.type == MovementType.OUT]
    assert outs
    for m in outs:
        assert m.inventory_item_id in batch_ids
        assert m.quantity > 0
        assert str(m.date) >= TEST_START_DATE
        assert str(m.date) <= "2024-01-30"


def test_zero_demand_drug_has_no_outbound_history(generated_data):
    batches, movements = generated_data
    cetirizine_ids = {b.id for b in batches if b.generic_name == "Cetirizine"}
    assert cetirizine_ids
    assert not any(m.type == MovementType.OUT and m.inventory_item_id in cetirizine_ids for m in movements)


def test_reproducibility():
    first = generate_synthetic_clinic_data(num_days=10, seed=7)
    second = generate_synthetic_clinic_data(num_days=10, seed=7)
    assert first == second
