import sys
from pathlib import Path

# Ensure project root is on sys.path to allow `import agents`, `import utils`, etc.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest  # noqa: E402

from models.inventory import InventoryBatch, StockMovement  # noqa: E402


@pytest.fixture
def make_batch():
    """Factory for InventoryBatch records of one default drug profile."""

    def _make(id, quantity, expiry_date=None, generic_name="Amoxicillin", brand_name="Amoxil", strength="500mg", **kwargs):
        return InventoryBatch(
            id=id,
            generic_name=generic_name,
            brand_name=brand_name,
            strength=strength,
            batch_number=kwargs.pop("batch_number", f"B-{id}"),
            quantity=quantity,
            expiry_date=expiry_date,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_out():
    """Factory for OUT movements."""

    def _make(item_id, quantity, day):
        return StockMovement(inventory_item_id=item_id, type="OUT", quantity=quantity, date=day)

    return _make
