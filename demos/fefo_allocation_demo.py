"""
Demonstration of First-Expiry-First-Out dispensing.
"""

import logging

from agents.allocation import FEFOAllocator, InsufficientStockError
from models.inventory import DrugProfile, InventoryBatch
from utils.drug_grouping import group_inventory_by_drug

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def demo_fefo_allocation():
    """Dispense from a small shelf of Amoxicillin batches in expiry order."""
    logger.info("\n--- Starting FEFO Allocation Demo ---")
    batches = [
        InventoryBatch(
            id="INV-1",
            generic_name="Amoxicillin",
            brand_name="Amoxil",
            strength="500mg",
            batch_number="AMX-2406",
            quantity=30,
            expiry_date="2024-06-30",
        ),
        InventoryBatch(
            id="INV-2",
            generic_name="Amoxicillin",
            brand_name="Amoxil",
            strength="500mg",
            batch_number="AMX-2403",
            quantity=50,
            expiry_date="2024-03-31",
        ),
        InventoryBatch(
            id="INV-3",
            generic_name="Amoxicillin",
            brand_name="Amoxil",
            strength="500mg",
            batch_number="AMX-NODATE",
            quantity=20,
        ),
    ]

    for group in group_inventory_by_drug(batches):
        order = ", ".join(summary.batch_number for summary in group.batches)
        logger.info(f"{group.profile}: {group.total_quantity} units [{group.get_status().value}] FEFO order: {order}")

    allocator = FEFOAllocator(batches)
    profile = DrugProfile("Amoxicillin", "Amoxil", "500mg")

    for allocation in allocator.allocate(profile, 60):
        logger.info(f"Take {allocation.quantity} from {allocation.batch_number} (expires {allocation.expiry_date})")

    try:
        allocator.allocate(profile, 500)
    except InsufficientStockError as e:
        logger.warning(f"Request refused: {e}")

    logger.info("\n--- FEFO Allocation Demo Complete ---")


if __name__ == "__main__":
    demo_fefo_allocation()
