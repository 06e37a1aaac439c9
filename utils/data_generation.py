from datetime import timedelta

import numpy as np
import pandas as pd

from models.enums import MovementType
from models.inventory import InventoryBatch, StockMovement

# (generic name, brand name, strength, mean daily units dispensed on weekdays)
DEFAULT_DRUG_CATALOG: list[tuple[str, str, str, float]] = [
    ("Paracetamol", "Biogesic", "500mg", 12.0),
    ("Amoxicillin", "Amoxil", "500mg", 6.0),
    ("Metformin", "Glucophage", "850mg", 4.0),
    ("Losartan", "Cozaar", "50mg", 2.0),
    ("Cetirizine", "Zyrtec", "10mg", 0.0),  # Newly stocked, no dispensing yet
]


def generate_synthetic_clinic_data(
    start_date_str: str = "2024-01-01",
    num_days: int = 60,
    batches_per_drug: int = 3,
    seed: int = 42,
    catalog: list[tuple[str, str, str, float]] | None = None,
    dispensing_day_probability: float = 0.7,
    weekend_demand_multiplier: float = 0.4,
    min_batch_quantity: int = 20,
    max_batch_quantity: int = 200,
    min_days_to_expiry: int = 10,
    max_days_to_expiry: int = 400,
    undated_batch_probability: float = 0.05,
) -> tuple[list[InventoryBatch], list[StockMovement]]:
    """
    Generates a synthetic clinic pharmacy inventory and its movement history.

    Args:
        start_date_str: First day of movement history (YYYY-MM-DD).
        num_days: Number of days of movement history.
        batches_per_drug: Batches held for each drug profile.
        seed: Random seed for reproducibility.
        catalog: Drug profiles with their mean weekday demand; defaults to DEFAULT_DRUG_CATALOG.
        dispensing_day_probability: Chance that a drug is dispensed at all on a given day.
        weekend_demand_multiplier: Demand multiplier applied on Saturdays and Sundays.
        min_batch_quantity: Lower bound of on-hand units per batch.
        max_batch_quantity: Upper bound (exclusive) of on-hand units per batch.
        min_days_to_expiry: Earliest expiry, in days after the last history day.
        max_days_to_expiry: Latest expiry (exclusive), in days after the last history day.
        undated_batch_probability: Chance that a batch carries no expiry date.

    Returns:
        A tuple containing:
        - batches: current InventoryBatch snapshot.
        - movements: StockMovement history; one IN per batch on receipt plus
          daily OUT movements drawn from a Poisson distribution.
    """
    rng = np.random.default_rng(seed)
    catalog = catalog if catalog is not None else DEFAULT_DRUG_CATALOG
    dates = pd.date_range(start=start_date_str, periods=num_days, freq="D")
    last_day = dates[-1].date() if num_days > 0 else pd.Timestamp(start_date_str).date()

    batches: list[InventoryBatch] = []
    movements: list[StockMovement] = []
    for drug_num, (generic_name, brand_name, strength, base_demand) in enumerate(catalog, start=1):
        batch_ids = []
        for batch_num in range(1, batches_per_drug + 1):
            batch_id = f"INV-{drug_num:02d}-{batch_num:02d}"
            received = pd.Timestamp(start_date_str).date() - timedelta(days=int(rng.integers(0, 30)))
            if rng.random() < undated_batch_probability:
                expiry = None
            else:
                expiry = last_day + timedelta(
                    days=int(rng.integers(min_days_to_expiry, max_days_to_expiry))
                )
            quantity = int(rng.integers(min_batch_quantity, max_batch_quantity))
            batches.append(
                InventoryBatch(
                    id=batch_id,
                    generic_name=generic_name,
                    brand_name=brand_name,
                    strength=strength,
                    batch_number=f"B{drug_num:02d}{batch_num:03d}",
                    quantity=quantity,
                    expiry_date=expiry,
                    date_received=received,
                )
            )
            movements.append(
                StockMovement(
                    inventory_item_id=batch_id,
                    type=MovementType.IN,
                    quantity=quantity,
                    date=received,
                    batch_number=f"B{drug_num:02d}{batch_num:03d}",
                    reason="Initial receipt",
                )
            )
            batch_ids.append(batch_id)

        if base_demand <= 0:
            continue
        for day in dates:
            if rng.random() > dispensing_day_probability:
                continue
            is_weekend = day.dayofweek >= 5
            expected = base_demand * (weekend_demand_multiplier if is_weekend else 1.0)
            units = int(rng.poisson(expected))
            if units == 0:
                continue
            movements.append(
                StockMovement(
                    inventory_item_id=batch_ids[int(rng.integers(len(batch_ids)))],
                    type=MovementType.OUT,
                    quantity=units,
                    date=day.date(),
                    reason="Dispensed",
                )
            )

    return batches, movements
