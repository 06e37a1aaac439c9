"""
Historical demand aggregation.

Turns raw stock movements into a daily outbound-volume series per drug
profile, aggregated across every batch of that profile.
"""

import logging
from collections.abc import Iterable, Sequence

import numpy as np
import pandas as pd

from models.enums import MovementType
from models.forecast import HistoricalDemandPoint
from models.inventory import DrugProfile, InventoryBatch, StockMovement
from utils.drug_grouping import batches_for_profile

logger = logging.getLogger(__name__)

DEFAULT_SHELF_LIFE_DAYS = 365


def build_daily_series(
    movements: Iterable[StockMovement],
    batches: Iterable[InventoryBatch],
    profile: DrugProfile,
) -> list[HistoricalDemandPoint]:
    """
    Daily OUT volume for `profile`, ascending by date.

    Shelf life is measured against the latest-expiring batch currently held
    (optimistic: the freshest stock is assumed usable). When no batch of the
    profile has an expiry date every point gets 365 days.
    """
    matching = batches_for_profile(batches, profile)
    if not matching:
        return []

    batch_ids = {batch.id for batch in matching}
    rows = [
        {"date": movement.date, "quantity": movement.quantity}
        for movement in movements
        if movement.type == MovementType.OUT and movement.inventory_item_id in batch_ids
    ]
    if not rows:
        logger.debug(f"No outbound movements recorded for {profile}")
        return []

    reference_expiry = max(
        (batch.expiry_date for batch in matching if batch.expiry_date is not None),
        default=None,
    )
    daily = pd.DataFrame(rows).groupby("date", sort=True)["quantity"].sum()

    series = []
    for day, volume in daily.items():
        if reference_expiry is None:
            shelf_life = DEFAULT_SHELF_LIFE_DAYS
        else:
            shelf_life = max(0, (reference_expiry - day).days)
        series.append(
            HistoricalDemandPoint(
                date=day,
                drug_id=matching[0].id,
                generic_name=profile.generic_name,
                stock_out_volume=float(volume),
                remaining_shelf_life=shelf_life,
                expiry_date=reference_expiry,
            )
        )
    return series


def series_to_frame(series: Sequence[HistoricalDemandPoint]) -> pd.DataFrame:
    """Daily series as a DataFrame indexed by date."""
    df = pd.DataFrame(
        [
            {
                "date": point.date,
                "stock_out_volume": point.stock_out_volume,
                "remaining_shelf_life": point.remaining_shelf_life,
            }
            for point in series
        ],
        columns=["date", "stock_out_volume", "remaining_shelf_life"],
    )
    return df.set_index("date")


def normalize_time_series(values: Sequence[float]) -> tuple[np.ndarray, float, float]:
    """
    Zero-mean, unit-variance scaling using the population standard deviation.
    A zero (or undefined) standard deviation is floored to 1.
    """
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        return data, 0.0, 1.0
    mean = float(data.mean())
    std = float(data.std())
    if std == 0:
        std = 1.0
    return (data - mean) / std, mean, std


def denormalize(value: float, mean: float, std: float) -> float:
    return value * std + mean
