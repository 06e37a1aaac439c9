"""
Drug grouping utilities.

Partitions a flat batch list into per-profile groups (generic name + brand
name + strength) with batches in First-Expiry-First-Out order.
"""

import logging
from collections.abc import Iterable
from datetime import date, timedelta

from models.inventory import BatchSummary, DrugGroup, DrugProfile, InventoryBatch

logger = logging.getLogger(__name__)

# Undated batches are treated as expiring on 9999-12-31.
FAR_FUTURE = date.max


def expiry_sort_key(expiry_date: date | None) -> date:
    """FEFO sort key: earliest expiry first, undated batches last."""
    return expiry_date if expiry_date is not None else FAR_FUTURE


def batches_for_profile(
    batches: Iterable[InventoryBatch], profile: DrugProfile
) -> list[InventoryBatch]:
    """All batches belonging to `profile`, in input order."""
    return [batch for batch in batches if profile.matches(batch)]


def group_inventory_by_drug(batches: Iterable[InventoryBatch]) -> list[DrugGroup]:
    """
    Group batches by drug profile.

    Groups appear in the order their first batch was seen. Within a group the
    batch summaries are sorted by ascending expiry date with undated batches
    last. The group's reorder level is taken from its first batch.
    """
    grouped: dict[str, DrugGroup] = {}
    for batch in batches:
        profile = batch.profile
        group = grouped.get(profile.key)
        if group is None:
            group = DrugGroup(profile=profile, reorder_level=batch.reorder_level)
            grouped[profile.key] = group
        group.total_quantity += batch.quantity
        group.batches.append(
            BatchSummary(
                id=batch.id,
                batch_number=batch.batch_number,
                quantity=batch.quantity,
                expiry_date=batch.expiry_date,
                date_received=batch.date_received,
            )
        )

    for group in grouped.values():
        # list.sort is stable, so equal expiry dates keep their input order
        group.batches.sort(key=lambda summary: expiry_sort_key(summary.expiry_date))

    logger.debug(f"Grouped inventory into {len(grouped)} drug profiles")
    return list(grouped.values())


def find_drug_group(groups: Iterable[DrugGroup], profile: DrugProfile) -> DrugGroup | None:
    for group in groups:
        if group.profile == profile:
            return group
    return None


def filter_drug_groups(groups: Iterable[DrugGroup], search_term: str) -> list[DrugGroup]:
    """Case-insensitive search on generic name, brand name or any batch number."""
    term = search_term.strip().lower()
    if not term:
        return list(groups)
    return [
        group
        for group in groups
        if term in group.generic_name.lower()
        or term in group.brand_name.lower()
        or any(term in summary.batch_number.lower() for summary in group.batches)
    ]


def is_expired(expiry_date: date | None, as_of: date) -> bool:
    if expiry_date is None:
        return False
    return expiry_date < as_of


def is_expiring_soon(expiry_date: date | None, as_of: date, within_days: int = 30) -> bool:
    """True when the batch expires between `as_of` and `as_of + within_days` inclusive."""
    if expiry_date is None:
        return False
    return as_of <= expiry_date <= as_of + timedelta(days=within_days)
