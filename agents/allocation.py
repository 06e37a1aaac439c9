"""
FEFO (First-Expiry-First-Out) batch allocation.

Decides which physical lots satisfy a dispensing request. Allocation is
all-or-nothing: on a shortfall `InsufficientStockError` is raised and no
partial allocation is returned.
"""

import logging
from collections.abc import Iterable, Sequence

from models.inventory import BatchAllocation, DrugProfile, InventoryBatch
from utils.drug_grouping import batches_for_profile, expiry_sort_key
from utils.logger import get_logger

logger = logging.getLogger(__name__)


class InsufficientStockError(ValueError):
    """Requested quantity exceeds what the drug profile or batch can supply."""

    def __init__(
        self,
        requested: int,
        available: int,
        profile: DrugProfile | None = None,
        batch_id: str | None = None,
    ):
        self.requested = requested
        self.available = available
        self.profile = profile
        self.batch_id = batch_id
        target = f"batch {batch_id}" if batch_id is not None else str(profile)
        super().__init__(
            f"Insufficient stock for {target}: requested {requested}, available {available}"
        )


def _check_quantity(quantity: int) -> None:
    if quantity < 0:
        raise ValueError(f"Requested quantity must be >= 0, got {quantity}")


def available_quantity(batches: Iterable[InventoryBatch], profile: DrugProfile) -> int:
    return sum(batch.quantity for batch in batches_for_profile(batches, profile))


def allocate_fefo(
    batches: Iterable[InventoryBatch], profile: DrugProfile, requested_quantity: int
) -> list[BatchAllocation]:
    """
    Allocate `requested_quantity` across the profile's batches, earliest expiry first.

    A batch with a later expiry is only drawn from once every earlier-expiring
    batch is exhausted. Batches without an expiry date are used last.

    Raises:
        InsufficientStockError: total stock of the profile is below the request.
        ValueError: the requested quantity is negative.
    """
    _check_quantity(requested_quantity)
    candidates = sorted(
        (batch for batch in batches_for_profile(batches, profile) if batch.quantity > 0),
        key=lambda batch: expiry_sort_key(batch.expiry_date),
    )

    total_available = sum(batch.quantity for batch in candidates)
    if total_available < requested_quantity:
        logger.warning(
            f"FEFO allocation failed for {profile}: requested {requested_quantity}, available {total_available}"
        )
        raise InsufficientStockError(requested_quantity, total_available, profile=profile)

    allocations: list[BatchAllocation] = []
    remaining = requested_quantity
    for batch in candidates:
        if remaining <= 0:
            break
        take = min(batch.quantity, remaining)
        allocations.append(BatchAllocation.from_batch(batch, take))
        remaining -= take

    logger.debug(
        f"Allocated {requested_quantity} units of {profile} across {len(allocations)} batches"
    )
    return allocations


def allocate_specific_batch(
    batches: Iterable[InventoryBatch], batch_id: str, quantity: int
) -> BatchAllocation:
    """
    Draw `quantity` from one named batch, bypassing FEFO ordering.

    Callers choosing this path take responsibility for FEFO policy.

    Raises:
        InsufficientStockError: the batch is unknown or holds fewer units than requested.
    """
    _check_quantity(quantity)
    batch = next((b for b in batches if b.id == batch_id), None)
    if batch is None:
        logger.warning(f"Batch {batch_id} not found for specific allocation")
        raise InsufficientStockError(quantity, 0, batch_id=batch_id)
    if batch.quantity < quantity:
        logger.warning(
            f"Batch {batch_id} holds {batch.quantity} units, {quantity} requested"
        )
        raise InsufficientStockError(quantity, batch.quantity, profile=batch.profile, batch_id=batch_id)
    return BatchAllocation.from_batch(batch, quantity)


class FEFOAllocator:
    """Allocation engine bound to one inventory snapshot."""

    def __init__(self, batches: Sequence[InventoryBatch]):
        self.batches = list(batches)
        self.logger = get_logger(self.__class__.__name__)

    def available_quantity(self, profile: DrugProfile) -> int:
        return available_quantity(self.batches, profile)

    def allocate(self, profile: DrugProfile, quantity: int) -> list[BatchAllocation]:
        allocations = allocate_fefo(self.batches, profile, quantity)
        self.logger.info(
            f"Dispensing {quantity} x {profile}: "
            + ", ".join(f"{a.batch_number}={a.quantity}" for a in allocations)
        )
        return allocations

    def allocate_batch(self, batch_id: str, quantity: int) -> BatchAllocation:
        allocation = allocate_specific_batch(self.batches, batch_id, quantity)
        self.logger.info(
            f"Dispensing {quantity} units from batch {allocation.batch_number} (FEFO bypass)"
        )
        return allocation
