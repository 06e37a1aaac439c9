"""
Inventory-related data models for clinic-pharmacy-intelligence.
Includes the caller-supplied InventoryBatch and StockMovement records and the
derived DrugProfile, DrugGroup and BatchAllocation values.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import MovementType, StockStatus

DEFAULT_REORDER_LEVEL = 10


def parse_day(value: Any) -> Any:
    """Truncate ISO date-times and datetimes to a calendar day; blank strings become None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        return value.split("T")[0].split(" ")[0]
    return value


@dataclass(frozen=True)
class DrugProfile:
    """Identity of a medicine: all batches sharing generic name, brand name and strength."""

    generic_name: str
    brand_name: str
    strength: str

    @property
    def key(self) -> str:
        return f"{self.generic_name}|{self.brand_name}|{self.strength}"

    @classmethod
    def from_batch(cls, batch: "InventoryBatch") -> "DrugProfile":
        return cls(batch.generic_name, batch.brand_name, batch.strength)

    def matches(self, batch: "InventoryBatch") -> bool:
        return (
            batch.generic_name == self.generic_name
            and batch.brand_name == self.brand_name
            and batch.strength == self.strength
        )

    def __str__(self) -> str:
        return f"{self.generic_name} ({self.brand_name}) {self.strength}"


class InventoryBatch(BaseModel):
    """A physical lot of a medicine held by the clinic (read-only to the core)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    generic_name: str
    brand_name: str = ""
    strength: str = ""
    batch_number: str = ""
    quantity: int = Field(ge=0)
    expiry_date: date | None = None  # None sorts last and means 365 days of shelf life
    date_received: date | None = None
    reorder_level: int = DEFAULT_REORDER_LEVEL
    storage_location: str | None = None
    drug_class: str | None = None
    notes: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_expiration_alias(cls, data: Any) -> Any:
        # Older records store the expiry under "expirationDate".
        if not isinstance(data, dict):
            return data
        data = dict(data)
        legacy = data.pop("expirationDate", None) or data.pop("expiration_date", None)
        for key in ("expiryDate", "expiry_date"):
            if key in data and parse_day(data[key]) is None:
                data.pop(key)
        if legacy and "expiryDate" not in data and "expiry_date" not in data:
            data["expiryDate"] = legacy
        return data

    @field_validator("expiry_date", "date_received", mode="before")
    @classmethod
    def _truncate_to_day(cls, value: Any) -> Any:
        return parse_day(value)

    @field_validator("reorder_level", mode="before")
    @classmethod
    def _default_reorder_level(cls, value: Any) -> Any:
        return value or DEFAULT_REORDER_LEVEL

    @property
    def profile(self) -> DrugProfile:
        return DrugProfile.from_batch(self)


class StockMovement(BaseModel):
    """An immutable IN/OUT movement of units against one batch."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    inventory_item_id: str
    type: MovementType
    quantity: int = Field(ge=0)
    date: date
    id: str | None = None
    batch_number: str | None = None
    reason: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _truncate_to_day(cls, value: Any) -> Any:
        return parse_day(value)


def stock_status(quantity: int, reorder_level: int) -> StockStatus:
    """Classify on-hand quantity against a reorder level."""
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= reorder_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


@dataclass
class BatchSummary:
    """Per-batch line inside a DrugGroup."""

    id: str
    batch_number: str
    quantity: int
    expiry_date: date | None
    date_received: date | None = None


@dataclass
class DrugGroup:
    """All batches of one drug profile, ordered First-Expiry-First-Out."""

    profile: DrugProfile
    total_quantity: int = 0
    reorder_level: int = DEFAULT_REORDER_LEVEL
    batches: list[BatchSummary] = field(default_factory=list)

    @property
    def generic_name(self) -> str:
        return self.profile.generic_name

    @property
    def brand_name(self) -> str:
        return self.profile.brand_name

    @property
    def strength(self) -> str:
        return self.profile.strength

    def get_status(self) -> StockStatus:
        """Return the stock status of the whole group."""
        return stock_status(self.total_quantity, self.reorder_level)


@dataclass
class BatchAllocation:
    """Units drawn from one specific batch to satisfy a dispensing request."""

    inventory_item_id: str
    batch_number: str
    generic_name: str
    brand_name: str
    strength: str
    quantity: int
    expiry_date: date | None

    @classmethod
    def from_batch(cls, batch: InventoryBatch, quantity: int) -> "BatchAllocation":
        return cls(
            inventory_item_id=batch.id,
            batch_number=batch.batch_number,
            generic_name=batch.generic_name,
            brand_name=batch.brand_name,
            strength=batch.strength,
            quantity=quantity,
            expiry_date=batch.expiry_date,
        )
