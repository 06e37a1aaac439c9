"""
Centralized Enum definitions for the project.
"""

from enum import Enum


class MovementType(str, Enum):
    """Direction of a stock movement recorded against a batch"""

    IN = "IN"  # Stock received into a batch
    OUT = "OUT"  # Stock dispensed from a batch


class ActivityRegime(str, Enum):
    """Coarse demand regimes used as Markov states"""

    LOW = "low_activity"
    NORMAL = "normal_activity"
    HIGH = "high_activity"


class RiskLevel(str, Enum):
    """Ordinal stock risk levels, least to most severe"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANKS[self]


_RISK_RANKS = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


class StockStatus(str, Enum):
    """On-hand status of a drug group relative to its reorder level"""

    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"
