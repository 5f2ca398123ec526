"""
models.py
----------
Core domain models. These are the typed contracts between engine layers.

- Money / Transaction: Input records. Owned by the transaction store; the
  detector only reads counterparty, amount and timestamp.

- RecurringFrequency: The closed set of cadences the detector tests.

- RecurringPattern: Output of the detection layer. A pure value object,
  created fresh on every run and never mutated.

- DetectorSettings: Tunable thresholds, defaulted from config.yaml.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from config.config_loader import get_recurring_detection_config


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


@dataclass(frozen=True)
class Transaction:
    """A single posted transaction as read from the transaction store."""

    counterparty: str                # Merchant / payee name. Grouping key.
    amount: Money
    timestamp: datetime
    category_id: Optional[str] = None

    # Store bookkeeping. Not used by the detection logic.
    transaction_id: Optional[str] = None
    account_id: Optional[str] = None


class RecurringFrequency(Enum):
    """Candidate cadences, in the order the detector tests them."""

    WEEKLY = (7, "Weekly")
    BIWEEKLY = (14, "Bi-weekly")
    MONTHLY = (30, "Monthly")
    QUARTERLY = (90, "Quarterly")
    YEARLY = (365, "Yearly")

    def __init__(self, days: int, display_name: str):
        self.days = days
        self.display_name = display_name


@dataclass(frozen=True)
class RecurringPattern:
    """
    A recurring relationship with one counterparty at one cadence.

    `transactions` is the compatible subsequence that supports the pattern,
    ascending by timestamp. `average_amount` is only set when the amounts
    vary meaningfully, in which case `amount` carries the same value.
    """

    counterparty: str
    amount: Money                    # Representative amount
    frequency: RecurringFrequency
    transactions: Tuple[Transaction, ...]
    confidence: float                # 0.0 – 1.0
    has_variable_amount: bool = False
    average_amount: Optional[Money] = None
    predicted_next_occurrence: Optional[datetime] = None

    @property
    def occurrence_count(self) -> int:
        return len(self.transactions)

    @property
    def first_seen(self) -> datetime:
        return self.transactions[0].timestamp

    @property
    def last_seen(self) -> datetime:
        return self.transactions[-1].timestamp


@dataclass(frozen=True)
class DetectorSettings:
    """
    Thresholds for RecurringPatternDetector.

    Defaults match config.yaml; use from_config() to pick up edits to the file.
    """

    min_occurrences: int = 3
    date_tolerance_days: int = 3
    amount_tolerance_percent: float = 0.15
    min_confidence_threshold: float = 0.7

    def __post_init__(self):
        if self.min_occurrences < 2:
            raise ValueError(f"min_occurrences must be at least 2, got {self.min_occurrences}")
        if self.date_tolerance_days < 0:
            raise ValueError(f"date_tolerance_days must be >= 0, got {self.date_tolerance_days}")
        if self.amount_tolerance_percent < 0:
            raise ValueError(
                f"amount_tolerance_percent must be >= 0, got {self.amount_tolerance_percent}"
            )
        if not 0.0 <= self.min_confidence_threshold <= 1.0:
            raise ValueError(
                f"min_confidence_threshold must be within [0, 1], got {self.min_confidence_threshold}"
            )

    @classmethod
    def from_config(cls, **overrides: Any) -> "DetectorSettings":
        """Builds settings from the recurring_detection block, applying overrides."""
        cfg: Dict[str, Any] = dict(get_recurring_detection_config())
        cfg.update({k: v for k, v in overrides.items() if v is not None})
        return cls(
            min_occurrences=int(cfg["min_occurrences"]),
            date_tolerance_days=int(cfg["date_tolerance_days"]),
            amount_tolerance_percent=float(cfg["amount_tolerance_percent"]),
            min_confidence_threshold=float(cfg["min_confidence_threshold"]),
        )
