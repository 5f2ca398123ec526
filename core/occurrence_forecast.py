"""
occurrence_forecast.py
-----------------------
Projects future occurrences of a detected pattern.

A projection simply steps the nominal period forward from the pattern's
predicted next occurrence. It carries the pattern's representative amount;
no trend or seasonality is modelled.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

from core.models import Money, RecurringFrequency, RecurringPattern


@dataclass(frozen=True)
class ProjectedOccurrence:
    counterparty: str
    scheduled_at: datetime
    amount: Money
    sequence: int                    # 1 = the predicted next occurrence


def project_occurrences(pattern: RecurringPattern, count: int) -> List[ProjectedOccurrence]:
    """Returns the next `count` projected occurrences of `pattern`."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")

    step = timedelta(days=pattern.frequency.days)
    scheduled = pattern.predicted_next_occurrence
    occurrences = []
    for i in range(count):
        occurrences.append(ProjectedOccurrence(
            counterparty=pattern.counterparty,
            scheduled_at=scheduled,
            amount=pattern.amount,
            sequence=i + 1,
        ))
        scheduled = scheduled + step
    return occurrences


def project_until(pattern: RecurringPattern, until: datetime) -> List[ProjectedOccurrence]:
    """Returns every projected occurrence scheduled on or before `until`."""
    step = timedelta(days=pattern.frequency.days)
    scheduled = pattern.predicted_next_occurrence
    occurrences = []
    while scheduled <= until:
        occurrences.append(ProjectedOccurrence(
            counterparty=pattern.counterparty,
            scheduled_at=scheduled,
            amount=pattern.amount,
            sequence=len(occurrences) + 1,
        ))
        scheduled = scheduled + step
    return occurrences


def occurrences_in_months(frequency: RecurringFrequency, months: int) -> int:
    """
    Number of occurrences to expect within `months` calendar months.
    Weekly and bi-weekly cadences get a small buffer for long months.
    """
    if months < 0:
        raise ValueError(f"months must be >= 0, got {months}")

    if frequency is RecurringFrequency.WEEKLY:
        return months * 4 + 2
    if frequency is RecurringFrequency.BIWEEKLY:
        return months * 2 + 1
    if frequency is RecurringFrequency.MONTHLY:
        return months
    if frequency is RecurringFrequency.QUARTERLY:
        return months // 3 + 1
    return months // 12 + 1


def projected_total(pattern: RecurringPattern, months: int = 12) -> Money:
    """Total amount the pattern is expected to cost (or pay) over `months`."""
    count = occurrences_in_months(pattern.frequency, months)
    total = sum((o.amount.amount for o in project_occurrences(pattern, count)), Decimal(0))
    return Money(total, pattern.amount.currency)
