"""
recurring_pattern_detector.py
------------------------------
Recurring transaction pattern detection engine.

Answers one question for a user's transaction history:

    "Which counterparties are recurring obligations, at what cadence,
     and how confident are we?"

Output: a RecurringPattern per (counterparty, frequency) hypothesis that
clears the confidence threshold, sorted by confidence descending.

Design decisions:
    - Grouping key is the exact counterparty string. Blank counterparties
      are ignored; they cannot identify a relationship.
    - Every candidate frequency is tested independently on each group. A
      counterparty may match more than one frequency; the caller decides
      whether to deduplicate.
    - The amount check compares each candidate against the running average
      of amounts accepted so far, so transactions must be walked strictly in
      chronological order.
    - All thresholds come from DetectorSettings (defaulted from config.yaml).
"""

import logging
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, Iterable, List, Sequence

import numpy as np

from core.models import (
    DetectorSettings,
    Money,
    RecurringFrequency,
    RecurringPattern,
    Transaction,
)

logger = logging.getLogger(__name__)

# Confidence component weights. They sum to 1.0.
DATE_SCORE_WEIGHT = 0.6
AMOUNT_SCORE_WEIGHT = 0.3
FREQUENCY_SCORE_WEIGHT = 0.1


class RecurringPatternDetector:
    """
    Detects recurring transaction patterns.

    Usage:
        detector = RecurringPatternDetector()
        patterns = detector.detect(transactions)

    The detector holds no state between calls beyond its settings, so one
    instance can be shared freely.
    """

    def __init__(self, settings: DetectorSettings | None = None):
        self.settings = settings if settings is not None else DetectorSettings.from_config()

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def detect(self, transactions: Iterable[Transaction]) -> List[RecurringPattern]:
        """
        Run recurring pattern detection.

        Args:
            transactions: Any iterable of Transaction, in any order. May be empty.

        Returns:
            List of RecurringPattern with confidence >= min_confidence_threshold,
            sorted by confidence descending. Empty if nothing qualifies.
        """
        groups = self._group_by_counterparty(transactions)
        patterns: List[RecurringPattern] = []

        # Sorted iteration keeps the output independent of input order
        for counterparty in sorted(groups):
            group = groups[counterparty]
            if len(group) < self.settings.min_occurrences:
                continue

            ordered = sorted(group, key=_chronological_key)
            for frequency in RecurringFrequency:
                pattern = self._analyze_frequency(counterparty, ordered, frequency)
                if pattern is not None:
                    patterns.append(pattern)

        patterns.sort(key=_ranking_key)

        logger.debug(
            f"Detection complete. Counterparties: {len(groups):,}. Patterns: {len(patterns):,}."
        )
        return patterns

    # -------------------------------------------------------------------------
    # INTERNAL: GROUPING
    # -------------------------------------------------------------------------

    @staticmethod
    def _group_by_counterparty(transactions: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
        groups: Dict[str, List[Transaction]] = defaultdict(list)
        for txn in transactions:
            if not txn.counterparty or not txn.counterparty.strip():
                continue
            groups[txn.counterparty].append(txn)
        return groups

    # -------------------------------------------------------------------------
    # INTERNAL: FREQUENCY HYPOTHESIS
    # -------------------------------------------------------------------------

    def _analyze_frequency(
        self, counterparty: str, transactions: Sequence[Transaction], frequency: RecurringFrequency
    ) -> RecurringPattern | None:
        """
        Tests a single frequency hypothesis against a chronologically sorted group.

        Returns None if the compatible subsequence is too short or the
        confidence falls below threshold.
        """
        subsequence = self._build_compatible_subsequence(transactions, frequency)
        if len(subsequence) < self.settings.min_occurrences:
            return None

        intervals = [
            _days_between(prev.timestamp, cur.timestamp)
            for prev, cur in zip(subsequence, subsequence[1:])
        ]
        amounts = [txn.amount for txn in subsequence]

        confidence = self._calculate_confidence(intervals, amounts, frequency)
        if confidence < self.settings.min_confidence_threshold:
            return None

        has_variable_amount = self._has_significant_amount_variation(amounts)
        if has_variable_amount:
            representative = _average_amount(amounts)
            average = representative
        else:
            representative = amounts[0]
            average = None

        return RecurringPattern(
            counterparty=counterparty,
            amount=representative,
            frequency=frequency,
            transactions=tuple(subsequence),
            confidence=confidence,
            has_variable_amount=has_variable_amount,
            average_amount=average,
            predicted_next_occurrence=subsequence[-1].timestamp + timedelta(days=frequency.days),
        )

    def _build_compatible_subsequence(
        self, transactions: Sequence[Transaction], frequency: RecurringFrequency
    ) -> List[Transaction]:
        """
        Walks the group left to right, keeping transactions that fit both the
        date gap (measured from the last accepted transaction) and the amount
        band around the running average of accepted amounts.
        """
        accepted = [transactions[0]]
        accepted_amounts = [transactions[0].amount]

        for txn in transactions[1:]:
            gap = _days_between(accepted[-1].timestamp, txn.timestamp)
            if not self._is_within_date_tolerance(gap, frequency.days):
                continue
            if not self._is_within_amount_tolerance(txn.amount, accepted_amounts):
                continue
            accepted.append(txn)
            accepted_amounts.append(txn.amount)

        return accepted

    def _is_within_date_tolerance(self, actual_days: int, expected_days: int) -> bool:
        return abs(actual_days - expected_days) <= self.settings.date_tolerance_days

    def _is_within_amount_tolerance(self, amount: Money, accepted_amounts: List[Money]) -> bool:
        if not accepted_amounts:
            return True

        average = float(_average_amount(accepted_amounts).amount)
        tolerance = abs(average) * self.settings.amount_tolerance_percent
        return abs(float(amount.amount) - average) <= tolerance

    # -------------------------------------------------------------------------
    # INTERNAL: CONFIDENCE SCORING
    # -------------------------------------------------------------------------

    def _calculate_confidence(
        self, intervals: List[int], amounts: List[Money], frequency: RecurringFrequency
    ) -> float:
        """
        Composite 0.0–1.0 score:
            - date consistency (0.6): mean absolute deviation of gaps,
              relative to the nominal period.
            - amount consistency (0.3): mean relative deviation of amounts.
            - frequency fit (0.1): distance of the mean gap from the nominal period.
        """
        if not intervals:
            return 0.0

        gaps = np.asarray(intervals, dtype=float)
        nominal = float(frequency.days)

        average_interval = float(np.mean(gaps))
        interval_variance = float(np.mean(np.abs(gaps - average_interval)))
        date_score = max(0.0, DATE_SCORE_WEIGHT - (interval_variance / nominal) * DATE_SCORE_WEIGHT)

        amount_variance = _amount_variance(amounts)
        amount_score = max(0.0, AMOUNT_SCORE_WEIGHT - amount_variance * AMOUNT_SCORE_WEIGHT)

        frequency_score = max(
            0.0,
            FREQUENCY_SCORE_WEIGHT - abs(average_interval - nominal) / nominal * FREQUENCY_SCORE_WEIGHT,
        )

        return date_score + amount_score + frequency_score

    def _has_significant_amount_variation(self, amounts: List[Money]) -> bool:
        if len(amounts) < 2:
            return False
        return _amount_variance(amounts) > self.settings.amount_tolerance_percent / 2


# =============================================================================
# MODULE HELPERS
# =============================================================================

def detect_recurring_patterns(
    transactions: Iterable[Transaction], settings: DetectorSettings | None = None
) -> List[RecurringPattern]:
    """Shortcut for RecurringPatternDetector(settings).detect(transactions)."""
    return RecurringPatternDetector(settings).detect(transactions)


def _days_between(earlier, later) -> int:
    """Whole days elapsed. Partial days are truncated."""
    return (later - earlier).days


def _chronological_key(txn: Transaction):
    # Every field past the timestamp is a tie-breaker so equal-time rows sort the same way every run
    return (
        txn.timestamp,
        txn.amount.amount,
        txn.amount.currency,
        txn.transaction_id or "",
        txn.account_id or "",
        txn.category_id or "",
    )


def _ranking_key(pattern: RecurringPattern):
    frequency_order = list(RecurringFrequency).index(pattern.frequency)
    return (-pattern.confidence, pattern.counterparty, frequency_order)


def _average_amount(amounts: Sequence[Money]) -> Money:
    """
    Decimal mean, kept at the finest minor-unit scale of the inputs.
    Currency is taken from the first amount.
    """
    values = [m.amount for m in amounts]
    mean = sum(values, Decimal(0)) / Decimal(len(values))
    exponent = min(v.as_tuple().exponent for v in values)
    if isinstance(exponent, int):
        mean = mean.quantize(Decimal(1).scaleb(exponent), rounding=ROUND_HALF_EVEN)
    return Money(mean, amounts[0].currency)


def _amount_variance(amounts: Sequence[Money]) -> float:
    """Mean absolute deviation of each amount from the average, relative to the average."""
    if not amounts:
        return 0.0

    average = float(_average_amount(amounts).amount)
    if average == 0:
        return 0.0

    values = np.asarray([float(m.amount) for m in amounts], dtype=float)
    return float(np.mean(np.abs(values - average) / abs(average)))
