"""
pipeline.py
------------
Main orchestration layer. Wires together:
    1. TransactionStore           →  pulls the transaction history
    2. Lookback window            →  trims history to a recent window
    3. RecurringPatternDetector   →  produces RecurringPatterns
    4. Output serialization       →  flattens patterns to a DataFrame

This is the single entry point for running the engine. Everything else
is internal machinery.

Usage:
    from pipeline import RecurringDetectionPipeline

    pipeline = RecurringDetectionPipeline(store)
    results_df = pipeline.run()
"""

import logging
from datetime import timedelta
from typing import List

import pandas as pd

from config.config_loader import get_default_lookback_days
from core.frames import patterns_to_frame
from core.models import DetectorSettings, RecurringPattern, Transaction
from core.recurring_pattern_detector import RecurringPatternDetector
from core.transaction_store import TransactionStore

logger = logging.getLogger(__name__)


class RecurringDetectionPipeline:
    """
    End-to-end recurring pattern detection pipeline.

    Orchestrates fetch → window → detect → output without exposing
    internal objects to callers.
    """

    def __init__(
        self,
        store: TransactionStore,
        lookback_days: int | None = None,
        settings: DetectorSettings | None = None,
    ):
        """
        Args:
            store: Source of transaction history.
            lookback_days: Override default lookback window from config.
                0 or a missing config value means the whole history.
            settings: Detector thresholds. Defaults to config.yaml.
        """
        self.store = store
        if lookback_days is None:
            lookback_days = get_default_lookback_days()
        self.lookback_days = lookback_days or None
        self.detector = RecurringPatternDetector(settings)

        logger.info(
            f"Pipeline initialized. "
            f"Settings: {self.detector.settings}. "
            f"Lookback: {self.lookback_days or 'full history'} days."
        )

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def run(self, account_id: str | None = None) -> pd.DataFrame:
        """
        Run the full detection pipeline.

        Args:
            account_id: Restrict detection to one account. None = all accounts.

        Returns:
            DataFrame of detected patterns, one row per (counterparty, frequency),
            sorted by confidence descending.
        """
        patterns = self.run_detection_only(account_id)

        output_df = patterns_to_frame(patterns)
        logger.info(f"Pipeline complete. Output rows: {len(output_df):,}.")

        return output_df

    def run_detection_only(self, account_id: str | None = None) -> List[RecurringPattern]:
        """
        Runs fetch, window and detection, returning the pattern objects
        rather than a DataFrame.
        """
        transactions = self._fetch(account_id)
        logger.info(f"Pipeline starting. Input: {len(transactions):,} transactions.")

        windowed = self._apply_lookback(transactions)
        logger.info(f"Lookback applied. Transactions in window: {len(windowed):,}.")

        patterns = self.detector.detect(windowed)
        logger.info(f"Detection complete. Recurring patterns: {len(patterns):,}.")

        return patterns

    # -------------------------------------------------------------------------
    # INTERNAL
    # -------------------------------------------------------------------------

    def _fetch(self, account_id: str | None) -> List[Transaction]:
        if account_id is None:
            return self.store.get_all_transactions()
        return self.store.get_transactions_by_account(account_id)

    def _apply_lookback(self, transactions: List[Transaction]) -> List[Transaction]:
        """Keeps transactions within lookback_days of the most recent one."""
        if not transactions or not self.lookback_days:
            return transactions

        cutoff = max(t.timestamp for t in transactions) - timedelta(days=self.lookback_days)
        return [t for t in transactions if t.timestamp >= cutoff]
