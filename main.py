"""
main.py
--------
Entry point for the recurring transaction pattern detector.

Reads a transactions CSV, runs the detection pipeline, and writes the
detected patterns to the outputs/ folder.

Usage (from the project root):
    python main.py --input path/to/transactions.csv

    # With optional arguments:
    python main.py --input transactions.csv --lookback 365
    python main.py --input transactions.csv --account ACC-001
    python main.py --input transactions.csv --min-confidence 0.8
"""

import sys
import os
import argparse
import logging
import pandas as pd
from datetime import datetime

# Ensure project root is on path (for runs from any working directory)
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from core.models import DetectorSettings
from core.transaction_store import DataFrameTransactionStore
from pipeline import RecurringDetectionPipeline


# =============================================================================
# LOGGING SETUP
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("main")


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recurring pattern detector — find subscriptions, bills and salary in transaction history."
    )
    parser.add_argument(
        "--input", type=str, required=True,
        help="Path to input transactions CSV (counterparty, amount, currency, timestamp, ...)."
    )
    parser.add_argument(
        "--lookback", type=int, default=None,
        help="Lookback window in days. Defaults to config value. 0 = full history."
    )
    parser.add_argument(
        "--account", type=str, default=None,
        help="Only analyse transactions for this account_id."
    )
    parser.add_argument(
        "--min-confidence", type=float, default=None,
        help="Override the minimum confidence threshold (0.0–1.0). Defaults to config value."
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Output directory. Defaults to outputs/ in project root."
    )
    return parser.parse_args(argv)


# =============================================================================
# MAIN
# =============================================================================

def main(argv: list[str] | None = None):
    args = parse_args(argv)

    output_dir = args.output_dir or os.path.join(PROJECT_ROOT, "outputs")

    # --- Load transactions ---
    logger.info(f"Loading transactions from: {args.input}")
    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        sys.exit(1)

    try:
        store = DataFrameTransactionStore.from_csv(args.input)
        settings = DetectorSettings.from_config(min_confidence_threshold=args.min_confidence)
    except ValueError as exc:
        logger.error(f"Invalid input: {exc}")
        sys.exit(1)
    logger.info(f"Loaded {len(store):,} transactions.")

    # --- Run pipeline ---
    pipeline = RecurringDetectionPipeline(store, lookback_days=args.lookback, settings=settings)
    patterns = pipeline.run(account_id=args.account)

    # --- Output ---
    os.makedirs(output_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    patterns_path = os.path.join(output_dir, f"recurring_patterns_{timestamp}.csv")
    patterns.to_csv(patterns_path, index=False)
    logger.info(f"Patterns saved to: {patterns_path}")

    _print_summary(patterns)


def _print_summary(df: pd.DataFrame):
    """Prints a clean summary table to the console."""
    if df.empty:
        print("\n  No recurring patterns detected.\n")
        return

    print("\n" + "=" * 80)
    print("  RECURRING PATTERN SUMMARY")
    print("=" * 80)

    print("\n  Patterns by Frequency:")
    print("  " + "-" * 60)
    for frequency in df["frequency"].unique():
        subset = df[df["frequency"] == frequency]
        variable = subset["has_variable_amount"].sum()
        print(f"    {frequency:12s}  {len(subset):>5,} patterns  (variable amount: {variable})")

    print("\n  Top Patterns:")
    print("  " + "-" * 60)
    for _, row in df.head(10).iterrows():
        print(
            f"    {row['counterparty'][:28]:28s}  {row['frequency']:10s}  "
            f"{row['amount']:>10,.2f} {row['currency']}  conf={row['confidence']:.2f}  "
            f"next={row['predicted_next_occurrence'][:10]}"
        )

    print(f"\n  Counterparties with recurring patterns: {df['counterparty'].nunique():,}")
    print("=" * 80 + "\n")


if __name__ == "__main__":
    main()
