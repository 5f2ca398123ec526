"""
frames.py
----------
pandas adapters around the detector.

    transactions_from_frame(): DataFrame rows -> Transaction objects
    patterns_to_frame():       RecurringPattern objects -> flat DataFrame

The detector itself only deals in value objects; CSV files and DataFrames
stop at this boundary.
"""

from decimal import Decimal
from typing import Iterable, List

import pandas as pd

from core.models import Money, RecurringPattern, Transaction

REQUIRED_COLUMNS = ["counterparty", "amount", "currency", "timestamp"]
OPTIONAL_COLUMNS = ["transaction_id", "account_id", "category_id"]

PATTERN_COLUMNS = [
    "counterparty", "frequency", "confidence", "amount", "currency",
    "has_variable_amount", "average_amount", "occurrence_count",
    "first_seen", "last_seen", "predicted_next_occurrence",
    "evidence_transaction_refs",
]


def validate_transaction_frame(transactions: pd.DataFrame) -> None:
    missing = [c for c in REQUIRED_COLUMNS if c not in transactions.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def transactions_from_frame(transactions: pd.DataFrame) -> List[Transaction]:
    """
    Converts a transactions DataFrame into Transaction objects.

    Args:
        transactions: DataFrame with columns counterparty, amount, currency,
            timestamp and optionally transaction_id, account_id, category_id.

    Returns:
        One Transaction per row, timestamps normalised to UTC.

    Raises:
        ValueError: If a required column is missing.
    """
    validate_transaction_frame(transactions)

    if transactions.empty:
        return []

    df = transactions.copy()
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)

    result: List[Transaction] = []
    for row in df.itertuples(index=False):
        row = row._asdict()
        result.append(Transaction(
            counterparty=optional_id(row["counterparty"]) or "",
            amount=Money(Decimal(str(row["amount"])), str(row["currency"])),
            timestamp=row["timestamp"].to_pydatetime(),
            category_id=optional_id(row.get("category_id")),
            transaction_id=optional_id(row.get("transaction_id")),
            account_id=optional_id(row.get("account_id")),
        ))
    return result


def patterns_to_frame(patterns: Iterable[RecurringPattern]) -> pd.DataFrame:
    """
    Flattens detected patterns into the pipeline output schema.
    Row order follows the input order (the detector's confidence ranking).
    """
    rows = []
    for p in patterns:
        rows.append({
            "counterparty": p.counterparty,
            "frequency": p.frequency.display_name,
            "confidence": round(p.confidence, 4),
            "amount": float(p.amount.amount),
            "currency": p.amount.currency,
            "has_variable_amount": p.has_variable_amount,
            "average_amount": float(p.average_amount.amount) if p.average_amount is not None else None,
            "occurrence_count": p.occurrence_count,
            "first_seen": p.first_seen.isoformat(),
            "last_seen": p.last_seen.isoformat(),
            "predicted_next_occurrence": p.predicted_next_occurrence.isoformat(),
            "evidence_transaction_refs": "|".join(
                t.transaction_id for t in p.transactions if t.transaction_id
            ),
        })

    if not rows:
        return pd.DataFrame(columns=PATTERN_COLUMNS)

    return pd.DataFrame(rows, columns=PATTERN_COLUMNS)


def optional_id(value) -> str | None:
    """
    String form of an identifier cell, or None when missing.

    pandas loads an integer column with gaps as float, so 7.0 is read back as "7".
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
