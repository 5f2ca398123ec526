"""
transaction_store.py
---------------------
Read-only transaction sources the pipeline can pull history from.

The detector never talks to a store directly. The pipeline fetches from one
of these, windows the result, and hands a plain list to the detector.
"""

from typing import List, Protocol, Sequence

import pandas as pd

from core.frames import optional_id, transactions_from_frame, validate_transaction_frame
from core.models import Transaction


class TransactionStore(Protocol):
    """Minimal query surface the pipeline needs."""

    def get_all_transactions(self) -> List[Transaction]:
        ...

    def get_transactions_by_account(self, account_id: str) -> List[Transaction]:
        ...


class InMemoryTransactionStore:
    """List-backed store. Handy for tests and for callers that already hold the data."""

    def __init__(self, transactions: Sequence[Transaction] = ()):
        self._transactions = list(transactions)

    def get_all_transactions(self) -> List[Transaction]:
        return list(self._transactions)

    def get_transactions_by_account(self, account_id: str) -> List[Transaction]:
        return [t for t in self._transactions if t.account_id == account_id]

    def __len__(self) -> int:
        return len(self._transactions)


class DataFrameTransactionStore:
    """
    Store backed by a pandas DataFrame (see core.frames for the schema).
    Rows are converted to Transaction objects on each query.
    """

    def __init__(self, transactions: pd.DataFrame):
        validate_transaction_frame(transactions)
        self._df = transactions

    @classmethod
    def from_csv(cls, path: str) -> "DataFrameTransactionStore":
        return cls(pd.read_csv(path))

    def get_all_transactions(self) -> List[Transaction]:
        return transactions_from_frame(self._df)

    def get_transactions_by_account(self, account_id: str) -> List[Transaction]:
        if "account_id" not in self._df.columns:
            return []
        mask = self._df["account_id"].map(optional_id) == str(account_id)
        return transactions_from_frame(self._df[mask])

    def __len__(self) -> int:
        return len(self._df)
