"""Per-user transaction operations: list, create, delete, import, export."""

from datetime import date
from typing import List, Optional

import pandas as pd

from models import Transaction
from schemas import TransactionIn
from .account_store import AccountStore
from .errors import TransactionImportError
from .observability import log_import_complete, log_import_failed, timed_block
from .ownership import ensure_owner
from .transaction_importer import TransactionImporter


class TransactionService:
    """Transaction CRUD scoped to the calling user."""

    DEFAULT_CATEGORY = "Uncategorized"
    EXPORT_COLUMNS = ["title", "amount", "type", "category", "account", "date", "notes"]

    def __init__(self, store: AccountStore):
        self.store = store

    def list(self, email: str) -> List[Transaction]:
        user = self.store.require_user(email)
        return self.store.find_transactions_by_user(user)

    def create(self, email: str, data: TransactionIn) -> Transaction:
        user = self.store.require_user(email)
        return self.store.save(self._build(user, data))

    def delete(self, email: str, transaction_id: int) -> None:
        user = self.store.require_user(email)
        txn = ensure_owner(user, self.store.get_transaction(transaction_id), "Transaction")
        self.store.delete(txn)

    def import_file(self, email: str, filename: Optional[str], content: bytes) -> int:
        """
        Parse an uploaded file and save every valid row for the caller.

        Returns:
            Number of transactions saved.

        Raises:
            NotFoundError: Unknown caller.
            TransactionImportError: Nothing importable in the file.
        """
        user = self.store.require_user(email)
        importer = TransactionImporter()
        fmt = importer.detect_format(filename)

        try:
            with timed_block("transaction_import"):
                records = importer.parse(filename, content)
        except TransactionImportError as e:
            log_import_failed(fmt, e.reason)
            raise

        saved = self.store.save_all(self._build(user, record) for record in records)
        log_import_complete(user.id, fmt, len(saved), importer.skipped_rows)
        return len(saved)

    def export_rows(self, email: str) -> List[Transaction]:
        return self.list(email)

    def export_csv(self, email: str) -> str:
        """CSV in the same layout the importer reads (dates as M/D/YYYY)."""
        rows = [
            {
                "title": t.title,
                "amount": t.amount,
                "type": t.type,
                "category": t.category,
                "account": t.account,
                "date": f"{t.date.month}/{t.date.day}/{t.date.year}" if t.date else "",
                "notes": t.notes,
            }
            for t in self.list(email)
        ]
        df = pd.DataFrame(rows, columns=self.EXPORT_COLUMNS)
        return df.to_csv(index=False)

    def _build(self, user, data: TransactionIn) -> Transaction:
        return Transaction(
            user_id=user.id,
            title=data.title,
            amount=data.amount,
            type=data.type,
            category=data.category or self.DEFAULT_CATEGORY,
            account=data.account,
            date=data.date or date.today(),
            notes=data.notes,
        )
