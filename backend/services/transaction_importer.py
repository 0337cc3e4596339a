"""
CSV/JSON transaction import with row-level tolerance.

CSV layout:
    - First line is the header; names are lower-cased and trimmed, and
      trailing empty names (from a trailing comma) are dropped
    - Each following line is split on commas (no quoting rules); literal
      double quotes are stripped from every value
    - Recognised columns: title, amount, type, category, account, date, notes
    - Rows with the wrong number of values, a missing amount/type/account,
      or any unparseable value are skipped, never fatal

JSON layout:
    - An array of transaction objects; unknown keys are ignored
"""

import json
import re
from datetime import datetime, date
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from schemas import TransactionIn
from .errors import TransactionImportError
from .observability import logger


class TransactionImporter:
    """Parse an uploaded file into normalized transaction records."""

    CSV_DATE_FORMAT = "%m/%d/%Y"
    REQUIRED_FIELDS = ("amount", "type", "account")
    DEFAULT_TITLE = "Untitled"
    DEFAULT_CATEGORY = "Uncategorized"

    _AMOUNT_JUNK = re.compile(r"[^\d.\-]")
    _JSON_ADAPTER = TypeAdapter(List[TransactionIn])

    def __init__(self):
        self.skipped_rows = 0
        self.warnings: List[str] = []

    @staticmethod
    def detect_format(filename: Optional[str]) -> str:
        """CSV when the filename says so, JSON otherwise."""
        if filename and filename.lower().endswith(".csv"):
            return "csv"
        return "json"

    def parse(self, filename: Optional[str], content: bytes) -> List[TransactionIn]:
        """
        Parse an uploaded file.

        Args:
            filename: Original upload name, used to pick the format.
            content: Raw file bytes.

        Returns:
            Non-empty list of parsed transactions.

        Raises:
            TransactionImportError: ``reason="unreadable"`` when the file can't
                be parsed at all, ``reason="empty"`` when no row survived.
        """
        self.skipped_rows = 0
        self.warnings = []

        text = self._decode(content)
        if self.detect_format(filename) == "csv":
            transactions = self.parse_csv(text)
        else:
            transactions = self.parse_json(text)

        if not transactions:
            raise TransactionImportError(
                "No valid transactions found in file",
                reason=TransactionImportError.EMPTY,
                warnings=self.warnings,
            )

        logger.info("Import parsed", rows=len(transactions), skipped=self.skipped_rows)
        return transactions

    def _decode(self, content: bytes) -> str:
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError:
            return content.decode("latin-1")

    # -------------------------------------------------------------------------
    # CSV
    # -------------------------------------------------------------------------

    def parse_csv(self, text: str) -> List[TransactionIn]:
        lines = text.splitlines()
        if not lines or not lines[0].strip():
            raise TransactionImportError(
                "CSV file is empty", reason=TransactionImportError.UNREADABLE
            )

        headers = self._drop_trailing_empty([h.strip() for h in lines[0].lower().split(",")])
        transactions = []

        for line_number, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue

            tokens = line.split(",")
            # Spreadsheet exports pad rows with trailing commas
            if len(tokens) > len(headers) and not any(t.strip() for t in tokens[len(headers):]):
                tokens = tokens[:len(headers)]
            if len(tokens) != len(headers):
                self._skip(line_number, "column count mismatch")
                continue

            try:
                record = self._parse_row(headers, tokens)
            except ValueError as e:
                self._skip(line_number, str(e))
                continue

            missing = [f for f in self.REQUIRED_FIELDS if record.get(f) is None]
            if missing:
                self._skip(line_number, f"missing {', '.join(missing)}")
                continue

            transactions.append(TransactionIn(**record))

        return transactions

    @staticmethod
    def _drop_trailing_empty(values: List[str]) -> List[str]:
        while values and not values[-1]:
            values = values[:-1]
        return values

    def _parse_row(self, headers: List[str], tokens: List[str]) -> dict:
        record = {
            "title": self.DEFAULT_TITLE,
            "category": self.DEFAULT_CATEGORY,
            "date": date.today(),
        }

        for header, token in zip(headers, tokens):
            value = token.replace('"', "").strip()

            if header == "title":
                record["title"] = value or self.DEFAULT_TITLE
            elif header == "amount":
                if not value:
                    raise ValueError("amount required")
                record["amount"] = self._parse_amount(value)
            elif header == "type":
                if not value:
                    raise ValueError("type required")
                record["type"] = value.lower()
            elif header == "category":
                record["category"] = value or self.DEFAULT_CATEGORY
            elif header == "account":
                if not value:
                    raise ValueError("account required")
                record["account"] = value
            elif header == "date":
                if value:
                    record["date"] = datetime.strptime(value, self.CSV_DATE_FORMAT).date()
            elif header == "notes":
                record["notes"] = value

        return record

    def _parse_amount(self, value: str) -> float:
        """Strip everything but digits, minus and period: '$12.50abc' -> 12.5."""
        cleaned = self._AMOUNT_JUNK.sub("", value)
        try:
            return float(cleaned)
        except ValueError:
            raise ValueError(f"invalid amount: {value!r}")

    def _skip(self, line_number: int, reason: str) -> None:
        self.skipped_rows += 1
        self.warnings.append(f"Line {line_number}: {reason}")
        logger.debug("Skipped import row", line=line_number, reason=reason)

    # -------------------------------------------------------------------------
    # JSON
    # -------------------------------------------------------------------------

    def parse_json(self, text: str) -> List[TransactionIn]:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise TransactionImportError(
                f"Invalid JSON: {e.msg}", reason=TransactionImportError.UNREADABLE
            )

        if not isinstance(payload, list):
            raise TransactionImportError(
                "JSON import must be an array of transactions",
                reason=TransactionImportError.UNREADABLE,
            )

        try:
            return self._JSON_ADAPTER.validate_python(payload)
        except PydanticValidationError as e:
            raise TransactionImportError(
                f"Invalid transaction data: {e.error_count()} error(s)",
                reason=TransactionImportError.UNREADABLE,
            )
