"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view and export their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions, so a batch save is a sequence of independent appends
- Limited query capabilities (we filter in Python)

Sheets mirror the relational layout the rest of the app assumes:
``categories(id, user_id?, name, icon, color, is_default, category_type,
created_at)`` and ``expenses(id, user_id, category_id?, name, amount, type,
date, receipt_url?, ai_processed, created_at)``. Ownership scoping happens
here, by filtering on user_id.
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from snapledger.config import get_settings
from snapledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from snapledger.models.ledger import (
    Category,
    CategoryType,
    Transaction,
    TransactionType,
)
from snapledger.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    ConnectionError,
    PermissionDeniedError,
    StorageError,
    TransactionStorageInterface,
)


CATEGORY_COLUMNS = [
    "id",
    "user_id",
    "name",
    "icon",
    "color",
    "is_default",
    "category_type",
    "created_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "category_id",
    "name",
    "amount",
    "type",
    "date",
    "receipt_url",
    "ai_processed",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "owner_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the Categories worksheet."""
        return self._get_or_create_sheet(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS, rows=500
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsCategoryStorage(CategoryStorageInterface):
    """Google Sheets implementation of category storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _category_to_row(self, category: Category) -> list:
        return [
            str(category.id),
            str(category.owner_id) if category.owner_id else "",
            category.name,
            category.icon.value,
            category.color,
            str(category.is_default),
            category.category_type.value,
            category.created_at.isoformat(),
        ]

    def _row_to_category(self, row: list) -> Category:
        owner = _cell(row, 1)
        created = _cell(row, 7)
        return Category(
            id=UUID(_cell(row, 0)),
            owner_id=UUID(owner) if owner else None,
            name=_cell(row, 2),
            icon=_cell(row, 3),
            color=_cell(row, 4),
            is_default=_cell(row, 5).lower() == "true",
            category_type=CategoryType(_cell(row, 6, CategoryType.EXPENSE.value)),
            created_at=datetime.fromisoformat(created) if created else datetime.now(timezone.utc),
        )

    def _read_all(self) -> list[tuple[int, Category]]:
        """Return (sheet_row_number, category) for every readable row."""
        sheet = self._client.get_categories_sheet()
        categories = []
        # Row 1 is the header
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                categories.append((idx, self._row_to_category(row)))
            except Exception:
                continue  # Skip malformed rows
        return categories

    async def list_categories(self, owner_id: UUID) -> list[Category]:
        """List defaults followed by the owner's categories."""
        try:
            rows = [category for _, category in self._read_all()]
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

        defaults = [c for c in rows if c.owner_id is None]
        own = [c for c in rows if c.owner_id == owner_id]
        return defaults + own

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create_category(self, category: Category) -> Category:
        """Append a category row."""
        try:
            sheet = self._client.get_categories_sheet()
            sheet.append_row(self._category_to_row(category), value_input_option="RAW")
            return category
        except Exception as e:
            raise StorageError(f"Failed to create category: {e}")

    async def delete_category(self, owner_id: UUID, category_id: UUID) -> bool:
        """Delete one of the owner's categories."""
        try:
            rows = self._read_all()
        except Exception as e:
            raise StorageError(f"Failed to delete category: {e}")

        for idx, category in rows:
            if category.id != category_id:
                continue
            if category.owner_id != owner_id:
                raise PermissionDeniedError(f"Category {category_id} cannot be deleted")
            try:
                self._client.get_categories_sheet().delete_rows(idx)
            except Exception as e:
                raise StorageError(f"Failed to delete category: {e}")
            return True

        return False

    async def seed_default_categories(self, categories: list[Category]) -> int:
        """Append defaults whose ids aren't in the sheet yet."""
        try:
            existing = {category.id for _, category in self._read_all()}
            missing = [c for c in categories if c.id not in existing]
            if missing:
                sheet = self._client.get_categories_sheet()
                sheet.append_rows(
                    [self._category_to_row(c) for c in missing],
                    value_input_option="RAW",
                )
            return len(missing)
        except Exception as e:
            raise StorageError(f"Failed to seed default categories: {e}")


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    Transactions are stored one per row in the Transactions worksheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _transaction_to_row(self, transaction: Transaction) -> list:
        return [
            str(transaction.id),
            str(transaction.owner_id),
            str(transaction.category_id) if transaction.category_id else "",
            transaction.name,
            str(transaction.amount),
            transaction.transaction_type.value,
            transaction.transaction_date.isoformat(),
            transaction.receipt_url or "",
            str(transaction.ai_processed),
            transaction.created_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        category = _cell(row, 2)
        created = _cell(row, 9)
        return Transaction(
            id=UUID(_cell(row, 0)),
            owner_id=UUID(_cell(row, 1)),
            category_id=UUID(category) if category else None,
            name=_cell(row, 3),
            amount=Decimal(_cell(row, 4)),
            transaction_type=TransactionType.coerce(_cell(row, 5)),
            transaction_date=date.fromisoformat(_cell(row, 6)),
            receipt_url=_cell(row, 7) or None,
            ai_processed=_cell(row, 8).lower() == "true",
            created_at=datetime.fromisoformat(created) if created else datetime.now(timezone.utc),
        )

    def _read_owned(self, owner_id: UUID) -> list[tuple[int, Transaction]]:
        sheet = self._client.get_transactions_sheet()
        owned = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0] or _cell(row, 1) != str(owner_id):
                continue
            try:
                owned.append((idx, self._row_to_transaction(row)))
            except Exception:
                continue  # Skip malformed rows
        return owned

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        """Append a transaction row."""
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(self._transaction_to_row(transaction), value_input_option="RAW")
            return transaction
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def list_transactions(
        self,
        owner_id: UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[Transaction]:
        """List the owner's transactions with optional date filters."""
        try:
            owned = [t for _, t in self._read_owned(owner_id)]
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        matches = [
            t for t in owned
            if (date_from is None or t.transaction_date >= date_from)
            and (date_to is None or t.transaction_date <= date_to)
        ]
        # Newest first
        matches.sort(key=lambda t: (t.transaction_date, t.created_at), reverse=True)
        return matches[offset:offset + limit]

    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        """Delete a transaction row."""
        try:
            for idx, current in self._read_owned(owner_id):
                if current.id == transaction_id:
                    self._client.get_transactions_sheet().delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def reassign_category(
        self,
        owner_id: UUID,
        category_id: UUID,
        new_category_id: Optional[UUID] = None,
    ) -> int:
        """Rewrite the category_id cell of every matching row."""
        category_col = TRANSACTION_COLUMNS.index("category_id") + 1
        value = str(new_category_id) if new_category_id else ""
        changed = 0
        try:
            sheet = self._client.get_transactions_sheet()
            for idx, current in self._read_owned(owner_id):
                if current.category_id == category_id:
                    sheet.update_cell(idx, category_col, value)
                    changed += 1
        except Exception as e:
            raise StorageError(f"Failed to reassign transactions: {e}")
        return changed


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        owner = _cell(row, 4)
        entity = _cell(row, 6)
        correlation = _cell(row, 7)
        details = _cell(row, 9)
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            owner_id=UUID(owner) if owner else None,
            entity_type=_cell(row, 5) or None,
            entity_id=UUID(entity) if entity else None,
            correlation_id=UUID(correlation) if correlation else None,
            description=_cell(row, 8),
            details=json.loads(details) if details else {},
            error_message=_cell(row, 10) or None,
            is_user_action=_cell(row, 11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
