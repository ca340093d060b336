"""
Google Sheets Storage Implementation

DESIGN DECISION: The shared ledger lives in one spreadsheet:
1. Everyone in the group can open it and check the numbers
2. Nothing to host or migrate
3. Sheet history doubles as a backup

TRADEOFFS:
- Not suitable for high-volume data (fine for a friend group)
- No transactions, so an expense and its splits live in ONE row
  (splits as JSON); deleting the row deletes the splits with it
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so the flows and the
settlement engine don't change if the backend does.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from settleup.config import get_settings
from settleup.models.expense import (
    AppUser,
    Expense,
    ExpenseCategory,
    ExpenseSplit,
    ExternalContact,
    Settlement,
    SettlementStatus,
)
from settleup.models.audit import (
    AUDIT_SHEET_COLUMNS,
    AuditEvent,
    AuditEventType,
    AuditSeverity,
)
from settleup.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    ParticipantStorageInterface,
    SettlementStorageInterface,
    StorageError,
    filter_expenses,
)


SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "date",
    "description",
    "amount",
    "payer_id",
    "category",
    "notes",
    "proof_of_payment_url",
    "splits_json",
]

# Column mappings for Friends sheet
PARTICIPANT_COLUMNS = [
    "id",
    "kind",
    "name",
    "email",
    "username",
    "avatar_url",
]

# Column mappings for Settlements sheet
SETTLEMENT_COLUMNS = [
    "from_id",
    "to_id",
    "amount",
    "status",
    "proof_of_payment_url",
]

# Audit sheet columns follow the model's row layout
AUDIT_COLUMNS = AUDIT_SHEET_COLUMNS


def _safe_getter(row: list):
    """Index into a row, treating missing or empty cells as default."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Opens the ledger spreadsheet and hands out its worksheets.

    Authorization is retried; missing worksheets are created with a
    header row on first access.
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
        """Authorize with the service account (once; the client is reused)."""
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"No service account file at {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Could not authorize with Google: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """The ledger spreadsheet, opened on first use."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"No spreadsheet with id {self._settings.spreadsheet_id} "
                    "is shared with the service account"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS
        )

    def get_participants_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.participants_sheet_name, PARTICIPANT_COLUMNS, rows=200
        )

    def get_settlements_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.settlements_sheet_name, SETTLEMENT_COLUMNS
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row; its splits are JSON-serialized in the last column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, expense: Expense) -> list:
        """Convert an Expense to a spreadsheet row."""
        return [
            str(expense.id),
            expense.date.isoformat(),
            expense.description,
            str(expense.amount),
            expense.payer_id,
            expense.category.value,
            expense.notes or "",
            expense.proof_of_payment_url or "",
            json.dumps([split.model_dump(mode="json") for split in expense.splits]),
        ]

    def _row_to_expense(self, row: list) -> Expense:
        """Convert a spreadsheet row to an Expense."""
        safe_get = _safe_getter(row)

        splits = []
        splits_json = safe_get(8)
        if splits_json:
            splits = [ExpenseSplit(**item) for item in json.loads(splits_json)]

        return Expense(
            id=UUID(safe_get(0)),
            date=date.fromisoformat(safe_get(1)),
            description=safe_get(2),
            amount=Decimal(safe_get(3, "0")),
            payer_id=safe_get(4),
            category=ExpenseCategory(safe_get(5, ExpenseCategory.OTHER.value)),
            notes=safe_get(6) or None,
            proof_of_payment_url=safe_get(7) or None,
            splits=splits,
        )

    def _find_row_index(self, all_rows: list[list], expense_id: UUID) -> Optional[int]:
        """1-based sheet row of an expense (row 1 is the header)."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == str(expense_id):
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def save_expense(self, expense: Expense) -> bool:
        """Append an expense row."""
        try:
            sheet = self._client.get_expenses_sheet()
            if self._find_row_index(sheet.get_all_values(), expense.id) is not None:
                raise DuplicateError(f"Expense already exists: {expense.id}")
            sheet.append_row(self._expense_to_row(expense), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        """Retrieve an expense by its ID."""
        try:
            sheet = self._client.get_expenses_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(expense_id):
                    return self._row_to_expense(row)
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def update_expense(self, expense: Expense) -> bool:
        """Replace an expense row, splits included."""
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row_index(sheet.get_all_values(), expense.id)
            if idx is None:
                raise NotFoundError(f"Expense not found: {expense.id}")

            new_row = self._expense_to_row(expense)
            for col_idx, value in enumerate(new_row, start=1):
                sheet.update_cell(idx, col_idx, value)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    async def delete_expense(self, expense_id: UUID) -> bool:
        """Delete an expense row (its splits go with it)."""
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row_index(sheet.get_all_values(), expense_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def list_expenses(
        self,
        participant_id: Optional[str] = None,
        category: Optional[ExpenseCategory] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> list[Expense]:
        """List expenses with optional filters."""
        try:
            sheet = self._client.get_expenses_sheet()
            expenses = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0]:
                    continue
                try:
                    expenses.append(self._row_to_expense(row))
                except (ValueError, KeyError, ArithmeticError):
                    continue  # Skip malformed rows
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        return filter_expenses(
            expenses,
            participant_id=participant_id,
            category=category,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )


class GoogleSheetsParticipantStorage(ParticipantStorageInterface):
    """Google Sheets implementation of the friends list."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _participant_to_row(self, participant: Union[AppUser, ExternalContact]) -> list:
        return [
            participant.id,
            participant.kind,
            participant.name,
            participant.email,
            getattr(participant, "username", None) or "",
            participant.avatar_url or "",
        ]

    def _row_to_participant(self, row: list) -> Union[AppUser, ExternalContact]:
        safe_get = _safe_getter(row)
        if safe_get(1) == "external":
            return ExternalContact(
                id=safe_get(0),
                name=safe_get(2),
                email=safe_get(3),
                avatar_url=safe_get(5) or None,
            )
        return AppUser(
            id=safe_get(0),
            name=safe_get(2),
            email=safe_get(3),
            username=safe_get(4) or None,
            avatar_url=safe_get(5) or None,
        )

    async def list_participants(self) -> list[Union[AppUser, ExternalContact]]:
        try:
            sheet = self._client.get_participants_sheet()
            participants = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0]:
                    continue
                try:
                    participants.append(self._row_to_participant(row))
                except ValueError:
                    continue  # Skip malformed rows
            return participants
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list participants: {e}")

    async def save_participant(self, participant: Union[AppUser, ExternalContact]) -> bool:
        try:
            sheet = self._client.get_participants_sheet()
            new_row = self._participant_to_row(participant)
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] == participant.id:
                    for col_idx, value in enumerate(new_row, start=1):
                        sheet.update_cell(idx, col_idx, value)
                    return True
            sheet.append_row(new_row, value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save participant: {e}")

    async def remove_participant(self, participant_id: str) -> bool:
        try:
            sheet = self._client.get_participants_sheet()
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] == participant_id:
                    sheet.delete_rows(idx)
                    return True
            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to remove participant: {e}")


class GoogleSheetsSettlementStorage(SettlementStorageInterface):
    """Google Sheets implementation of recorded settlements."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _settlement_to_row(self, settlement: Settlement) -> list:
        return [
            settlement.from_id,
            settlement.to_id,
            str(settlement.amount),
            settlement.status.value,
            settlement.proof_of_payment_url or "",
        ]

    def _row_to_settlement(self, row: list) -> Settlement:
        safe_get = _safe_getter(row)
        return Settlement(
            from_id=safe_get(0),
            to_id=safe_get(1),
            amount=Decimal(safe_get(2)),
            status=SettlementStatus(safe_get(3, SettlementStatus.PENDING.value)),
            proof_of_payment_url=safe_get(4) or None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def add_settlement(self, settlement: Settlement) -> bool:
        try:
            sheet = self._client.get_settlements_sheet()
            sheet.append_row(self._settlement_to_row(settlement), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to add settlement: {e}")

    async def list_settlements(
        self,
        participant_id: Optional[str] = None,
    ) -> list[Settlement]:
        try:
            sheet = self._client.get_settlements_sheet()
            settlements = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0]:
                    continue
                if participant_id and participant_id not in row[:2]:
                    continue
                try:
                    settlements.append(self._row_to_settlement(row))
                except (ValueError, ArithmeticError):
                    continue  # Skip malformed rows
            return settlements
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list settlements: {e}")

    async def update_settlement_status(
        self,
        from_id: str,
        to_id: str,
        status: SettlementStatus,
        proof_of_payment_url: Optional[str] = None,
    ) -> bool:
        try:
            sheet = self._client.get_settlements_sheet()
            updated = False
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if len(row) > 1 and row[0] == from_id and row[1] == to_id:
                    sheet.update_cell(idx, 4, status.value)
                    if proof_of_payment_url:
                        sheet.update_cell(idx, 5, proof_of_payment_url)
                    updated = True
            return updated
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update settlement: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit trail in its own worksheet, one event per row.

    Rows are only ever appended.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
            actor_id=safe_get(11) or None,
        )

    def _read_events(self, keep) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except ValueError:
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
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = self._read_events(
                lambda row: len(row) > 6 and row[6] == str(correlation_id)
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = self._read_events(
                lambda row: len(row) > 5 and row[4] == entity_type and row[5] == entity_id
            )
        except StorageError:
            raise
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
            events = self._read_events(lambda row: True)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
