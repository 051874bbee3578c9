"""
In-memory data store.

Tables are shared by all users of one InMemoryDatabase; every row carries
the owning ``user_id`` and each InMemoryDataStore only sees its own user's
rows. The database enforces what a hosted backend would: server-assigned ids
and timestamps, the task status check, required columns, and cascading
deletes from tasks to steps.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from break_it_down.models import StoreResult, TaskStatus, TASKS_TABLE, STEPS_TABLE
from break_it_down.utils.logger import get_logger

from .base import check_table, parse_columns

logger = get_logger(__name__)

OWNER_COLUMN = "user_id"
READ_ONLY_COLUMNS = {"id", "created_at", OWNER_COLUMN}

_STATUS_VALUES = {s.value for s in TaskStatus}


def _plain_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Copy *values*, storing enum members by their value."""
    return {k: (v.value if isinstance(v, TaskStatus) else v) for k, v in values.items()}


class InMemoryDatabase:
    """Holds the tables; hand out per-user clients with :meth:`client`."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {
            TASKS_TABLE: {},
            STEPS_TABLE: {},
        }
        self._last_timestamp: Optional[datetime] = None

    def client(self, user_id: str) -> "InMemoryDataStore":
        return InMemoryDataStore(self, user_id)

    def next_timestamp(self) -> str:
        """UTC timestamp, strictly increasing so created_at ordering is total."""
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now.isoformat(timespec="microseconds")

    def changed(self, table: str) -> None:
        """Hook called after every successful mutation of *table*."""


class InMemoryDataStore:
    """DataStoreClient over an InMemoryDatabase, scoped to one user."""

    def __init__(self, database: InMemoryDatabase, user_id: str):
        self.database = database
        self.user_id = user_id

    # ------------------------------------------------------------------
    # DataStoreClient
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: str,
        order_by: Optional[str] = None,
        ascending: bool = True,
        filters: Optional[Dict[str, Any]] = None,
        in_filter: Optional[Tuple[str, Sequence[Any]]] = None,
    ) -> StoreResult:
        rows = self._owned_rows(check_table(table))

        for column, value in (filters or {}).items():
            rows = [r for r in rows if r.get(column) == value]

        if in_filter is not None:
            column, values = in_filter
            allowed = set(values)
            rows = [r for r in rows if r.get(column) in allowed]

        if order_by:
            rows.sort(key=lambda r: r.get(order_by), reverse=not ascending)

        return StoreResult.success([self._project(r, columns) for r in rows])

    async def insert(self, table: str, values: Dict[str, Any], columns: str) -> StoreResult:
        check_table(table)
        values = _plain_values(values)
        error = self._check_values(table, values, creating=True)
        if error:
            return StoreResult.failure(error)

        row = {k: v for k, v in values.items() if k not in READ_ONLY_COLUMNS}
        row["id"] = str(uuid.uuid4())
        row[OWNER_COLUMN] = self.user_id
        if table == TASKS_TABLE:
            row.setdefault("status", TaskStatus.ACTIVE.value)
            row["created_at"] = self.database.next_timestamp()
        else:
            row.setdefault("done", False)

        checkpoint = self._checkpoint(table)
        self.database.tables[table][row["id"]] = row
        error = self._persist(checkpoint)
        if error:
            return StoreResult.failure(error)
        return StoreResult.success([self._project(row, columns)])

    async def update(self, table: str, row_id: str, values: Dict[str, Any], columns: str) -> StoreResult:
        check_table(table)
        row = self._owned_row(table, row_id)
        if row is None:
            return StoreResult.failure(f"No row in '{table}' with id {row_id}")

        values = _plain_values(values)
        read_only = READ_ONLY_COLUMNS.intersection(values)
        if read_only:
            return StoreResult.failure(f"Column '{sorted(read_only)[0]}' cannot be updated")

        error = self._check_values(table, values, creating=False)
        if error:
            return StoreResult.failure(error)

        checkpoint = self._checkpoint(table)
        row.update(values)
        error = self._persist(checkpoint)
        if error:
            return StoreResult.failure(error)
        return StoreResult.success([self._project(row, columns)])

    async def delete(self, table: str, row_id: str) -> StoreResult:
        check_table(table)
        row = self._owned_row(table, row_id)
        if row is None:
            # Deleting nothing is not an error, same as a filtered SQL DELETE
            return StoreResult.success()

        checkpoint = self._checkpoint(table, STEPS_TABLE) if table == TASKS_TABLE else self._checkpoint(table)
        del self.database.tables[table][row_id]
        if table == TASKS_TABLE:
            steps = self.database.tables[STEPS_TABLE]
            orphaned = [sid for sid, s in steps.items() if s.get("task_id") == row_id]
            for step_id in orphaned:
                del steps[step_id]
            if orphaned:
                logger.debug(f"Cascade removed {len(orphaned)} steps of task {row_id}")

        error = self._persist(checkpoint)
        if error:
            return StoreResult.failure(error)
        return StoreResult.success()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _checkpoint(self, *tables: str) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {t: {k: dict(v) for k, v in self.database.tables[t].items()} for t in tables}

    def _persist(self, checkpoint: Dict[str, Dict[str, Dict[str, Any]]]) -> Optional[str]:
        """
        Hand the changed tables to the database; if that fails, put the
        checkpointed rows back and return the error message.
        """
        written: List[str] = []
        try:
            for table in checkpoint:
                self.database.changed(table)
                written.append(table)
        except OSError as e:
            self.database.tables.update(checkpoint)
            logger.error(f"Could not save table '{table}', change rolled back: {e}")
            for done in written:
                try:
                    self.database.changed(done)
                except OSError as retry_error:
                    logger.error(f"Could not restore table '{done}' on disk: {retry_error}")
            return f"Could not save '{table}': {e}"
        return None

    def _owned_rows(self, table: str) -> List[Dict[str, Any]]:
        return [r for r in self.database.tables[table].values() if r.get(OWNER_COLUMN) == self.user_id]

    def _owned_row(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        row = self.database.tables[table].get(row_id)
        if row is None or row.get(OWNER_COLUMN) != self.user_id:
            return None
        return row

    def _check_values(self, table: str, values: Dict[str, Any], creating: bool) -> Optional[str]:
        """Column constraints; returns an error message or None."""
        if table == TASKS_TABLE:
            if creating or "title" in values:
                title = values.get("title")
                if not isinstance(title, str) or not title.strip():
                    return 'null value in column "title" violates not-null constraint'
            if creating or "status" in values:
                status = values.get("status", TaskStatus.ACTIVE.value)
                if status not in _STATUS_VALUES:
                    return f'new row for relation "tasks" violates check constraint "tasks_status_check" ({status})'
        else:
            if creating:
                task_id = values.get("task_id")
                if self._owned_row(TASKS_TABLE, str(task_id)) is None:
                    return f'insert on table "steps" violates foreign key constraint (task_id={task_id})'
                if not isinstance(values.get("step_index"), int):
                    return 'null value in column "step_index" violates not-null constraint'
            if (creating or "text" in values) and not values.get("text"):
                return 'null value in column "text" violates not-null constraint'
        return None

    @staticmethod
    def _project(row: Dict[str, Any], columns: str) -> Dict[str, Any]:
        names = parse_columns(columns)
        if names == ["*"]:
            return {k: v for k, v in row.items() if k != OWNER_COLUMN}
        return {name: row.get(name) for name in names}
