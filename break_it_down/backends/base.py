"""
Backend interfaces consumed by the core.

The core never talks to a database or an identity service directly: it is
handed a DataStoreClient scoped to the signed-in user and a SessionProvider.
Both report failures as result values.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from break_it_down.models import StoreResult, SessionResult, User, TASKS_TABLE, STEPS_TABLE
from break_it_down.utils.exceptions import InvalidParameterError

KNOWN_TABLES = (TASKS_TABLE, STEPS_TABLE)


class DataStoreClient(Protocol):
    """Row-oriented access to the ``tasks`` and ``steps`` tables for one user."""

    async def select(
        self,
        table: str,
        columns: str,
        order_by: Optional[str] = None,
        ascending: bool = True,
        filters: Optional[Dict[str, Any]] = None,
        in_filter: Optional[Tuple[str, Sequence[Any]]] = None,
    ) -> StoreResult:
        ...

    async def insert(self, table: str, values: Dict[str, Any], columns: str) -> StoreResult:
        ...

    async def update(self, table: str, row_id: str, values: Dict[str, Any], columns: str) -> StoreResult:
        ...

    async def delete(self, table: str, row_id: str) -> StoreResult:
        ...


class SessionProvider(Protocol):
    """Identity service: password sign-in, current user lookup, sign-out."""

    async def sign_in(self, email: str, password: str) -> SessionResult:
        ...

    async def get_current_user(self, access_token: Optional[str]) -> Optional[User]:
        ...

    async def sign_out(self, access_token: Optional[str]) -> SessionResult:
        ...


def check_table(table: str) -> str:
    """Raise InvalidParameterError for tables the app does not define."""
    if table not in KNOWN_TABLES:
        raise InvalidParameterError("table", f"Unknown table '{table}'", actual_value=table)
    return table


def parse_columns(columns: str) -> List[str]:
    """Split a ``"id, title, status"`` projection into column names."""
    return [c.strip() for c in columns.split(",") if c.strip()]
