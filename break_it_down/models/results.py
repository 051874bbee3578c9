"""
Result types returned by the data store and session provider.

Backends report failures as values, never as exceptions; every call site
checks ``ok`` before touching ``rows`` or ``user``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class StoreResult:
    """Outcome of a data store operation: rows on success, a message on failure."""
    ok: bool
    rows: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def success(cls, rows: Optional[List[Dict[str, Any]]] = None) -> "StoreResult":
        return cls(ok=True, rows=list(rows or []))

    @classmethod
    def failure(cls, message: str) -> "StoreResult":
        return cls(ok=False, error=message or "Unknown store error")

    @property
    def row(self) -> Optional[Dict[str, Any]]:
        """First returned row, or None."""
        return self.rows[0] if self.rows else None


@dataclass(frozen=True)
class User:
    """Signed-in user as reported by the session provider."""
    id: str
    email: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email}


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a sign-in or sign-out request."""
    ok: bool
    user: Optional[User] = None
    access_token: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def signed_in(cls, user: User, access_token: str) -> "SessionResult":
        return cls(ok=True, user=user, access_token=access_token)

    @classmethod
    def signed_out(cls) -> "SessionResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, message: str) -> "SessionResult":
        return cls(ok=False, error=message or "Unknown session error")
