"""
Structured activity log

Every entry is a self-contained JSON object (timestamp, level, category,
source location, tags, metadata, optional error and performance blocks).
Entries are appended to a JSONL file and kept in an in-memory ring buffer
that the web layer serves from /api/logs/recent.
"""

import json
import os
import sys
import uuid
import traceback
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List, Deque
from enum import Enum


class LogCategory(str, Enum):
    """Categories for structured log messages."""
    SYSTEM = "system"
    API = "api"
    TASK = "task"
    AUTH = "auth"
    STORE = "store"
    NETWORK = "network"
    USER_ACTION = "user_action"
    ERROR = "error"


class StructuredLogEntry:
    """A single structured log entry."""

    def __init__(
        self,
        level: str,
        message: str,
        category: str = "system",
        source_module: str = "",
        source_function: str = "",
        source_line: int = 0,
        session_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        error_info: Optional[Dict[str, Any]] = None,
        performance: Optional[Dict[str, Any]] = None,
    ):
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.level = level.upper()
        self.message = message
        self.category = category.value if isinstance(category, LogCategory) else category
        self.source_module = source_module
        self.source_function = source_function
        self.source_line = source_line
        self.session_id = session_id or ""
        self.tags = tags or []
        self.metadata = metadata or {}
        self.error_info = error_info
        self.performance = performance

    def to_dict(self) -> Dict[str, Any]:
        entry = {
            "timestamp": self.timestamp,
            "level": self.level,
            "message": self.message,
            "category": self.category,
            "source": {
                "module": self.source_module,
                "function": self.source_function,
                "line": self.source_line,
            },
            "session_id": self.session_id,
            "tags": self.tags,
            "metadata": self.metadata,
        }
        if self.error_info:
            entry["error"] = self.error_info
        if self.performance:
            entry["performance"] = self.performance
        return entry


class ActivityLogger:
    """
    Structured activity log with a JSONL file sink and a queryable ring buffer.

    Usage:
        activity = ActivityLogger(log_file="./logs/activity.jsonl")
        activity.log_task_event("archived", task_id, title="Plan the trip")
        activity.get_recent_logs(limit=20, category="task")
    """

    def __init__(
        self,
        log_file: Optional[str] = "./logs/activity.jsonl",
        max_memory_entries: int = 500,
        enabled: bool = True,
    ):
        self.enabled = enabled
        self.log_file = log_file
        self.max_memory_entries = max_memory_entries
        self._memory_buffer: Deque[Dict[str, Any]] = deque(maxlen=max_memory_entries)
        self._session_id = uuid.uuid4().hex[:8]

        if self.enabled:
            if self.log_file:
                Path(self.log_file).parent.mkdir(parents=True, exist_ok=True)

            self._write_entry(StructuredLogEntry(
                level="INFO",
                message=f"Activity log session started (session_id={self._session_id})",
                category=LogCategory.SYSTEM,
                session_id=self._session_id,
                tags=["session_start"],
                metadata={"pid": os.getpid(), "platform": sys.platform},
            ))

    # ------------------------------------------------------------------
    # Core logging methods
    # ------------------------------------------------------------------

    def log(
        self,
        level: str,
        message: str,
        category: str = LogCategory.SYSTEM,
        tags: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        error_info: Optional[Dict[str, Any]] = None,
        performance: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Write a structured log entry."""
        if not self.enabled:
            return

        frame = sys._getframe(2)
        entry = StructuredLogEntry(
            level=level,
            message=message,
            category=category,
            source_module=frame.f_globals.get("__name__", ""),
            source_function=frame.f_code.co_name,
            source_line=frame.f_lineno,
            session_id=self._session_id,
            tags=tags,
            metadata=metadata,
            error_info=error_info,
            performance=performance,
        )
        self._write_entry(entry)

    def log_info(self, message: str, **kwargs) -> None:
        self.log("INFO", message, **kwargs)

    def log_warning(self, message: str, **kwargs) -> None:
        self.log("WARNING", message, **kwargs)

    def log_error(self, message: str, exc: Optional[Exception] = None, **kwargs) -> None:
        """Log an ERROR message, optionally capturing exception details."""
        if exc:
            kwargs.setdefault("error_info", {})
            kwargs["error_info"].update({
                "type": type(exc).__name__,
                "message": str(exc),
                "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
            })
            kwargs.setdefault("category", LogCategory.ERROR)
        self.log("ERROR", message, **kwargs)

    # ------------------------------------------------------------------
    # Specialized logging helpers
    # ------------------------------------------------------------------

    def log_api_call(
        self,
        endpoint: str,
        method: str = "GET",
        status_code: Optional[int] = None,
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> None:
        """Log an outbound or inbound API call with structured metadata."""
        level = "ERROR" if error else ("WARNING" if status_code and status_code >= 400 else "INFO")
        self.log(
            level=level,
            message=f"API {method} {endpoint} -> {status_code or 'no response'}",
            category=LogCategory.API,
            tags=["api_call", method.lower()],
            metadata={
                "endpoint": endpoint,
                "method": method,
                "status_code": status_code,
            },
            performance={"duration_ms": round(duration_ms, 1)} if duration_ms else None,
            error_info={"message": error} if error else None,
        )

    def log_task_event(
        self,
        event: str,
        task_id: str,
        title: str = "",
        outcome: str = "",
        error: Optional[str] = None,
    ) -> None:
        """Log a task lifecycle event (added, updated, archived, deleted...)."""
        self.log(
            level="WARNING" if error else "INFO",
            message=f"Task {event}: {title or task_id}",
            category=LogCategory.TASK,
            tags=["task", event],
            metadata={"task_id": task_id, "title": title, "outcome": outcome},
            error_info={"message": error} if error else None,
        )

    def log_user_action(self, action: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.log(
            level="INFO",
            message=f"User action: {action}",
            category=LogCategory.USER_ACTION,
            tags=["user_action"],
            metadata=details or {},
        )

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def get_recent_logs(
        self,
        limit: int = 50,
        level: Optional[str] = None,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get recent log entries, most recent first.

        Args:
            limit: Maximum number of entries to return
            level: Filter by level (e.g., "ERROR", "WARNING")
            category: Filter by category
            search_text: Case-insensitive search in message
        """
        entries = list(self._memory_buffer)

        if level:
            entries = [e for e in entries if e.get("level") == level.upper()]
        if category:
            entries = [e for e in entries if e.get("category") == category]
        if search_text:
            search_lower = search_text.lower()
            entries = [e for e in entries if search_lower in e.get("message", "").lower()]

        if limit <= 0:
            return []
        return list(reversed(entries[-limit:]))

    def get_health_summary(self) -> Dict[str, Any]:
        """Summarize error and warning counts from the ring buffer."""
        entries = list(self._memory_buffer)
        errors = sum(1 for e in entries if e.get("level") == "ERROR")
        warnings = sum(1 for e in entries if e.get("level") == "WARNING")

        categories: Dict[str, int] = {}
        for e in entries:
            cat = e.get("category", "unknown")
            categories[cat] = categories.get(cat, 0) + 1

        return {
            "session_id": self._session_id,
            "total_log_entries": len(entries),
            "error_count": errors,
            "warning_count": warnings,
            "category_breakdown": categories,
            "health_status": "healthy" if errors == 0 else ("degraded" if errors < 5 else "unhealthy"),
        }

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _write_entry(self, entry: StructuredLogEntry) -> None:
        """Write entry to the memory buffer and the JSONL file."""
        entry_dict = entry.to_dict()
        self._memory_buffer.append(entry_dict)

        if not self.log_file:
            return
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry_dict, default=str) + "\n")
        except OSError:
            pass  # the ring buffer still holds the entry
