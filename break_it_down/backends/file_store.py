"""
JSON file-backed data store.

Same semantics as the in-memory database; each table is persisted to
``<storage_dir>/<table>.json`` after every mutation.
"""

import json
from pathlib import Path

from break_it_down.utils.logger import get_logger

from .memory_store import InMemoryDatabase

logger = get_logger(__name__)


class JsonFileDatabase(InMemoryDatabase):
    """File-based persistence for the ``tasks`` and ``steps`` tables."""

    def __init__(self, storage_dir: str = "./data"):
        super().__init__()
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._load_all()

    def _path(self, table: str) -> Path:
        return self.storage_dir / f"{table}.json"

    def _load_all(self):
        """Load every table from disk."""
        for table in self.tables:
            path = self._path(table)
            if not path.exists():
                continue
            try:
                rows = json.loads(path.read_text(encoding="utf-8"))
                self.tables[table] = {str(r["id"]): r for r in rows}
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable table file {path}: {e}")

    def _save(self, table: str):
        """Persist a table to disk."""
        rows = list(self.tables[table].values())
        path = self._path(table)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(rows, indent=2), encoding="utf-8")
        tmp.replace(path)

    def changed(self, table: str) -> None:
        self._save(table)
