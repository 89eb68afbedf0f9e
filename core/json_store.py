"""
JSON-file record store for local development.

Each store is one JSON file holding an array of records. Writes go through
an asyncio lock and a read-modify-write transaction, so concurrent coroutines
in one process never interleave partial updates.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Array-of-records JSON file guarded by an asyncio lock"""

    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def load(self) -> List[Dict[str, Any]]:
        """Read all records (empty list if the file is missing or corrupt)"""
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable store {self.path}: {e}")
            return []

        if isinstance(data, dict):
            return list(data.get("records", []))
        return list(data)

    def _save(self, records: List[Dict[str, Any]]) -> None:
        data = {
            "updated_at": datetime.utcnow().isoformat(),
            "record_count": len(records),
            "records": records,
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str, ensure_ascii=False)
        tmp_path.replace(self.path)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[List[Dict[str, Any]]]:
        """Load records under the lock, let the caller mutate them, then save"""
        async with self._lock:
            records = self.load()
            yield records
            self._save(records)
