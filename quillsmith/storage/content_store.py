"""
JSON file content store.

Keeps the whole database in memory and rewrites the file after every
mutation. Paths are stored relative to the database file's directory and
exposed as absolute paths.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from quillsmith.services.llm.models import CostInfo
from quillsmith.storage.base import EntryUpdate, RecordStore
from quillsmith.storage.models import (
    ContentDatabase,
    ContentEntry,
    CostAccounting,
    OperationCostInfo,
    OperationType,
    QualityImprovementMetrics,
    utc_now_iso,
)
from quillsmith.utils.exceptions import EntryNotFoundError, StoreIOError
from quillsmith.utils.logging import get_logger

module_logger = get_logger(__name__)


def normalize_path(path: Union[str, Path]) -> str:
    """Absolute, normalised form of a document path."""
    return str(Path(path).expanduser().resolve())


class ContentStore(RecordStore):
    """
    Content database backed by a single JSON file.

    All load-modify-save sequences run under one lock, so concurrent
    pipeline tasks never interleave their writes.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        logger: Optional[logging.Logger] = None,
    ):
        self.db_path = Path(db_path).expanduser().resolve()
        self.base_dir = self.db_path.parent
        self.logger = logger or module_logger
        self._data: Optional[ContentDatabase] = None
        self._lock = asyncio.Lock()

    # --- path conversion ---

    def to_absolute(self, path: str) -> str:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate
        return normalize_path(candidate)

    def to_relative(self, path: str) -> str:
        return Path(os.path.relpath(path, self.base_dir)).as_posix()

    # --- loading ---

    def _read_sync(self) -> Optional[str]:
        try:
            return self.db_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    async def _load_unlocked(self) -> ContentDatabase:
        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(None, self._read_sync)
        except OSError as e:
            raise StoreIOError(str(self.db_path), "cannot read database", details=str(e))

        if raw is None:
            self.logger.info(f"No content database at {self.db_path}, creating an empty one")
            self._data = ContentDatabase()
            await self._save_unlocked()
            return self._data

        try:
            database = ContentDatabase.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StoreIOError(str(self.db_path), "invalid database contents", details=str(e))

        entries: dict[str, ContentEntry] = {}
        for stored_path, entry in database.entries.items():
            absolute = self.to_absolute(stored_path)
            entry.path = absolute
            entries[absolute] = entry
        database.entries = entries

        self._data = database
        self.logger.debug(f"Loaded {len(entries)} entries from {self.db_path}")
        return database

    async def load(self) -> ContentDatabase:
        async with self._lock:
            return await self._load_unlocked()

    async def _ensure_loaded(self) -> ContentDatabase:
        if self._data is None:
            return await self._load_unlocked()
        return self._data

    # --- saving ---

    def _serialize(self, database: ContentDatabase) -> str:
        payload = database.to_dict()
        payload["entries"] = {}
        for path, entry in database.entries.items():
            relative = self.to_relative(path)
            entry_dict = entry.to_dict()
            entry_dict["path"] = relative
            payload["entries"][relative] = entry_dict
        return json.dumps(payload, indent=2)

    def _write_sync(self, text: str) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.base_dir, prefix=f".{self.db_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.db_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def _save_unlocked(self) -> None:
        database = self._data if self._data is not None else ContentDatabase()
        database.last_updated = utc_now_iso()
        text = self._serialize(database)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_sync, text)
        except OSError as e:
            raise StoreIOError(str(self.db_path), "cannot write database", details=str(e))

    async def save(self) -> None:
        async with self._lock:
            await self._ensure_loaded()
            await self._save_unlocked()

    # --- access ---

    def get_data(self) -> ContentDatabase:
        if self._data is None:
            raise StoreIOError(str(self.db_path), "database has not been loaded")
        return self._data

    def get_entry(self, path: str) -> Optional[ContentEntry]:
        return self.get_data().entries.get(normalize_path(path))

    # --- mutation ---

    async def update_entry(self, path: str, update_fn: EntryUpdate) -> ContentEntry:
        key = normalize_path(path)
        async with self._lock:
            database = await self._ensure_loaded()
            entry = update_fn(database.entries.get(key))
            entry.path = key
            database.entries[key] = entry
            await self._save_unlocked()
            return entry

    async def add_entries(self, paths: list[str]) -> list[str]:
        """
        Create ``needs_review`` entries for paths not yet tracked.

        Returns:
            The newly added paths
        """
        added: list[str] = []
        async with self._lock:
            database = await self._ensure_loaded()
            for path in paths:
                key = normalize_path(path)
                if key not in database.entries:
                    database.entries[key] = ContentEntry.new(key)
                    added.append(key)
            if added:
                await self._save_unlocked()
        return added

    async def ensure_cost_accounting(self, path: str) -> CostAccounting:
        key = normalize_path(path)
        async with self._lock:
            database = await self._ensure_loaded()
            entry = database.entries.get(key)
            if entry is None:
                raise EntryNotFoundError(key)
            if entry.cost_accounting is None:
                entry.cost_accounting = CostAccounting()
                await self._save_unlocked()
            return entry.cost_accounting

    async def add_operation_cost(
        self,
        path: str,
        operation: OperationType,
        cost_info: CostInfo,
        quality_before: Optional[float] = None,
        quality_after: Optional[float] = None,
    ) -> None:
        key = normalize_path(path)
        async with self._lock:
            database = await self._ensure_loaded()
            entry = database.entries.get(key)
            if entry is None:
                raise EntryNotFoundError(key)

            operation_cost = OperationCostInfo(
                operation=operation,
                cost=cost_info.total_cost,
                provider=cost_info.provider,
                model=cost_info.model,
                input_tokens=cost_info.input_tokens,
                output_tokens=cost_info.output_tokens,
                timestamp=cost_info.timestamp,
            )

            if entry.cost_accounting is None:
                entry.cost_accounting = CostAccounting()
            entry.cost_accounting.record(operation_cost)

            if (
                operation == "improve"
                and quality_before is not None
                and quality_after is not None
                and entry.review_history
            ):
                metrics = QualityImprovementMetrics.compute(
                    quality_before,
                    quality_after,
                    cost_info.total_cost,
                    entry.improvement_iterations,
                )
                latest = entry.review_history[-1]
                latest.improvement_metrics = metrics
                latest.cost_info = operation_cost

            await self._save_unlocked()

        self.logger.debug(
            f"Recorded {operation} cost ${cost_info.total_cost:.6f} for {key}"
        )
