"""JSON-file store for per-call conversation state and assistant records."""

import asyncio
import json
import logging
import os
import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from pydantic import ValidationError

from app.exceptions.custom import StateStoreError
from app.schemas.call import CallConversationState
from app.schemas.telnyx import AssistantCallRecord

logger = logging.getLogger(__name__)

_UNSAFE_KEY_RE = re.compile(r"[^A-Za-z0-9_\-]")

STATES_DIR = "calls"
RECORDS_DIR = "assistant"


def safe_key(key: str) -> str:
    """Make a call id usable as a file name."""
    cleaned = _UNSAFE_KEY_RE.sub("_", key.strip())
    if not cleaned.strip("_"):
        raise StateStoreError("Empty storage key", call_id=key)
    return cleaned


class _CallLock:
    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class FileStateStore:
    def __init__(self, data_dir: str | Path):
        self._root = Path(data_dir)
        self._locks: dict[str, _CallLock] = {}

    def _path(self, kind: str, key: str) -> Path:
        return self._root / kind / f"{safe_key(key)}.json"

    @asynccontextmanager
    async def lock(self, call_id: str) -> AsyncIterator[None]:
        """Serialize read-modify-write for one call id."""
        entry = self._locks.get(call_id)
        if entry is None:
            entry = self._locks[call_id] = _CallLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(call_id, None)

    async def _read(self, path: Path, key: str) -> dict | None:
        def _do_read() -> str | None:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")

        try:
            raw = await asyncio.to_thread(_do_read)
        except OSError as exc:
            raise StateStoreError(f"Cannot read {path.name}: {exc}", call_id=key) from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StateStoreError(f"Corrupt state file {path.name}", call_id=key) from exc

    async def _write(self, path: Path, key: str, body: str) -> None:
        def _do_write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(body, encoding="utf-8")
            os.replace(tmp, path)

        try:
            await asyncio.to_thread(_do_write)
        except OSError as exc:
            raise StateStoreError(f"Cannot write {path.name}: {exc}", call_id=key) from exc

    async def _delete(self, path: Path, key: str) -> None:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise StateStoreError(f"Cannot delete {path.name}: {exc}", call_id=key) from exc

    async def load_state(self, call_id: str) -> CallConversationState | None:
        data = await self._read(self._path(STATES_DIR, call_id), call_id)
        if data is None:
            return None
        try:
            return CallConversationState.model_validate(data)
        except ValidationError as exc:
            raise StateStoreError("Invalid conversation state", call_id=call_id) from exc

    async def save_state(self, call_id: str, state: CallConversationState) -> None:
        await self._write(self._path(STATES_DIR, call_id), call_id, state.model_dump_json())

    async def delete_state(self, call_id: str) -> None:
        await self._delete(self._path(STATES_DIR, call_id), call_id)

    async def load_record(self, key: str) -> AssistantCallRecord | None:
        data = await self._read(self._path(RECORDS_DIR, key), key)
        if data is None:
            return None
        try:
            return AssistantCallRecord.model_validate(data)
        except ValidationError as exc:
            raise StateStoreError("Invalid assistant record", call_id=key) from exc

    async def save_record(self, record: AssistantCallRecord) -> None:
        await self._write(self._path(RECORDS_DIR, record.key), record.key, record.model_dump_json())
        logger.debug("Saved assistant record %s", record.key)

    async def delete_record(self, key: str) -> None:
        await self._delete(self._path(RECORDS_DIR, key), key)
