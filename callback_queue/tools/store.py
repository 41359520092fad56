"""
Durable callback store.

The queue treats the store as a whole-set repository: ``load`` returns
every request and ``save_all`` overwrites the stored set. Two
implementations are provided: an in-memory store for tests and demos,
and a JSON document store that writes atomically to disk.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, Sequence

from pydantic import ValidationError

from callback_queue.schemas.callback_schema import CallbackRequest

logger = logging.getLogger(__name__)

STORE_FORMAT_VERSION = 1


class StoreError(Exception):
    """Raised when the store cannot read or write the callback set."""


class CallbackStore(Protocol):
    async def load(self) -> list[CallbackRequest]:
        """Return every stored callback request."""

    async def save_all(self, requests: Sequence[CallbackRequest]) -> None:
        """Replace the stored set with ``requests``."""


class InMemoryCallbackStore:
    """Process-local store. Holds deep copies so callers cannot mutate stored state."""

    def __init__(self, initial: Sequence[CallbackRequest] = ()) -> None:
        self._records: dict[str, CallbackRequest] = {
            r.id: r.model_copy(deep=True) for r in initial
        }
        self.save_count = 0

    async def load(self) -> list[CallbackRequest]:
        return [r.model_copy(deep=True) for r in self._records.values()]

    async def save_all(self, requests: Sequence[CallbackRequest]) -> None:
        self._records = {r.id: r.model_copy(deep=True) for r in requests}
        self.save_count += 1

    def reset(self) -> None:
        """Clear all records. Used by test fixtures for isolation."""
        self._records.clear()
        self.save_count = 0


class JsonFileCallbackStore:
    """
    Stores the full callback set as one JSON document.

    Writes go to a temporary file in the same directory and are renamed
    over the target, so a crash mid-write leaves the previous set intact.
    File I/O runs in a worker thread to keep the event loop responsive.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def load(self) -> list[CallbackRequest]:
        return await asyncio.to_thread(self._read)

    async def save_all(self, requests: Sequence[CallbackRequest]) -> None:
        document = {
            "version": STORE_FORMAT_VERSION,
            "callbacks": [r.model_dump(mode="json") for r in requests],
        }
        await asyncio.to_thread(self._write, document)

    def _read(self) -> list[CallbackRequest]:
        if not self.path.exists():
            logger.info("No callback store at %s, starting empty", self.path)
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StoreError(f"Cannot read callback store {self.path}: {exc}") from exc

        version = data.get("version") if isinstance(data, dict) else None
        if version != STORE_FORMAT_VERSION:
            raise StoreError(
                f"Unsupported callback store version {version!r} in {self.path}"
            )
        try:
            requests = [CallbackRequest.model_validate(item) for item in data.get("callbacks", [])]
        except ValidationError as exc:
            raise StoreError(f"Malformed callback record in {self.path}: {exc}") from exc
        logger.debug("Loaded %d callbacks from %s", len(requests), self.path)
        return requests

    def _write(self, document: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StoreError(f"Cannot write callback store {self.path}: {exc}") from exc
