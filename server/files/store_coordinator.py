"""
Store coordinator module.

Owns the single lock that serialises every mutation of the file store and
every append to the request log. Handlers receive a coordinator instead of
touching the store or the log directly, so each critical section below is the
whole extent of the lock. The lock is never held while reading from or
writing to a client socket.

Append order in the request log is lock-acquisition order. Two records that
share a timestamp are ordered by which request took the lock first.
"""

import asyncio
from pathlib import Path
from typing import Optional

from common.protocol_definitions import StoredFile
from server.files.file_store import FileStore
from server.utils.request_log import RequestLog


class StoreCoordinator:
    """Serialises access to the shared file store and request log."""

    def __init__(self, store: FileStore, request_log: RequestLog):
        self.store = store
        self.request_log = request_log
        self.lock = asyncio.Lock()  # Protect shared store and log

    async def stage(self, name: str) -> Optional[Path]:
        """Create a staged upload, or return None if ``name`` already exists."""
        async with self.lock:
            if self.store.exists(name):
                return None
            return self.store.create_staging(name)

    async def commit(self, staged: Path, name: str) -> Optional[StoredFile]:
        """Publish a staged upload.

        Returns None, after discarding the staged file, when another upload
        committed the same name first.
        """
        async with self.lock:
            if self.store.exists(name):
                self.store.discard(staged)
                return None
            return self.store.commit(staged, name)

    async def discard(self, staged: Path):
        async with self.lock:
            self.store.discard(staged)

    async def record(self, client: str, command: str) -> bool:
        """Append a request log record."""
        async with self.lock:
            return self.request_log.append(client, command)
