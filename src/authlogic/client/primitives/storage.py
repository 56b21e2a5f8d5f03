"""Session-scoped key/value storage for flow continuity.

The controller only ever touches persisted state through a ``KeyValueStore``.
Values must survive a full navigation round-trip within one browsing session
and disappear when the session ends.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from authlogic.client.models.errors import CorruptedStorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Protocol for session storage.

    Reads are modeled as suspension points so that implementations backed
    by slower storage fit the same interface.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored string, or None when the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store living as long as the process.

    Suitable when the "page" and the callback handler share a process.
    ``clear()`` ends the session.
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def snapshot(self) -> dict[str, str]:
        """Copy of the current contents."""
        return dict(self._data)


class FileKeyValueStore:
    """Store persisted as a single JSON object file.

    Survives process restarts, so a flow started by one process can be
    resumed by another. All writes are atomic: content goes to a temporary
    file in the same directory with ``0o600`` permissions, then is renamed
    into place. File access runs in a worker thread so the event loop is not
    blocked by fsync.

    Args:
        path: Location of the JSON file. Parent directories are created on
            first write.
    """

    def __init__(self, path: str | os.PathLike[str]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._update, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._update, key, None)

    def clear(self) -> None:
        """Delete the backing file, ending the session."""
        if self._path.is_file():
            self._path.unlink()
            logger.debug(f"Cleared session store {self._path}")

    def _update(self, key: str, value: str | None) -> None:
        data = self._read()
        if value is None:
            if key not in data:
                return
            del data[key]
        else:
            data[key] = value
        self._write(data)

    def _read(self) -> dict[str, str]:
        if not self._path.is_file():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise CorruptedStorageError(
                f"Session store {self._path} is not valid JSON: {e}"
            ) from e
        if not isinstance(data, dict):
            raise CorruptedStorageError(
                f"Session store {self._path} must contain a JSON object"
            )
        return data

    def _write(self, data: dict[str, str]) -> None:
        text = json.dumps(data, indent=2) + "\n"

        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd = None
        tmp_path: str | None = None
        try:
            fd = tempfile.NamedTemporaryFile(
                mode="w",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            )
            tmp_path = fd.name
            # Restrict permissions before any secret is written
            os.chmod(tmp_path, 0o600)
            fd.write(text)
            fd.flush()
            os.fsync(fd.fileno())
            fd.close()
            fd = None
            os.replace(tmp_path, self._path)
        except BaseException:
            if fd is not None:
                fd.close()
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
