"""Chunk part storage for upload sessions.

A store holds raw parts keyed by session id and chunk index. Rewriting an
index replaces its bytes (last write wins). It never counts parts or decides
completion; the session record does that, so any number of containers can
share one store.
"""

from collections.abc import Iterable
from threading import Lock
from typing import Protocol

from core.models.errors import UploadSessionError
from core.utils.constants import ERROR_CODE_UPLOAD_SESSION_LOST


def missing_chunks_error(session_id: str, missing: Iterable[int]) -> UploadSessionError:
    return UploadSessionError(
        message="Upload session can no longer be resumed; start a new upload",
        error_code=ERROR_CODE_UPLOAD_SESSION_LOST,
        details={"session_id": session_id, "missing_chunks": sorted(missing)},
    )


class ChunkStore(Protocol):
    """Session-id keyed chunk part store."""

    def put_chunk(self, *, session_id: str, index: int, data: bytes) -> None:
        """Store one part, replacing any earlier bytes at the same index."""
        ...

    def assemble(self, *, session_id: str, total_chunks: int) -> bytes:
        """Concatenate parts 0..total_chunks-1 in index order.

        Raises:
            UploadSessionError: If any part is missing
        """
        ...

    def discard(self, *, session_id: str, total_chunks: int) -> None:
        """Delete every part of the session."""
        ...


class InMemoryChunkStore:
    """Process-local ChunkStore for tests and single-process runs."""

    def __init__(self) -> None:
        self._parts: dict[str, dict[int, bytes]] = {}
        self._lock = Lock()

    def put_chunk(self, *, session_id: str, index: int, data: bytes) -> None:
        with self._lock:
            self._parts.setdefault(session_id, {})[index] = data

    def assemble(self, *, session_id: str, total_chunks: int) -> bytes:
        with self._lock:
            parts = dict(self._parts.get(session_id, {}))

        missing = [index for index in range(total_chunks) if index not in parts]
        if missing:
            raise missing_chunks_error(session_id, missing)
        return b"".join(parts[index] for index in range(total_chunks))

    def discard(self, *, session_id: str, total_chunks: int) -> None:
        with self._lock:
            self._parts.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._parts
