"""Tests for InMemoryChunkStore."""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from core.models.errors import UploadSessionError
from core.pipeline.chunk_store import InMemoryChunkStore


class TestInMemoryChunkStore:
    def test_assembles_in_index_order(self) -> None:
        store = InMemoryChunkStore()

        store.put_chunk(session_id="s1", index=2, data=b"C")
        store.put_chunk(session_id="s1", index=0, data=b"A")
        store.put_chunk(session_id="s1", index=1, data=b"B")

        assert store.assemble(session_id="s1", total_chunks=3) == b"ABC"

    def test_rewrite_replaces_earlier_bytes(self) -> None:
        store = InMemoryChunkStore()

        store.put_chunk(session_id="s1", index=0, data=b"old")
        store.put_chunk(session_id="s1", index=0, data=b"new")
        store.put_chunk(session_id="s1", index=1, data=b"!")

        assert store.assemble(session_id="s1", total_chunks=2) == b"new!"

    def test_missing_parts_are_reported(self) -> None:
        store = InMemoryChunkStore()
        store.put_chunk(session_id="s1", index=1, data=b"B")

        with pytest.raises(UploadSessionError) as exc_info:
            store.assemble(session_id="s1", total_chunks=3)

        assert exc_info.value.error_code == "UPLOAD_SESSION_LOST"
        assert exc_info.value.details["missing_chunks"] == [0, 2]

    def test_sessions_are_isolated(self) -> None:
        store = InMemoryChunkStore()
        store.put_chunk(session_id="s1", index=0, data=b"one")
        store.put_chunk(session_id="s2", index=0, data=b"two")

        store.discard(session_id="s1", total_chunks=1)

        assert "s1" not in store
        assert store.assemble(session_id="s2", total_chunks=1) == b"two"

    def test_concurrent_writes_to_different_indices(self) -> None:
        total = 16
        store = InMemoryChunkStore()
        barrier = Barrier(total)

        def write(index: int) -> None:
            barrier.wait()
            store.put_chunk(session_id="s1", index=index, data=bytes([index]))

        with ThreadPoolExecutor(max_workers=total) as executor:
            list(executor.map(write, range(total)))

        assert store.assemble(session_id="s1", total_chunks=total) == bytes(range(total))
