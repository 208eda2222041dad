"""Chunk reassembly: session state machine and exactly-once completion.

PENDING -> UPLOADING -> ASSEMBLING -> COMPLETED | FAILED. Each chunk is
stored before its index is recorded on the session, so a session whose
record shows every index has every part in the store. The write that wins
the ASSEMBLING claim is the only one to run the ingestion callback, and the
stored parts are discarded on every terminal path.
"""

from collections.abc import Callable
import uuid

from aws_lambda_powertools import Logger
from pydantic import BaseModel

from core.models.errors import ImageServiceError, UploadSessionError
from core.models.upload_session import ChunkProgress, UploadSession, UploadStatus
from core.pipeline.chunk_store import ChunkStore
from core.pipeline.ingestion import IngestionOutcome
from core.repositories.upload_session_repository import UploadSessionRepository
from core.utils.constants import (
    DEFAULT_UPLOAD_SESSION_TTL_HOURS,
    ERROR_CODE_UPLOAD_SESSION_CLOSED,
    ERROR_CODE_UPLOAD_SESSION_EXPIRED,
    ERROR_CODE_UPLOAD_SESSION_MISMATCH,
)
from core.utils.time import expires_after, utc_now

logger = Logger(UTC=True)

CompletionCallback = Callable[[UploadSession, bytes], IngestionOutcome]

SESSION_STATUS_DETAIL = "session_status"


class ChunkWriteResult(BaseModel):
    """Outcome of one chunk write."""

    session_id: str
    completed: bool
    progress: ChunkProgress
    outcome: IngestionOutcome | None = None


class ChunkReassemblyManager:
    def __init__(
        self,
        *,
        sessions: UploadSessionRepository,
        store: ChunkStore,
        session_ttl_hours: int = DEFAULT_UPLOAD_SESSION_TTL_HOURS,
    ) -> None:
        self.sessions = sessions
        self.store = store
        self.session_ttl_hours = session_ttl_hours

    @staticmethod
    def generate_session_id() -> str:
        return uuid.uuid4().hex

    def is_new_session(self, session_id: str | None) -> bool:
        return session_id is None or self.sessions.fetch_session(session_id=session_id) is None

    def receive_chunk(
        self,
        *,
        session_id: str | None,
        filename: str,
        mime_type: str,
        total_chunks: int,
        chunk_index: int,
        chunk_data: bytes,
        on_complete: CompletionCallback,
        owner_id: str | None = None,
    ) -> ChunkWriteResult:
        """Write one chunk; run `on_complete` if it completes the session.

        Raises:
            UploadSessionError: For expired, closed, foreign or inconsistent
                sessions, or when stored parts have gone missing
        """
        session = self._open_session(
            session_id=session_id or self.generate_session_id(),
            filename=filename,
            mime_type=mime_type,
            total_chunks=total_chunks,
            owner_id=owner_id,
        )
        sid = session.session_id
        total = session.total_chunks

        if not 0 <= chunk_index < total:
            raise UploadSessionError(
                message=f"Chunk index {chunk_index} out of range for {total} chunks",
                error_code=ERROR_CODE_UPLOAD_SESSION_MISMATCH,
                details={"session_id": sid, "chunk_index": chunk_index},
            )

        self.store.put_chunk(session_id=sid, index=chunk_index, data=chunk_data)
        uploaded = self.sessions.record_chunk(session_id=sid, chunk_index=chunk_index)
        progress = ChunkProgress.from_counts(uploaded, total)

        logger.debug(
            "Chunk stored",
            extra={"session_id": sid, "chunk_index": chunk_index, "uploaded": uploaded},
        )

        if uploaded < total:
            return ChunkWriteResult(session_id=sid, completed=False, progress=progress)

        if not self.sessions.claim_completion(session_id=sid):
            logger.debug("Completion already claimed", extra={"session_id": sid})
            return ChunkWriteResult(session_id=sid, completed=False, progress=progress)

        return ChunkWriteResult(
            session_id=sid,
            completed=True,
            progress=progress,
            outcome=self._complete(session, on_complete),
        )

    def _open_session(
        self,
        *,
        session_id: str,
        filename: str,
        mime_type: str,
        total_chunks: int,
        owner_id: str | None,
    ) -> UploadSession:
        session = self.sessions.fetch_session(session_id=session_id)

        if session is None:
            now = utc_now()
            session = UploadSession(
                session_id=session_id,
                owner_id=owner_id,
                filename=filename,
                mime_type=mime_type,
                total_chunks=total_chunks,
                status=UploadStatus.PENDING,
                created_at=now,
                expires_at=expires_after(self.session_ttl_hours, start=now),
            )
            try:
                self.sessions.create_session(session=session)
                logger.info(
                    "Upload session started",
                    extra={"session_id": session_id, "total_chunks": total_chunks},
                )
                return session
            except UploadSessionError:
                # Lost the creation race to a concurrent first chunk.
                existing = self.sessions.fetch_session(session_id=session_id)
                if existing is None:
                    raise
                session = existing

        self._check_writable(session, total_chunks=total_chunks, owner_id=owner_id)
        return session

    def _check_writable(
        self, session: UploadSession, *, total_chunks: int, owner_id: str | None
    ) -> None:
        sid = session.session_id

        if session.owner_id is not None and session.owner_id != owner_id:
            raise UploadSessionError(
                message="Upload session not found",
                details={"session_id": sid},
            )

        if not session.status.accepts_chunks:
            raise UploadSessionError(
                message=f"Upload session is already {session.status.value.lower()}",
                error_code=ERROR_CODE_UPLOAD_SESSION_CLOSED,
                details={"session_id": sid, "status": session.status.value},
            )

        if session.is_expired():
            self.store.discard(session_id=sid, total_chunks=session.total_chunks)
            raise UploadSessionError(
                message="Upload session has expired; start a new upload",
                error_code=ERROR_CODE_UPLOAD_SESSION_EXPIRED,
                details={"session_id": sid},
            )

        if session.total_chunks != total_chunks:
            raise UploadSessionError(
                message=(
                    f"Total chunks mismatch: session declared {session.total_chunks}, "
                    f"got {total_chunks}"
                ),
                error_code=ERROR_CODE_UPLOAD_SESSION_MISMATCH,
                details={"session_id": sid},
            )

    def _complete(
        self,
        session: UploadSession,
        on_complete: CompletionCallback,
    ) -> IngestionOutcome:
        sid = session.session_id

        try:
            try:
                assembled = self.store.assemble(session_id=sid, total_chunks=session.total_chunks)
            except UploadSessionError as exc:
                self._fail(sid, "Buffered chunks were lost", exc)
                raise
            except Exception as exc:
                self._fail(sid, f"Reassembly failed: {exc}", exc)
                raise

            logger.info(
                "Upload session complete", extra={"session_id": sid, "size": len(assembled)}
            )

            try:
                outcome = on_complete(session, assembled)
            except Exception as exc:
                self._fail(sid, f"Processing failed: {exc}", exc)
                raise

            if outcome.accepted and outcome.record is not None:
                self.sessions.mark_completed(
                    session_id=sid,
                    storage_key=outcome.record.s3_key,
                    image_id=outcome.record.image_id,
                )
            else:
                self.sessions.mark_failed(
                    session_id=sid, reason=outcome.failure_reason or "Rejected"
                )
            return outcome

        finally:
            self.store.discard(session_id=sid, total_chunks=session.total_chunks)

    def _fail(self, session_id: str, reason: str, exc: Exception) -> None:
        failed = self.sessions.mark_failed(session_id=session_id, reason=reason)
        if failed and isinstance(exc, ImageServiceError):
            exc.details[SESSION_STATUS_DETAIL] = UploadStatus.FAILED.value


def failed_session(exc: ImageServiceError) -> bool:
    """Whether `exc` was raised by the request that moved its session to FAILED."""
    return exc.details.get(SESSION_STATUS_DETAIL) == UploadStatus.FAILED.value
