"""Business logic for chunked uploads.

Chunks are stored in the shared S3 chunk store; the write that claims a
completed session hands the reassembled bytes to the same ingestion pipeline
the single-shot path uses, exactly once.
"""

from aws_lambda_powertools import Logger

from core.infrastructure.aws.dynamodb_upload_sessions import DynamoDBUploadSessions
from core.infrastructure.aws.s3_chunk_store import S3ChunkStore
from core.models.errors import RateLimitExceededError
from core.models.image import ImageRecord, ImageSummary
from core.models.upload_session import UploadSession
from core.pipeline.chunk_manager import ChunkReassemblyManager, ChunkWriteResult
from core.pipeline.chunk_store import ChunkStore
from core.pipeline.factory import build_ingestion_pipeline
from core.pipeline.ingestion import ImageIngestionPipeline, IngestionOutcome
from core.pipeline.rate_limiter import RateLimiter
from core.repositories.upload_session_repository import UploadSessionRepository
from core.utils.settings import PipelineSettings, get_settings

logger = Logger(UTC=True)


class ChunkedUploadService:
    """Application service responsible for chunked uploads.

    Rate limiting applies when a chunk starts a new session, so a large
    upload split into many chunks counts as one upload.
    """

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        store: ChunkStore | None = None,
        sessions: UploadSessionRepository | None = None,
        pipeline: ImageIngestionPipeline | None = None,
        settings: PipelineSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.pipeline = pipeline or build_ingestion_pipeline(settings=self.settings)
        self.rate_limiter = rate_limiter
        self.manager = ChunkReassemblyManager(
            sessions=sessions or DynamoDBUploadSessions(),
            store=store or S3ChunkStore(),
            session_ttl_hours=self.settings.upload_session_ttl_hours,
        )

    def upload_chunk(
        self,
        *,
        owner_id: str,
        session_id: str | None,
        filename: str,
        mime_type: str,
        total_chunks: int,
        chunk_index: int,
        chunk_data: bytes,
    ) -> ChunkWriteResult:
        """Store one chunk and, if it completes the session, ingest the file.

        Raises:
            RateLimitExceededError: If a new session exceeds the caller's rate
            UploadSessionError: For expired, closed or inconsistent sessions
            S3Error: If the chunk store is unavailable
            UnsupportedEncodingError: If the reassembled HEIC/HEIF cannot be decoded
            S3Error / MetadataOperationFailedError: If persistence fails
        """
        if self.manager.is_new_session(session_id) and not self.rate_limiter.allow(owner_id):
            logger.warning("Upload rate limit exceeded", extra={"owner_id": owner_id})
            raise RateLimitExceededError(details={"owner_id": owner_id})

        def ingest(session: UploadSession, assembled: bytes) -> IngestionOutcome:
            return self.pipeline.ingest(
                data=assembled,
                filename=session.filename,
                mime_type=session.mime_type,
                owner_id=owner_id,
            )

        return self.manager.receive_chunk(
            session_id=session_id,
            filename=filename,
            mime_type=mime_type,
            total_chunks=total_chunks,
            chunk_index=chunk_index,
            chunk_data=chunk_data,
            on_complete=ingest,
            owner_id=owner_id,
        )

    def summarize(self, record: ImageRecord) -> ImageSummary:
        return self.pipeline.gateway.summarize(
            record, expires_in=self.settings.download_url_ttl_seconds
        )
