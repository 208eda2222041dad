"""S3-backed implementation of ChunkStore."""

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from core.infrastructure.adapters.s3_adapter import S3Adapter, S3AdapterProtocol
from core.models.errors import S3Error
from core.pipeline.chunk_store import missing_chunks_error
from core.utils.constants import (
    CHUNK_CONTENT_TYPE,
    CHUNK_KEY_PREFIX,
    ERROR_CODE_CHUNK_STORE_FAILED,
)

logger = Logger(UTC=True)

_MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "404"})


def chunk_key(session_id: str, index: int) -> str:
    return f"{CHUNK_KEY_PREFIX}/{session_id}/{index:05d}"


class S3ChunkStore:
    """Chunk parts stored as objects in the image bucket.

    Every Lambda container reads and writes the same parts, so the chunks of
    one session may arrive at different containers.
    """

    def __init__(self, adapter: S3AdapterProtocol | None = None) -> None:
        self._s3: S3AdapterProtocol = adapter or S3Adapter()

    def put_chunk(self, *, session_id: str, index: int, data: bytes) -> None:
        key = chunk_key(session_id, index)

        try:
            self._s3.put_object(
                key=key,
                body=data,
                content_type=CHUNK_CONTENT_TYPE,
                metadata={"session_id": session_id, "chunk_index": str(index)},
            )

        except ClientError as exc:
            logger.error("S3 chunk upload failed", extra={"key": key})
            raise S3Error(
                message="Unable to store upload chunk",
                error_code=ERROR_CODE_CHUNK_STORE_FAILED,
                details={"session_id": session_id, "chunk_index": index},
            ) from exc

    def assemble(self, *, session_id: str, total_chunks: int) -> bytes:
        parts: list[bytes] = []
        missing: list[int] = []

        for index in range(total_chunks):
            key = chunk_key(session_id, index)
            try:
                parts.append(self._s3.get_object(key=key))

            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") in _MISSING_OBJECT_CODES:
                    missing.append(index)
                    continue

                logger.error("S3 chunk read failed", extra={"key": key})
                raise S3Error(
                    message="Unable to read upload chunks",
                    error_code=ERROR_CODE_CHUNK_STORE_FAILED,
                    details={"session_id": session_id, "chunk_index": index},
                ) from exc

        if missing:
            logger.warning(
                "Upload chunks missing from store",
                extra={"session_id": session_id, "missing": missing},
            )
            raise missing_chunks_error(session_id, missing)

        return b"".join(parts)

    def discard(self, *, session_id: str, total_chunks: int) -> None:
        # Leftover parts expire through the bucket lifecycle rule.
        for index in range(total_chunks):
            key = chunk_key(session_id, index)
            try:
                self._s3.delete_object(key=key)
            except ClientError:
                logger.warning("Failed to delete upload chunk", extra={"key": key})
