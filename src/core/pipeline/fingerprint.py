"""Content fingerprinting and duplicate lookup."""

import hashlib

from aws_lambda_powertools import Logger

from core.repositories.metadata_repository import ImageMetadataRepository

logger = Logger(UTC=True)


def compute_content_hash(data: bytes) -> str:
    """Hex SHA-256 digest of `data`."""
    return hashlib.sha256(data).hexdigest()


class DuplicateDetector:
    """Answers whether a content hash already belongs to a persisted image."""

    def __init__(self, metadata: ImageMetadataRepository) -> None:
        self._metadata = metadata

    def check_for_duplicates(self, content_hash: str) -> bool:
        """True when an accepted image already has `content_hash`.

        Raises:
            DynamoDBError: If the lookup fails (fail-closed)
        """
        is_duplicate = self._metadata.check_duplicate_image(file_hash=content_hash)
        if is_duplicate:
            logger.info("Duplicate content hash", extra={"content_hash": content_hash})
        return is_duplicate
