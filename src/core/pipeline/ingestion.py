"""End-to-end ingestion: normalize, validate, dedup, persist.

Both the single-shot upload and the chunk reassembly completion path run
through `ImageIngestionPipeline.ingest`, so the duplicate check always follows
a clean validation pass and always uses the hash of the bytes being stored.
"""

from enum import Enum

from aws_lambda_powertools import Logger
from pydantic import BaseModel, Field

from core.models.errors import DuplicateImageError
from core.models.image import ImageRecord
from core.models.validation import ValidationResult
from core.pipeline.fingerprint import DuplicateDetector
from core.pipeline.normalizer import FormatNormalizer
from core.pipeline.orchestrator import ValidationOrchestrator
from core.pipeline.persistence import PersistenceGateway

logger = Logger(UTC=True)


class IngestionStatus(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    DUPLICATE = "DUPLICATE"


class IngestionOutcome(BaseModel):
    """Structured outcome of one ingestion attempt."""

    status: IngestionStatus
    validation: ValidationResult
    record: ImageRecord | None = None
    violations: list[str] = Field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.status is IngestionStatus.ACCEPTED

    @property
    def failure_reason(self) -> str | None:
        if self.status is IngestionStatus.DUPLICATE:
            return "Duplicate image detected"
        if self.status is IngestionStatus.REJECTED:
            return "; ".join(self.violations)
        return None


class ImageIngestionPipeline:
    def __init__(
        self,
        *,
        normalizer: FormatNormalizer,
        orchestrator: ValidationOrchestrator,
        duplicates: DuplicateDetector,
        gateway: PersistenceGateway,
    ) -> None:
        self.normalizer = normalizer
        self.orchestrator = orchestrator
        self.duplicates = duplicates
        self.gateway = gateway

    def ingest(
        self,
        *,
        data: bytes,
        filename: str,
        mime_type: str,
        owner_id: str | None = None,
    ) -> IngestionOutcome:
        """Run one upload through the pipeline.

        Raises:
            UnsupportedEncodingError: If a HEIC/HEIF payload cannot be decoded
            DynamoDBError: If the duplicate lookup fails
            ImageUploadFailedError: If the blob write fails
            MetadataOperationFailedError: If the metadata write fails
        """
        normalized = self.normalizer.normalize(data=data, mime_type=mime_type, filename=filename)
        result = self.orchestrator.validate(normalized.data)

        if not result.is_valid:
            return IngestionOutcome(
                status=IngestionStatus.REJECTED,
                validation=result,
                violations=result.errors,
            )

        # Hash of the normalized bytes, i.e. exactly what would be stored.
        content_hash = result.metadata.content_hash or ""
        if self.duplicates.check_for_duplicates(content_hash):
            return IngestionOutcome(status=IngestionStatus.DUPLICATE, validation=result)

        # The lookup above is advisory; the metadata write enforces uniqueness
        # when two uploads of the same bytes race past it.
        try:
            record = self.gateway.persist(
                data=normalized.data,
                mime_type=normalized.mime_type,
                original_name=filename,
                result=result,
                owner_id=owner_id,
                stored_name=normalized.filename,
            )
        except DuplicateImageError:
            return IngestionOutcome(status=IngestionStatus.DUPLICATE, validation=result)

        logger.info(
            "Image accepted",
            extra={"image_id": record.image_id, "converted": normalized.converted},
        )
        return IngestionOutcome(status=IngestionStatus.ACCEPTED, validation=result, record=record)
