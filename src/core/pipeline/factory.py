"""Wiring for the AWS-backed ingestion pipeline."""

from core.infrastructure.aws.dynamodb_metadata import DynamoDBMetadata
from core.infrastructure.aws.rekognition_faces import RekognitionFaceDetector
from core.infrastructure.aws.s3_image_storage import S3ImageStorage
from core.pipeline.face_policy import ContentPolicyChecker
from core.pipeline.fingerprint import DuplicateDetector
from core.pipeline.ingestion import ImageIngestionPipeline
from core.pipeline.normalizer import FormatNormalizer
from core.pipeline.orchestrator import ValidationOrchestrator
from core.pipeline.persistence import PersistenceGateway
from core.pipeline.quality import QualityAnalyzer
from core.repositories.face_detector import FaceDetector
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ImageStorageRepository
from core.utils.settings import PipelineSettings, get_settings


def build_ingestion_pipeline(
    *,
    settings: PipelineSettings | None = None,
    storage: ImageStorageRepository | None = None,
    metadata: ImageMetadataRepository | None = None,
    detector: FaceDetector | None = None,
) -> ImageIngestionPipeline:
    """Assemble the pipeline; any collaborator may be swapped in."""
    settings = settings or get_settings()
    metadata = metadata or DynamoDBMetadata()

    return ImageIngestionPipeline(
        normalizer=FormatNormalizer(jpeg_quality=settings.heic_jpeg_quality),
        orchestrator=ValidationOrchestrator(
            settings=settings,
            quality=QualityAnalyzer(),
            policy=ContentPolicyChecker(
                detector or RekognitionFaceDetector(),
                min_face_area_ratio=settings.min_face_area_ratio,
            ),
        ),
        duplicates=DuplicateDetector(metadata),
        gateway=PersistenceGateway(storage=storage or S3ImageStorage(), metadata=metadata),
    )
