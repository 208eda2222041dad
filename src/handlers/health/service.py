"""Dependency reachability checks."""

import os

from aws_lambda_powertools import Logger
from pydantic import BaseModel

from core.infrastructure.aws.dynamodb_metadata import DynamoDBMetadata
from core.infrastructure.aws.s3_image_storage import S3ImageStorage
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ImageStorageRepository
from core.utils.constants import (
    DEFAULT_ENVIRONMENT,
    ENV_ENVIRONMENT,
    HEALTH_STATUS_DEGRADED,
    HEALTH_STATUS_OK,
)
from core.utils.time import utc_now_iso

logger = Logger(UTC=True)


class DependencyStatus(BaseModel):
    dynamodb: bool
    s3: bool


class HealthReport(BaseModel):
    status: str
    timestamp: str
    environment: str
    dependencies: DependencyStatus

    @property
    def healthy(self) -> bool:
        return self.status == HEALTH_STATUS_OK


class HealthService:
    """Probes the metadata store and the blob store independently."""

    def __init__(
        self,
        *,
        metadata: ImageMetadataRepository | None = None,
        storage: ImageStorageRepository | None = None,
    ) -> None:
        self.metadata = metadata or DynamoDBMetadata()
        self.storage = storage or S3ImageStorage()

    def check(self) -> HealthReport:
        dependencies = DependencyStatus(
            dynamodb=self.metadata.is_reachable(),
            s3=self.storage.is_reachable(),
        )
        healthy = dependencies.dynamodb and dependencies.s3

        if not healthy:
            logger.warning("Dependency unreachable", extra=dependencies.model_dump())

        return HealthReport(
            status=HEALTH_STATUS_OK if healthy else HEALTH_STATUS_DEGRADED,
            timestamp=utc_now_iso(),
            environment=os.getenv(ENV_ENVIRONMENT, DEFAULT_ENVIRONMENT),
            dependencies=dependencies,
        )
