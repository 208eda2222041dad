"""Business logic for image deletion.

Deletion removes the metadata record first and then the blob. A blob that
survives a failed delete is logged as an orphan by the persistence gateway;
the image is already gone from the caller's point of view.
"""

from aws_lambda_powertools import Logger

from core.infrastructure.aws.dynamodb_metadata import DynamoDBMetadata
from core.infrastructure.aws.s3_image_storage import S3ImageStorage
from core.pipeline.persistence import PersistenceGateway

logger = Logger(UTC=True)


class DeleteService:
    """Application service responsible for deleting images."""

    def __init__(self, *, gateway: PersistenceGateway | None = None) -> None:
        self.gateway = gateway or PersistenceGateway(
            storage=S3ImageStorage(),
            metadata=DynamoDBMetadata(),
        )

    def delete_image(self, image_id: str) -> None:
        """Delete an image and its metadata.

        Raises:
            NotFoundError: If no image has this id
            DynamoDBError: If the metadata lookup or delete fails
        """
        logger.debug("Starting image deletion", extra={"image_id": image_id})
        self.gateway.delete(image_id=image_id)
