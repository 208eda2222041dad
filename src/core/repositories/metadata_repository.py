"""Abstract contract for image metadata persistence."""

from abc import ABC, abstractmethod

from core.models.image import ImageRecord


class ImageMetadataRepository(ABC):
    """Contract for storing and retrieving image records.

    Implementations could be DynamoDB, PostgreSQL, MongoDB, etc.
    Services depend on this interface, not the implementation.
    """

    @abstractmethod
    def create_metadata(self, *, record: ImageRecord) -> None:
        """Persist a new image record.

        Stored content hashes are unique: the write itself fails when another
        record already holds `record.file_hash`.

        Raises:
            DuplicateImageError: If a record with the same id or hash already exists
            DynamoDBError: If creation fails for other reasons
        """

    @abstractmethod
    def fetch_metadata(self, *, image_id: str) -> ImageRecord | None:
        """Fetch a single image record, or None if absent.

        Raises:
            DynamoDBError: If fetch fails
        """

    @abstractmethod
    def remove_metadata(self, *, image_id: str) -> None:
        """Remove an image record.

        Raises:
            DynamoDBError: If deletion fails
        """

    @abstractmethod
    def list_images(self, *, status: str, limit: int | None = None) -> list[ImageRecord]:
        """List records with `status`, newest first, at most `limit` of them.

        Raises:
            DynamoDBError: If query fails
        """

    @abstractmethod
    def count_images(self, *, status: str) -> int:
        """Number of records with `status`.

        Raises:
            DynamoDBError: If query fails
        """

    @abstractmethod
    def check_duplicate_image(self, *, file_hash: str) -> bool:
        """Return True if any persisted image already has `file_hash`.

        Raises:
            DynamoDBError: If check fails
        """

    @abstractmethod
    def is_reachable(self) -> bool:
        """Return True when the backing store answers."""
