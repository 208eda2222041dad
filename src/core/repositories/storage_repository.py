"""Abstract contract for image blob storage."""

from abc import ABC, abstractmethod


class ImageStorageRepository(ABC):
    """Contract for storing and serving image bytes.

    Implementations could be S3, GCS, local disk, etc.
    Services depend on this interface, not the implementation.
    """

    @abstractmethod
    def upload_image(self, *, key: str, file_data: bytes, mime_type: str) -> str:
        """Store image bytes under `key` and return the key.

        Raises:
            ImageUploadFailedError: If upload fails
        """

    @abstractmethod
    def generate_download_url(self, *, key: str, expires_in: int) -> str:
        """Return a time-limited signed URL for reading `key`.

        Raises:
            S3Error: If the URL cannot be generated
        """

    @abstractmethod
    def remove_image(self, *, key: str) -> None:
        """Delete image by key.

        Raises:
            ImageDeletionFailedError: If deletion fails
        """

    @abstractmethod
    def is_reachable(self) -> bool:
        """Return True when the backing store answers."""
