"""Abstract contract for the face-detection capability."""

from abc import ABC, abstractmethod

from core.models.validation import FaceBox


class FaceDetector(ABC):
    """Detect faces in encoded image bytes.

    Implementations may call an external recognition service and are
    allowed to raise on unavailability; the content policy checker decides
    how failures degrade.
    """

    @abstractmethod
    def detect_faces(self, *, image_bytes: bytes) -> list[FaceBox]:
        """Return zero or more relative bounding boxes."""
