"""Content policy: exactly one, sufficiently large face."""

from aws_lambda_powertools import Logger

from core.models.errors import ImageServiceError
from core.models.validation import FaceDetectionResult
from core.repositories.face_detector import FaceDetector
from core.utils.constants import DEFAULT_MIN_FACE_AREA_RATIO

logger = Logger(UTC=True)


class ContentPolicyChecker:
    """Runs face detection and turns the result into policy violations."""

    def __init__(
        self,
        detector: FaceDetector,
        *,
        min_face_area_ratio: float = DEFAULT_MIN_FACE_AREA_RATIO,
    ) -> None:
        self._detector = detector
        self.min_face_area_ratio = min_face_area_ratio

    def detect(self, data: bytes) -> FaceDetectionResult:
        """Detect faces in `data`.

        An unavailable detector degrades to a zero-face result carrying the
        failure note, so the upload is rejected on policy instead of crashing.
        """
        try:
            boxes = self._detector.detect_faces(image_bytes=data)
        except ImageServiceError as exc:
            logger.warning("Face detection degraded to zero faces", extra={"error": exc.message})
            return FaceDetectionResult(face_count=0, dominant_face_area=0.0, error=exc.message)

        dominant = max((box.area for box in boxes), default=0.0)
        return FaceDetectionResult(face_count=len(boxes), dominant_face_area=min(dominant, 1.0))

    def violations(self, result: FaceDetectionResult) -> list[str]:
        if result.face_count == 0:
            return ["No face detected in the image"]

        if result.face_count > 1:
            return [f"Multiple faces detected ({result.face_count}). Only one face allowed."]

        if result.dominant_face_area < self.min_face_area_ratio:
            return [
                f"Face too small relative to image ({result.dominant_face_area * 100:.1f}%)"
            ]

        return []
