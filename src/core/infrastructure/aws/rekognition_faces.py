"""Amazon Rekognition implementation of FaceDetector."""

from io import BytesIO

from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from core.infrastructure.adapters.rekognition_adapter import (
    RekognitionAdapter,
    RekognitionAdapterProtocol,
)
from core.models.errors import ProcessingError
from core.models.validation import FaceBox
from core.repositories.face_detector import FaceDetector
from core.utils.constants import REKOGNITION_JPEG_QUALITY, REKOGNITION_MAX_IMAGE_BYTES

logger = Logger(UTC=True)

_SHRINK_FACTOR = 0.75
_MAX_SHRINK_STEPS = 10


def _clamp(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


def fit_for_detection(
    image_bytes: bytes, *, max_bytes: int = REKOGNITION_MAX_IMAGE_BYTES
) -> bytes:
    """Return `image_bytes`, or a smaller JPEG of the same frame when over `max_bytes`.

    Bounding boxes come back relative to the frame, so downscaling leaves face
    areas unchanged.

    Raises:
        ProcessingError: If an oversized image cannot be decoded or shrunk
    """
    if len(image_bytes) <= max_bytes:
        return image_bytes

    try:
        with Image.open(BytesIO(image_bytes)) as source:
            frame = source.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ProcessingError(
            message=f"Face detection unavailable: unable to downscale image: {exc}"
        ) from exc

    width, height = frame.size
    for _ in range(_MAX_SHRINK_STEPS):
        output = BytesIO()
        scaled = frame if (width, height) == frame.size else frame.resize((width, height))
        scaled.save(output, format="JPEG", quality=REKOGNITION_JPEG_QUALITY)
        if output.tell() <= max_bytes:
            logger.debug(
                "Image downscaled for face detection",
                extra={"source_size": len(image_bytes), "size": output.tell(), "width": width},
            )
            return output.getvalue()
        width = max(1, int(width * _SHRINK_FACTOR))
        height = max(1, int(height * _SHRINK_FACTOR))

    raise ProcessingError(message="Face detection unavailable: image too large to analyze")


class RekognitionFaceDetector(FaceDetector):
    """Face detection backed by Rekognition DetectFaces."""

    def __init__(
        self,
        adapter: RekognitionAdapterProtocol | None = None,
        *,
        max_image_bytes: int = REKOGNITION_MAX_IMAGE_BYTES,
    ) -> None:
        self._rekognition: RekognitionAdapterProtocol = adapter or RekognitionAdapter()
        self._max_image_bytes = max_image_bytes

    def detect_faces(self, *, image_bytes: bytes) -> list[FaceBox]:
        """Return one relative bounding box per detected face.

        Raises:
            ProcessingError: If the service rejects the image or is unavailable
        """
        payload = fit_for_detection(image_bytes, max_bytes=self._max_image_bytes)

        try:
            response = self._rekognition.detect_faces(image_bytes=payload)

        except (ClientError, BotoCoreError) as exc:
            logger.warning("Rekognition DetectFaces failed", extra={"error": str(exc)})
            raise ProcessingError(message=f"Face detection unavailable: {exc}") from exc

        boxes: list[FaceBox] = []
        for detail in response.get("FaceDetails", []):
            box = detail.get("BoundingBox") or {}
            # Boxes may extend past the frame edge; clamp to the image.
            boxes.append(
                FaceBox(
                    width=_clamp(box.get("Width", 0.0)),
                    height=_clamp(box.get("Height", 0.0)),
                    confidence=detail.get("Confidence"),
                )
            )

        logger.debug("Faces detected", extra={"face_count": len(boxes)})
        return boxes
