"""Format normalization.

HEIC/HEIF inputs become JPEG before analysis. JPEG and PNG inputs that carry
EXIF, ICC or XMP payloads are re-encoded with the EXIF orientation applied and
those payloads dropped, so nothing downstream hashes or stores them.
"""

from io import BytesIO

from aws_lambda_powertools import Logger
from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener
from pydantic import BaseModel, ConfigDict

from core.models.errors import ProcessingError, UnsupportedEncodingError
from core.pipeline.quality import read_header
from core.utils.constants import (
    CANONICAL_MIME_TYPE,
    DEFAULT_HEIC_JPEG_QUALITY,
    HEIC_EXTENSIONS,
    HEIC_MIME_TYPES,
)
from core.utils.filenames import file_extension, replace_extension
from core.utils.mime import is_heif

register_heif_opener()

logger = Logger(UTC=True)

# Pillow save formats for containers that are re-encoded when sanitized.
_SANITIZABLE_FORMATS = {"jpeg": "JPEG", "png": "PNG"}
_JPEG_MODES = {"RGB", "L", "CMYK"}
_METADATA_INFO_KEYS = {"exif", "icc_profile", "xmp", "XML:com.adobe.xmp"}


class NormalizedImage(BaseModel):
    """Bytes ready for analysis and storage."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str
    filename: str
    converted: bool = False
    stripped_metadata: tuple[str, ...] = ()


class FormatNormalizer:
    """Re-encodes HEIC/HEIF uploads as JPEG and strips embedded metadata."""

    def __init__(self, jpeg_quality: int = DEFAULT_HEIC_JPEG_QUALITY) -> None:
        self.jpeg_quality = jpeg_quality

    @staticmethod
    def needs_conversion(*, data: bytes, mime_type: str, filename: str) -> bool:
        return (
            mime_type.lower() in HEIC_MIME_TYPES
            or file_extension(filename) in HEIC_EXTENSIONS
            or is_heif(data)
        )

    def normalize(self, *, data: bytes, mime_type: str, filename: str) -> NormalizedImage:
        """Return canonical bytes for `data`.

        Raises:
            UnsupportedEncodingError: If a HEIC/HEIF payload cannot be decoded
        """
        if not self.needs_conversion(data=data, mime_type=mime_type, filename=filename):
            return self._sanitize(data=data, mime_type=mime_type, filename=filename)

        logger.debug(
            "Converting HEIC upload to JPEG",
            extra={"original_name": filename, "size": len(data)},
        )

        try:
            with Image.open(BytesIO(data)) as source:
                rgb = ImageOps.exif_transpose(source).convert("RGB")
            rgb.info = {}
            output = BytesIO()
            rgb.save(output, format="JPEG", quality=self.jpeg_quality)

        except (UnidentifiedImageError, OSError, ValueError, RuntimeError) as exc:
            logger.warning(
                "HEIC decode failed",
                extra={"original_name": filename, "error": str(exc)},
            )
            raise UnsupportedEncodingError(
                message="Unable to decode HEIC/HEIF image",
                details={"filename": filename},
            ) from exc

        converted = output.getvalue()
        logger.info(
            "HEIC upload converted",
            extra={"source_size": len(data), "jpeg_size": len(converted)},
        )
        return NormalizedImage(
            data=converted,
            mime_type=CANONICAL_MIME_TYPE,
            filename=replace_extension(filename, "jpg"),
            converted=True,
        )

    def _sanitize(self, *, data: bytes, mime_type: str, filename: str) -> NormalizedImage:
        """Drop EXIF, ICC and XMP from JPEG/PNG bytes.

        Bytes that cannot be read pass through unchanged; the orchestrator
        reports them as a processing violation.
        """
        untouched = NormalizedImage(data=data, mime_type=mime_type, filename=filename)
        try:
            header = read_header(data)
        except ProcessingError:
            return untouched

        save_format = _SANITIZABLE_FORMATS.get(header.format)
        if save_format is None or not header.has_embedded_metadata:
            return untouched

        try:
            with Image.open(BytesIO(data)) as source:
                image = ImageOps.exif_transpose(source)
                if save_format == "JPEG" and image.mode not in _JPEG_MODES:
                    image = image.convert("RGB")
                image.info = {
                    key: value
                    for key, value in image.info.items()
                    if key not in _METADATA_INFO_KEYS
                }
                output = BytesIO()
                if save_format == "JPEG":
                    image.save(output, format="JPEG", quality=self.jpeg_quality)
                else:
                    image.save(output, format="PNG")
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            logger.warning(
                "Metadata stripping failed; keeping source bytes",
                extra={"original_name": filename, "error": str(exc)},
            )
            return untouched

        logger.info(
            "Embedded metadata stripped",
            extra={"fields": list(header.embedded_fields), "format": header.format},
        )
        return NormalizedImage(
            data=output.getvalue(),
            mime_type=mime_type,
            filename=filename,
            stripped_metadata=header.embedded_fields,
        )
