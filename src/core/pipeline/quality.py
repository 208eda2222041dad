"""Objective image-quality signals: header facts and a sharpness score."""

from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict

from core.models.errors import ProcessingError
from core.models.validation import ImageHeader

# Pillow format names mapped onto the names the validator reports.
_FORMAT_ALIASES = {"heif": "heic", "mpo": "jpeg"}


class QualityReport(BaseModel):
    """Quality facts about one encoded image."""

    model_config = ConfigDict(frozen=True)

    header: ImageHeader
    size: int
    blur_score: float


def read_header(data: bytes) -> ImageHeader:
    """Inspect dimensions, format and embedded metadata without decoding pixels.

    Raises:
        ProcessingError: If the bytes are not a readable image
    """
    try:
        with Image.open(BytesIO(data)) as image:
            width, height = image.size
            fmt = (image.format or "unknown").lower()
            info = image.info
            xmp = info.get("xmp")
            return ImageHeader(
                width=width,
                height=height,
                format=_FORMAT_ALIASES.get(fmt, fmt),
                exif=info.get("exif") or None,
                icc_profile=info.get("icc_profile") or None,
                xmp=xmp.encode() if isinstance(xmp, str) else xmp or None,
            )
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ProcessingError(message=f"Unable to read image header: {exc}") from exc


def laplacian_variance(gray: np.ndarray) -> float:
    """Variance of the 4-neighbour Laplacian over interior pixels.

    The 1-pixel border is excluded. Images smaller than 3x3 have no interior
    and score 0.0.
    """
    if gray.ndim != 2 or gray.shape[0] < 3 or gray.shape[1] < 3:
        return 0.0

    g = gray.astype(np.float64, copy=False)
    response = (
        g[:-2, 1:-1]
        + g[2:, 1:-1]
        + g[1:-1, :-2]
        + g[1:-1, 2:]
        - 4.0 * g[1:-1, 1:-1]
    )
    return float(response.var())


def blur_score(data: bytes) -> float:
    """Sharpness of `data`; larger is sharper.

    Raises:
        ProcessingError: If the bytes cannot be decoded
    """
    try:
        with Image.open(BytesIO(data)) as image:
            luma = np.asarray(image.convert("L"), dtype=np.float64)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ProcessingError(message=f"Unable to decode image: {exc}") from exc

    return laplacian_variance(luma)


class QualityAnalyzer:
    def analyze(self, data: bytes) -> QualityReport:
        """Header facts, byte size and blur score for `data`.

        Raises:
            ProcessingError: If the bytes are malformed
        """
        header = read_header(data)
        return QualityReport(header=header, size=len(data), blur_score=blur_score(data))
