from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from core.models.errors import ProcessingError
from core.pipeline.quality import QualityAnalyzer, blur_score, laplacian_variance, read_header


class TestReadHeader:
    def test_png_header(self, image_factory) -> None:
        header = read_header(image_factory(640, 480))

        assert (header.width, header.height, header.format) == (640, 480, "png")
        assert not header.has_embedded_metadata

    def test_jpeg_exif_is_surfaced(self) -> None:
        exif = Image.Exif()
        exif[0x010F] = "PhoneMaker"
        output = BytesIO()
        Image.new("RGB", (320, 320), color=(10, 20, 30)).save(
            output, format="JPEG", exif=exif.tobytes()
        )

        header = read_header(output.getvalue())

        assert header.format == "jpeg"
        assert header.exif is not None
        assert header.embedded_fields == ("exif",)

    def test_unreadable_bytes(self) -> None:
        with pytest.raises(ProcessingError, match="Unable to read image header"):
            read_header(b"definitely not an image")


class TestBlurScore:
    def test_tiny_images_have_no_interior(self) -> None:
        assert laplacian_variance(np.zeros((2, 2))) == 0.0
        assert laplacian_variance(np.zeros((10, 2))) == 0.0

    def test_flat_image_scores_zero(self, flat_image_factory) -> None:
        assert blur_score(flat_image_factory(50, 50)) == 0.0

    def test_blurring_lowers_the_score(self, image_factory) -> None:
        sharp = blur_score(image_factory(200, 200))
        soft = blur_score(image_factory(200, 200, blur_radius=3))

        assert sharp > 100.0
        assert soft < sharp

    def test_single_bright_pixel(self) -> None:
        gray = np.zeros((3, 3))
        gray[1, 1] = 1.0

        # One interior pixel, so the variance of a single response is zero.
        assert laplacian_variance(gray) == 0.0

    def test_border_is_excluded(self) -> None:
        gray = np.zeros((4, 4))
        gray[0, 0] = 255.0

        assert laplacian_variance(gray) == 0.0

    def test_undecodable_bytes(self) -> None:
        with pytest.raises(ProcessingError):
            blur_score(b"\x00\x01\x02")


def test_analyze_reports_size_and_header(image_factory) -> None:
    data = image_factory(400, 300)

    report = QualityAnalyzer().analyze(data)

    assert report.size == len(data)
    assert (report.header.width, report.header.height) == (400, 300)
    assert report.blur_score > 0
