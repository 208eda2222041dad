import pytest

from core.utils.mime import declared_type_error, is_heif


HEIC_HEADER = b"\x00\x00\x00\x18ftypheic\x00\x00\x00\x00mif1heic"


def test_is_heif_detects_heic_brand() -> None:
    assert is_heif(HEIC_HEADER)


def test_is_heif_detects_mif1_brand() -> None:
    assert is_heif(b"\x00\x00\x00\x1cftypmif1\x00\x00\x00\x00")


@pytest.mark.parametrize(
    "data",
    [
        b"\x89PNG\r\n\x1a\n" + b"\x00" * 16,
        b"\xff\xd8\xff\xe0" + b"\x00" * 16,
        b"\x00\x00\x00\x18ftypisom",
        b"",
    ],
)
def test_is_heif_rejects_other_content(data: bytes) -> None:
    assert not is_heif(data)


@pytest.mark.parametrize(
    "filename,mime_type",
    [
        ("me.jpg", "image/jpeg"),
        ("me.jpeg", "image/jpeg"),
        ("me.jpg", "image/jpg"),
        ("me.png", "image/png"),
        ("me.heic", "image/heic"),
        ("me.heic", "image/heif"),
        ("me.heif", "image/heif"),
        ("ME.PNG", "IMAGE/PNG"),
    ],
)
def test_declared_type_accepted(filename: str, mime_type: str) -> None:
    assert declared_type_error(filename, mime_type) is None


def test_declared_type_unsupported_mime() -> None:
    error = declared_type_error("anim.gif", "image/gif")

    assert error is not None
    assert error.startswith("Unsupported MIME type 'image/gif'")


def test_declared_type_missing_extension() -> None:
    assert declared_type_error("photo", "image/png") == "Filename must have an extension"


def test_declared_type_extension_mismatch() -> None:
    error = declared_type_error("photo.png", "image/jpeg")

    assert error == "Extension '.png' does not match MIME type 'image/jpeg'"
