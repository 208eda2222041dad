import pytest

from core.infrastructure.adapters.s3_adapter import S3Adapter


def test_missing_bucket_name_raises(monkeypatch) -> None:
    monkeypatch.delenv("IMAGE_S3_BUCKET_NAME", raising=False)

    with pytest.raises(RuntimeError, match="IMAGE_S3_BUCKET_NAME"):
        S3Adapter()


def test_put_get_and_delete_object(s3_get_object, s3_object_keys) -> None:
    adapter = S3Adapter()

    adapter.put_object(
        key="images/a.png", body=b"png", content_type="image/png", metadata={"k": "v"}
    )
    assert s3_get_object("images/a.png") == b"png"
    assert adapter.get_object(key="images/a.png") == b"png"

    adapter.delete_object(key="images/a.png")
    assert s3_object_keys() == []


def test_presigned_url_targets_bucket(s3_bucket) -> None:
    url = S3Adapter().generate_presigned_url(
        method="get_object", params={"Key": "images/a.png"}, expires_in=60
    )

    assert "photo-intake-test-bucket" in url
