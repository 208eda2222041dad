"""Tests for PersistenceGateway."""

import re

import pytest

from core.models.errors import (
    DuplicateImageError,
    ImageUploadFailedError,
    MetadataOperationFailedError,
    NotFoundError,
)
from core.models.validation import ValidationMetadata, ValidationResult
from core.pipeline.persistence import PersistenceGateway


def _passing(content_hash: str = "c" * 64) -> ValidationResult:
    return ValidationResult.from_violations(
        [],
        ValidationMetadata(
            width=1200, height=800, size=4, format="jpeg", content_hash=content_hash
        ),
    )


PASSING = _passing()


@pytest.fixture
def gateway(storage, metadata) -> PersistenceGateway:
    return PersistenceGateway(storage=storage, metadata=metadata)


class TestPersist:
    def test_writes_blob_then_record(self, gateway, storage, metadata) -> None:
        record = gateway.persist(
            data=b"jpeg",
            mime_type="image/jpeg",
            original_name="my photo.jpg",
            result=PASSING,
            owner_id="user_1",
        )

        assert re.fullmatch(r"img_[0-9a-f]{32}", record.image_id)
        assert re.fullmatch(r"\d{13}-[0-9a-f]{8}-my_photo\.jpg", record.filename)
        assert record.s3_key == f"images/{record.filename}"
        assert record.original_name == "my photo.jpg"
        assert (record.width, record.height, record.file_size) == (1200, 800, 4)
        assert record.file_hash == "c" * 64
        assert record.status == "VALIDATED"
        assert storage.objects[record.s3_key] == (b"jpeg", "image/jpeg")
        assert metadata.records[record.image_id] == record

    def test_stored_name_overrides_original(self, gateway) -> None:
        record = gateway.persist(
            data=b"jpeg",
            mime_type="image/jpeg",
            original_name="IMG_0001.heic",
            result=PASSING,
            stored_name="IMG_0001.jpg",
        )

        assert record.filename.endswith("-IMG_0001.jpg")
        assert record.original_name == "IMG_0001.heic"

    def test_same_name_twice_gets_distinct_keys(self, gateway) -> None:
        first = gateway.persist(
            data=b"a", mime_type="image/jpeg", original_name="a.jpg", result=PASSING
        )
        second = gateway.persist(
            data=b"b", mime_type="image/jpeg", original_name="a.jpg", result=_passing("d" * 64)
        )

        assert first.s3_key != second.s3_key

    def test_hash_claimed_at_write_time_discards_blob(self, gateway, storage, metadata) -> None:
        first = gateway.persist(
            data=b"a", mime_type="image/jpeg", original_name="a.jpg", result=PASSING
        )

        with pytest.raises(DuplicateImageError):
            gateway.persist(
                data=b"a", mime_type="image/jpeg", original_name="b.jpg", result=PASSING
            )

        assert list(storage.objects) == [first.s3_key]
        assert list(metadata.records) == [first.image_id]

    def test_refuses_failing_result(self, gateway, storage) -> None:
        failing = ValidationResult.from_violations(["nope"], ValidationMetadata())

        with pytest.raises(ValueError, match="Only validated images"):
            gateway.persist(
                data=b"x", mime_type="image/jpeg", original_name="a.jpg", result=failing
            )

        assert storage.objects == {}

    def test_blob_failure_writes_no_record(self, gateway, storage, metadata) -> None:
        storage.fail_upload = True

        with pytest.raises(ImageUploadFailedError):
            gateway.persist(
                data=b"x", mime_type="image/jpeg", original_name="a.jpg", result=PASSING
            )

        assert metadata.records == {}

    def test_record_failure_cleans_up_blob(self, gateway, storage, metadata) -> None:
        metadata.fail_create = True

        with pytest.raises(MetadataOperationFailedError):
            gateway.persist(
                data=b"x", mime_type="image/jpeg", original_name="a.jpg", result=PASSING
            )

        assert storage.objects == {}

    def test_failed_cleanup_leaves_orphan_and_still_raises(
        self, gateway, storage, metadata
    ) -> None:
        metadata.fail_create = True
        storage.fail_delete = True

        with pytest.raises(MetadataOperationFailedError):
            gateway.persist(
                data=b"x", mime_type="image/jpeg", original_name="a.jpg", result=PASSING
            )

        assert len(storage.objects) == 1


class TestDelete:
    def test_removes_record_and_blob(self, gateway, storage, metadata) -> None:
        record = gateway.persist(
            data=b"x", mime_type="image/jpeg", original_name="a.jpg", result=PASSING
        )

        gateway.delete(image_id=record.image_id)

        assert metadata.records == {}
        assert storage.objects == {}

    def test_unknown_image(self, gateway) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            gateway.delete(image_id="img_" + "0" * 32)

        assert exc_info.value.error_code == "IMAGE_NOT_FOUND"

    def test_blob_failure_after_record_delete_is_tolerated(
        self, gateway, storage, metadata
    ) -> None:
        record = gateway.persist(
            data=b"x", mime_type="image/jpeg", original_name="a.jpg", result=PASSING
        )
        storage.fail_delete = True

        gateway.delete(image_id=record.image_id)

        assert metadata.records == {}
        assert record.s3_key in storage.objects


def test_summarize_signs_download_url(gateway, record_factory) -> None:
    record = record_factory()

    summary = gateway.summarize(record, expires_in=900)

    assert summary.download_url == f"https://photos.example.test/{record.s3_key}?expires=900"
    assert summary.model_dump(by_alias=True)["originalName"] == "portrait.jpg"
    assert summary.id == record.image_id
