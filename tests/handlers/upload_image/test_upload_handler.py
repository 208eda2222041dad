import json
import re

import pytest

from core.pipeline.rate_limiter import InMemorySlidingWindowRateLimiter
from handlers.upload_image.handler import handler


@pytest.fixture
def aws(aws_mock, dynamodb_table, s3_bucket, face_detection):
    return face_detection


class TestUploadHandler:
    def test_upload_success(
        self, aws, lambda_context, upload_event, portrait_png, s3_get_object, dynamodb_get_item
    ) -> None:
        response = handler(upload_event(portrait_png), lambda_context)

        assert response["statusCode"] == 201
        body = json.loads(response["body"])
        image = body["image"]
        assert body["success"] is True
        assert re.fullmatch(r"img_[0-9a-f]{32}", image["id"])
        assert image["originalName"] == "portrait.png"
        assert image["filename"].endswith("-portrait.png")
        assert (image["width"], image["height"]) == (1200, 800)
        assert image["size"] == len(portrait_png)
        assert image["status"] == "VALIDATED"
        assert "images/" in image["downloadUrl"]

        item = dynamodb_get_item(image["id"])
        assert item["owner_id"] == "user_1"
        assert s3_get_object(item["s3_key"]) == portrait_png

    def test_duplicate_content(self, aws, lambda_context, upload_event, portrait_png) -> None:
        handler(upload_event(portrait_png), lambda_context)

        response = handler(upload_event(portrait_png, filename="again.png"), lambda_context)

        assert response["statusCode"] == 409
        body = json.loads(response["body"])
        assert body["error_code"] == "DUPLICATE_IMAGE_ERROR"
        assert body["message"] == "Duplicate image detected"

    def test_rejected_image_lists_every_violation(
        self, aws, lambda_context, upload_event, image_factory, face_detector_factory, s3_object_keys
    ) -> None:
        aws.detector = face_detector_factory([])

        response = handler(upload_event(image_factory(299, 300)), lambda_context)

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["error_code"] == "IMAGE_VALIDATION_FAILED"
        assert body["message"] == "Image validation failed"
        assert body["details"] == [
            "Image too small. Minimum size: 300x300, got: 299x300",
            "No face detected in the image",
        ]
        assert s3_object_keys() == []

    def test_undecodable_heic(self, aws, lambda_context, upload_event) -> None:
        event = upload_event(b"not really heic", filename="photo.heic", mime_type="image/heic")

        response = handler(event, lambda_context)

        assert response["statusCode"] == 422
        assert json.loads(response["body"])["error_code"] == "UNSUPPORTED_ENCODING"

    def test_rate_limit(
        self, aws, monkeypatch, lambda_context, upload_event, image_factory
    ) -> None:
        monkeypatch.setattr(
            "handlers.upload_image.handler.rate_limiter",
            InMemorySlidingWindowRateLimiter(limit=1, window_seconds=60),
        )

        first = handler(upload_event(image_factory(50, 50)), lambda_context)
        second = handler(upload_event(image_factory(50, 50, seed=8)), lambda_context)
        other_user = handler(
            upload_event(image_factory(50, 50, seed=9), principal="user_2"), lambda_context
        )

        assert first["statusCode"] == 400
        assert second["statusCode"] == 429
        assert json.loads(second["body"])["error_code"] == "RATE_LIMITED"
        assert other_user["statusCode"] == 400


class TestUploadRequestErrors:
    def test_missing_identity(self, lambda_context, upload_event, portrait_png) -> None:
        response = handler(upload_event(portrait_png, principal=None), lambda_context)

        assert response["statusCode"] == 401
        assert json.loads(response["body"])["error_code"] == "UNAUTHORIZED"

    def test_invalid_json(self, lambda_context) -> None:
        event = {"body": "{not json", "requestContext": {"authorizer": {"principalId": "u"}}}

        response = handler(event, lambda_context)

        assert response["statusCode"] == 400
        assert json.loads(response["body"])["message"] == "Invalid JSON body"

    def test_invalid_base64(self, lambda_context) -> None:
        event = {
            "body": json.dumps({"file": "***", "filename": "a.png", "mimeType": "image/png"}),
            "requestContext": {"authorizer": {"principalId": "user_1"}},
        }

        response = handler(event, lambda_context)

        assert response["statusCode"] == 422
        details = json.loads(response["body"])["details"]
        assert details == [
            {"field": "file", "message": "File must be a valid Base64-encoded string"}
        ]

    def test_extension_must_match_mime_type(self, lambda_context, upload_event) -> None:
        response = handler(upload_event(b"x", mime_type="image/jpeg"), lambda_context)

        assert response["statusCode"] == 422
        details = json.loads(response["body"])["details"]
        assert details[0]["message"] == "Extension '.png' does not match MIME type 'image/jpeg'"

    def test_unsupported_mime_type(self, lambda_context, upload_event) -> None:
        response = handler(
            upload_event(b"GIF89a", filename="a.gif", mime_type="image/gif"), lambda_context
        )

        assert response["statusCode"] == 422
        assert "Unsupported MIME type 'image/gif'" in response["body"]

    def test_missing_fields(self, lambda_context) -> None:
        event = {"body": "{}", "requestContext": {"authorizer": {"principalId": "user_1"}}}

        response = handler(event, lambda_context)

        assert response["statusCode"] == 422
        fields = {d["field"] for d in json.loads(response["body"])["details"]}
        assert fields == {"file", "filename", "mimeType"}

    def test_cors_preflight(self, lambda_context) -> None:
        response = handler({"httpMethod": "OPTIONS"}, lambda_context)

        assert response["statusCode"] == 204
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"
