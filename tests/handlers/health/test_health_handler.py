import json

from handlers.health.handler import handler
from handlers.health.service import HealthService


class TestHealthHandler:
    def test_all_dependencies_reachable(
        self, aws_mock, dynamodb_table, s3_bucket, lambda_context
    ) -> None:
        response = handler({"httpMethod": "GET", "path": "/health"}, lambda_context)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["status"] == "OK"
        assert body["dependencies"] == {"dynamodb": True, "s3": True}
        assert body["environment"] == "dev"
        assert body["timestamp"]

    def test_missing_bucket_is_degraded(self, aws_mock, dynamodb_table, lambda_context) -> None:
        response = handler({"httpMethod": "GET", "path": "/health"}, lambda_context)

        assert response["statusCode"] == 503
        body = json.loads(response["body"])
        assert body["status"] == "DEGRADED"
        assert body["dependencies"] == {"dynamodb": True, "s3": False}


def test_environment_label(monkeypatch, metadata, storage) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")
    storage.reachable = False

    report = HealthService(metadata=metadata, storage=storage).check()

    assert report.environment == "prod"
    assert not report.healthy
    assert report.dependencies.dynamodb is True
