"""
Lambda handler responsible for single-shot image uploads.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from core.pipeline.ingestion import IngestionStatus
from core.pipeline.rate_limiter import InMemorySlidingWindowRateLimiter
from core.utils.auth import resolve_caller_id
from core.utils.constants import METRICS_NAMESPACE, SERVICE_NAME
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.settings import get_settings
from core.utils.validators import parse_json_body, validate_request

from .models import ImageUploadRequest
from .service import UploadService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics(namespace=METRICS_NAMESPACE, service=SERVICE_NAME)

# Lives as long as the container.
rate_limiter = InMemorySlidingWindowRateLimiter(
    limit=get_settings().upload_rate_limit,
    window_seconds=get_settings().upload_rate_window_seconds,
)


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle single-shot image uploads.

    Expected body:
    {
        "file": "<base64>",
        "filename": "portrait.jpg",
        "mimeType": "image/jpeg"
    }

    Returns:
        201 with the stored image on acceptance, 400 with every violation on
        rejection, 409 for duplicate content.
    """
    request_id = getattr(context, "aws_request_id", None)
    logger.info(
        "Received image upload request",
        extra={
            "http_method": event.get("httpMethod"),
            "path": event.get("path"),
            "request_id": request_id,
            "function_name": getattr(context, "function_name", None),
        },
    )

    owner_id = resolve_caller_id(event)
    body = parse_json_body(event)

    is_valid, result = validate_request(ImageUploadRequest, body, request_id=request_id)
    if not is_valid:
        logger.warning("Request validation failed", extra={"owner_id": owner_id})
        return result
    request: ImageUploadRequest = result

    service = UploadService(rate_limiter=rate_limiter)
    outcome = service.upload_image(
        owner_id=owner_id,
        filename=request.filename,
        mime_type=request.mime_type,
        file_data=request.file,
    )

    if outcome.status is IngestionStatus.REJECTED:
        metrics.add_metric(name="ImagesRejected", unit=MetricUnit.Count, value=1)
        return ResponseBuilder.image_rejected(outcome.violations, request_id=request_id)

    if outcome.status is IngestionStatus.DUPLICATE:
        metrics.add_metric(name="DuplicatesRejected", unit=MetricUnit.Count, value=1)
        return ResponseBuilder.duplicate_image(request_id=request_id)

    metrics.add_metric(name="ImagesAccepted", unit=MetricUnit.Count, value=1)
    summary = service.summarize(outcome.record)
    return ResponseBuilder.created(
        {"success": True, "image": summary.model_dump(by_alias=True)},
        request_id=request_id,
    )
