"""
Lambda handler responsible for chunked image uploads.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from core.models.errors import ImageServiceError
from core.pipeline.chunk_manager import failed_session
from core.pipeline.ingestion import IngestionStatus
from core.pipeline.rate_limiter import InMemorySlidingWindowRateLimiter
from core.utils.auth import resolve_caller_id
from core.utils.constants import METRICS_NAMESPACE, SERVICE_NAME
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.settings import get_settings
from core.utils.validators import parse_json_body, validate_request

from .models import ChunkUploadRequest
from .service import ChunkedUploadService

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
    Handle one chunk of a chunked upload.

    Expected body:
    {
        "sessionId": "optional, generated when absent",
        "filename": "portrait.heic",
        "mimeType": "image/heic",
        "totalChunks": 4,
        "chunkIndex": 0,
        "chunkData": "<base64>"
    }

    Returns:
        200 with progress while incomplete; on completion the single-shot
        upload responses, with `completed: true` and `sessionId` on success.
    """
    request_id = getattr(context, "aws_request_id", None)
    logger.info(
        "Received chunk upload request",
        extra={
            "http_method": event.get("httpMethod"),
            "path": event.get("path"),
            "request_id": request_id,
            "function_name": getattr(context, "function_name", None),
        },
    )

    owner_id = resolve_caller_id(event)
    body = parse_json_body(event)

    is_valid, result = validate_request(ChunkUploadRequest, body, request_id=request_id)
    if not is_valid:
        logger.warning("Request validation failed", extra={"owner_id": owner_id})
        return result
    request: ChunkUploadRequest = result

    service = ChunkedUploadService(rate_limiter=rate_limiter)

    try:
        write = service.upload_chunk(
            owner_id=owner_id,
            session_id=request.session_id,
            filename=request.filename,
            mime_type=request.mime_type,
            total_chunks=request.total_chunks,
            chunk_index=request.chunk_index,
            chunk_data=request.chunk_data,
        )
    except ImageServiceError as exc:
        if failed_session(exc):
            metrics.add_metric(name="UploadSessionsFailed", unit=MetricUnit.Count, value=1)
        raise

    metrics.add_metric(name="ChunksReceived", unit=MetricUnit.Count, value=1)

    if not write.completed or write.outcome is None:
        return ResponseBuilder.ok(
            {
                "success": True,
                "completed": False,
                "sessionId": write.session_id,
                "progress": write.progress.model_dump(),
            },
            request_id=request_id,
        )

    outcome = write.outcome

    if outcome.status is IngestionStatus.REJECTED:
        metrics.add_metric(name="ImagesRejected", unit=MetricUnit.Count, value=1)
        metrics.add_metric(name="UploadSessionsFailed", unit=MetricUnit.Count, value=1)
        return ResponseBuilder.image_rejected(outcome.violations, request_id=request_id)

    if outcome.status is IngestionStatus.DUPLICATE:
        metrics.add_metric(name="DuplicatesRejected", unit=MetricUnit.Count, value=1)
        metrics.add_metric(name="UploadSessionsFailed", unit=MetricUnit.Count, value=1)
        return ResponseBuilder.duplicate_image(request_id=request_id)

    metrics.add_metric(name="ImagesAccepted", unit=MetricUnit.Count, value=1)
    summary = service.summarize(outcome.record)
    return ResponseBuilder.created(
        {
            "success": True,
            "completed": True,
            "sessionId": write.session_id,
            "image": summary.model_dump(by_alias=True),
        },
        request_id=request_id,
    )
