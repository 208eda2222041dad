"""
Lambda handler responsible for listing images with pagination.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from core.utils.auth import resolve_caller_id
from core.utils.constants import METRICS_NAMESPACE, SERVICE_NAME
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.validators import validate_request

from .models import ListImagesRequest
from .service import ListService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics(namespace=METRICS_NAMESPACE, service=SERVICE_NAME)


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle requests to list images.

    Query parameters: `page` (default 1), `limit` (1-100, default 20) and
    `status` (default VALIDATED).

    Returns:
        200 with `{images: [...], pagination: {page, limit, total, pages}}`
    """
    request_id = getattr(context, "aws_request_id", None)
    logger.info(
        "Received image list request",
        extra={
            "http_method": event.get("httpMethod"),
            "path": event.get("path"),
            "query_params": event.get("queryStringParameters"),
            "request_id": request_id,
            "function_name": getattr(context, "function_name", None),
        },
    )

    resolve_caller_id(event)
    params = event.get("queryStringParameters") or {}

    is_valid, result = validate_request(ListImagesRequest, params, request_id=request_id)
    if not is_valid:
        logger.warning("Request validation failed", extra={"query_params": params})
        return result
    request: ListImagesRequest = result

    response = ListService().list_images(
        status=request.status,
        page=request.page,
        limit=request.limit,
    )

    return ResponseBuilder.ok(response.model_dump(by_alias=True), request_id=request_id)
