"""
Lambda handler responsible for deleting an image resource.
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from core.utils.auth import resolve_caller_id
from core.utils.constants import METRICS_NAMESPACE, SERVICE_NAME
from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder
from core.utils.validators import validate_request

from .models import DeleteImageRequest
from .service import DeleteService

logger = Logger(UTC=True)
tracer = Tracer()
metrics = Metrics(namespace=METRICS_NAMESPACE, service=SERVICE_NAME)


@api_gateway_handler
@tracer.capture_lambda_handler
@metrics.log_metrics()
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Handle image deletion requests.

    The image identifier comes from the `image_id` path parameter. Unknown
    ids surface as 404 through the handler decorator.

    Returns:
        200 with `{"success": true}`
    """
    request_id = getattr(context, "aws_request_id", None)
    logger.info(
        "Received image delete request",
        extra={
            "http_method": event.get("httpMethod"),
            "path": event.get("path"),
            "request_id": request_id,
            "function_name": getattr(context, "function_name", None),
        },
    )

    owner_id = resolve_caller_id(event)
    path_params = event.get("pathParameters") or {}

    is_valid, result = validate_request(
        DeleteImageRequest,
        {"image_id": path_params.get("image_id")},
        request_id=request_id,
    )
    if not is_valid:
        logger.warning("Request validation failed", extra={"path_params": path_params})
        return result
    request: DeleteImageRequest = result

    DeleteService().delete_image(request.image_id)

    metrics.add_metric(name="ImagesDeleted", unit=MetricUnit.Count, value=1)
    logger.info(
        "Image delete request completed",
        extra={"image_id": request.image_id, "owner_id": owner_id},
    )

    return ResponseBuilder.ok({"success": True}, request_id=request_id)
