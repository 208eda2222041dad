"""
Lambda handler reporting dependency health.
"""

from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from core.utils.decorators import api_gateway_handler
from core.utils.response import ResponseBuilder

from .service import HealthService

logger = Logger(UTC=True)
tracer = Tracer()


@api_gateway_handler
@tracer.capture_lambda_handler
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """
    Report reachability of DynamoDB and S3.

    Returns:
        200 when both are reachable, otherwise 503; the body is the same.
    """
    request_id = getattr(context, "aws_request_id", None)

    report = HealthService().check()
    body = report.model_dump()

    logger.info("Health check", extra={"status": report.status, "request_id": request_id})

    if not report.healthy:
        return ResponseBuilder.service_unavailable(body, request_id=request_id)

    return ResponseBuilder.ok(body, request_id=request_id)
