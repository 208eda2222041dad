"""Caller authorization against the identity collaborator.

Authentication happens upstream (API Gateway authorizer backed by the
identity provider). Handlers only need to know whether the caller was
authorized and, if so, an opaque user id.
"""

from typing import Any

from core.models.errors import UnauthorizedError


def resolve_caller_id(event: dict[str, Any]) -> str:
    """Return the authenticated user id from an API Gateway proxy event.

    Looks at `requestContext.authorizer.principalId` (Lambda authorizers)
    and `requestContext.authorizer.claims.sub` (Cognito/JWT authorizers).

    Raises:
        UnauthorizedError: If the caller carries no authorized identity
    """
    request_context = event.get("requestContext") or {}
    authorizer = request_context.get("authorizer") or {}

    principal = authorizer.get("principalId")
    if not principal:
        claims = authorizer.get("claims") or {}
        principal = claims.get("sub")

    if not isinstance(principal, str) or not principal.strip():
        raise UnauthorizedError()

    return principal.strip()
