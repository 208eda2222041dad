"""DynamoDB-backed implementation of UploadSessionRepository."""

from typing import Any

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from core.infrastructure.adapters.dynamodb_adapter import DynamoDBAdapter, DynamoDBAdapterProtocol
from core.infrastructure.aws.item_codec import from_dynamodb_item, to_dynamodb_item
from core.models.errors import DynamoDBError, UploadSessionError
from core.models.upload_session import UploadSession, UploadStatus
from core.repositories.upload_session_repository import UploadSessionRepository
from core.utils.constants import (
    ENV_UPLOAD_SESSION_TABLE_NAME,
    ERROR_CODE_SESSION_CREATE_FAILED,
    ERROR_CODE_SESSION_FETCH_FAILED,
    ERROR_CODE_SESSION_UPDATE_FAILED,
    ERROR_CODE_UPLOAD_SESSION_CLOSED,
)
from core.utils.time import utc_now_iso

logger = Logger(UTC=True)

_OPEN_STATUSES = {
    ":pending": UploadStatus.PENDING.value,
    ":uploading": UploadStatus.UPLOADING.value,
}
_ASSEMBLING_STATUS = {":assembling": UploadStatus.ASSEMBLING.value}


def _condition(allowed: dict[str, str]) -> str:
    placeholders = ", ".join(allowed)
    return f"attribute_exists(session_id) AND #status IN ({placeholders})"


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _to_item(session: UploadSession) -> dict[str, Any]:
    item: dict[str, Any] = to_dynamodb_item(session.model_dump(mode="json"))
    # Progress is derived from the received_chunks number set.
    item.pop("uploaded_chunks", None)
    # Epoch-seconds attribute for the table's TTL sweeper.
    item["ttl"] = int(session.expires_at.timestamp())
    return item


def _to_session(item: dict[str, Any]) -> UploadSession:
    data = from_dynamodb_item(item)
    data.pop("ttl", None)
    data["uploaded_chunks"] = len(data.pop("received_chunks", ()))
    return UploadSession.model_validate(data)


class DynamoDBUploadSessions(UploadSessionRepository):
    """Upload session state in its own DynamoDB table, keyed by session_id.

    Received chunk indices live in a number set updated with ADD, so a chunk
    counts once no matter which container records it. Status transitions use
    condition expressions so concurrent Lambda invocations can never claim,
    complete or fail a session twice.
    """

    def __init__(self, adapter: DynamoDBAdapterProtocol | None = None) -> None:
        self._db: DynamoDBAdapterProtocol = adapter or DynamoDBAdapter(
            table_env_var=ENV_UPLOAD_SESSION_TABLE_NAME
        )

    def create_session(self, *, session: UploadSession) -> None:
        session_id = session.session_id
        logger.debug("Creating upload session", extra={"session_id": session_id})

        try:
            self._db.put_item(
                item=_to_item(session),
                condition_expression="attribute_not_exists(session_id)",
            )
            logger.info(
                "Upload session created",
                extra={"session_id": session_id, "total_chunks": session.total_chunks},
            )

        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise UploadSessionError(
                    message="Upload session already exists",
                    details={"session_id": session_id},
                ) from exc

            logger.error("DynamoDB put_item failed", extra={"session_id": session_id})
            raise DynamoDBError(
                message="Unable to start upload session",
                error_code=ERROR_CODE_SESSION_CREATE_FAILED,
                details={"session_id": session_id},
            ) from exc

    def fetch_session(self, *, session_id: str) -> UploadSession | None:
        try:
            response = self._db.get_item(key={"session_id": session_id}, consistent_read=True)

        except ClientError as exc:
            logger.error("DynamoDB get_item failed", extra={"session_id": session_id})
            raise DynamoDBError(
                message="Unable to retrieve upload session",
                error_code=ERROR_CODE_SESSION_FETCH_FAILED,
                details={"session_id": session_id},
            ) from exc

        item = response.get("Item")
        if item is None:
            return None

        return _to_session(item)

    def record_chunk(self, *, session_id: str, chunk_index: int) -> int:
        try:
            response = self._db.update_item(
                Key={"session_id": session_id},
                UpdateExpression=(
                    "SET #status = :uploading, updated_at = :now ADD received_chunks :index"
                ),
                ConditionExpression=_condition(_OPEN_STATUSES),
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    **_OPEN_STATUSES,
                    ":index": {chunk_index},
                    ":now": utc_now_iso(),
                },
                ReturnValues="UPDATED_NEW",
            )

        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise UploadSessionError(
                    message="Upload session is already closed",
                    error_code=ERROR_CODE_UPLOAD_SESSION_CLOSED,
                    details={"session_id": session_id},
                ) from exc

            logger.error("DynamoDB update_item failed", extra={"session_id": session_id})
            raise DynamoDBError(
                message="Unable to record upload progress",
                error_code=ERROR_CODE_SESSION_UPDATE_FAILED,
                details={"session_id": session_id},
            ) from exc

        received = response.get("Attributes", {}).get("received_chunks", set())
        return len(received)

    def claim_completion(self, *, session_id: str) -> bool:
        return self._transition(
            session_id=session_id,
            update_expression="SET #status = :target, updated_at = :now",
            values={":target": UploadStatus.ASSEMBLING.value},
            allowed=_OPEN_STATUSES,
        )

    def mark_completed(self, *, session_id: str, storage_key: str, image_id: str) -> bool:
        return self._transition(
            session_id=session_id,
            update_expression=(
                "SET #status = :target, storage_key = :key, image_id = :image_id, "
                "updated_at = :now"
            ),
            values={
                ":target": UploadStatus.COMPLETED.value,
                ":key": storage_key,
                ":image_id": image_id,
            },
            allowed=_ASSEMBLING_STATUS,
        )

    def mark_failed(self, *, session_id: str, reason: str) -> bool:
        return self._transition(
            session_id=session_id,
            update_expression="SET #status = :target, failure_reason = :reason, updated_at = :now",
            values={":target": UploadStatus.FAILED.value, ":reason": reason},
            allowed={**_OPEN_STATUSES, **_ASSEMBLING_STATUS},
        )

    def _transition(
        self,
        *,
        session_id: str,
        update_expression: str,
        values: dict[str, Any],
        allowed: dict[str, str],
    ) -> bool:
        try:
            self._db.update_item(
                Key={"session_id": session_id},
                UpdateExpression=update_expression,
                ConditionExpression=_condition(allowed),
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={**allowed, **values, ":now": utc_now_iso()},
            )
            logger.info(
                "Upload session transitioned",
                extra={"session_id": session_id, "status": values[":target"]},
            )
            return True

        except ClientError as exc:
            if _is_conditional_failure(exc):
                logger.warning(
                    "Upload session transition refused",
                    extra={"session_id": session_id, "requested": values[":target"]},
                )
                return False

            logger.error("DynamoDB update_item failed", extra={"session_id": session_id})
            raise DynamoDBError(
                message="Unable to update upload session",
                error_code=ERROR_CODE_SESSION_UPDATE_FAILED,
                details={"session_id": session_id},
            ) from exc
