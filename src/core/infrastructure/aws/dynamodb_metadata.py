"""DynamoDB-backed implementation of ImageMetadataRepository.

Every image record is written together with a hash guard item keyed
`hash#<sha256>` in one transaction. The guard carries neither `status` nor
`file_hash`, so it never appears in either index; its conditional put is what
keeps stored hashes unique when two uploads of the same bytes race.
"""

from typing import Any

from aws_lambda_powertools import Logger
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from pydantic import ValidationError as PydanticValidationError

from core.infrastructure.adapters.dynamodb_adapter import DynamoDBAdapter, DynamoDBAdapterProtocol
from core.infrastructure.aws.item_codec import from_dynamodb_item, to_dynamodb_item
from core.models.errors import (
    DuplicateImageError,
    DynamoDBError,
)
from core.models.image import ImageRecord
from core.repositories.metadata_repository import ImageMetadataRepository
from core.utils.constants import (
    ERROR_CODE_METADATA_CREATE_FAILED,
    ERROR_CODE_METADATA_DELETE_FAILED,
    ERROR_CODE_METADATA_DUPLICATE_CHECK_FAILED,
    ERROR_CODE_METADATA_FETCH_FAILED,
    ERROR_CODE_METADATA_LIST_FAILED,
    FILE_HASH_INDEX,
    HASH_GUARD_PREFIX,
    STATUS_CREATED_INDEX,
)

logger = Logger(UTC=True)

_NOT_EXISTS = "attribute_not_exists(image_id)"


def _to_record(item: dict[str, Any]) -> ImageRecord:
    return ImageRecord.model_validate(from_dynamodb_item(item))


def hash_guard_key(file_hash: str) -> dict[str, str]:
    return {"image_id": f"{HASH_GUARD_PREFIX}{file_hash}"}


def _cancellation_codes(exc: ClientError) -> list[str]:
    """Per-action reason codes of a cancelled transaction, in action order."""
    reasons = exc.response.get("CancellationReasons") or []
    codes = [reason.get("Code", "None") for reason in reasons]
    if codes:
        return codes

    # Some clients only report the reasons inside the message text.
    message = exc.response.get("Error", {}).get("Message", "")
    start, end = message.rfind("["), message.rfind("]")
    if start == -1 or end < start:
        return []
    return [code.strip() for code in message[start + 1 : end].split(",")]


class DynamoDBMetadata(ImageMetadataRepository):
    """DynamoDB-backed metadata storage with error handling.

    All boto3 errors are caught and translated into
    domain-specific errors with stable semantics.
    """

    def __init__(self, adapter: DynamoDBAdapterProtocol | None = None) -> None:
        """Initialize with DynamoDB adapter."""
        self._db: DynamoDBAdapterProtocol = adapter or DynamoDBAdapter()

    def create_metadata(self, *, record: ImageRecord) -> None:
        """Create the record for an image and claim its content hash.

        Raises:
            DuplicateImageError: If the image_id or the file_hash is already taken
            DynamoDBError: If creation fails
        """
        image_id = record.image_id
        file_hash = record.file_hash

        logger.debug(
            "Creating metadata",
            extra={"image_id": image_id, "file_hash": file_hash},
        )

        guard = {
            **hash_guard_key(file_hash),
            "guard_for": image_id,
            "created_at": record.created_at,
        }

        try:
            self._db.transact_write(
                actions=[
                    {
                        "Put": {
                            "Item": to_dynamodb_item(record.model_dump(mode="json")),
                            "ConditionExpression": _NOT_EXISTS,
                        }
                    },
                    {"Put": {"Item": guard, "ConditionExpression": _NOT_EXISTS}},
                ]
            )
            logger.info("Metadata created", extra={"image_id": image_id})

        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code")
            logger.error(
                "DynamoDB transact_write_items failed",
                extra={"image_id": image_id, "error_code": error_code},
            )

            if error_code == "TransactionCanceledException":
                codes = _cancellation_codes(exc)
                if len(codes) > 1 and codes[1] == "ConditionalCheckFailed":
                    raise DuplicateImageError(
                        message="Duplicate image detected",
                        details={"image_id": image_id, "file_hash": file_hash},
                    ) from exc
                if codes and codes[0] == "ConditionalCheckFailed":
                    raise DuplicateImageError(
                        message="This image already exists",
                        details={"image_id": image_id},
                    ) from exc

            raise DynamoDBError(
                message="Unable to save image metadata at this time",
                error_code=ERROR_CODE_METADATA_CREATE_FAILED,
                details={"image_id": image_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error creating metadata")
            raise DynamoDBError(
                message="Unable to save image metadata at this time",
                error_code=ERROR_CODE_METADATA_CREATE_FAILED,
                details={"image_id": image_id},
            ) from exc

    def fetch_metadata(self, *, image_id: str) -> ImageRecord | None:
        """Fetch the record for a single image.

        Raises:
            DynamoDBError: If fetch fails or the stored item is malformed
        """
        logger.debug("Fetching metadata", extra={"image_id": image_id})

        try:
            response = self._db.get_item(key={"image_id": image_id})
            item = response.get("Item")

            if item is None:
                return None

            return _to_record(item)

        except ClientError as exc:
            logger.error("DynamoDB get_item failed", extra={"image_id": image_id})
            raise DynamoDBError(
                message="Unable to retrieve image metadata",
                error_code=ERROR_CODE_METADATA_FETCH_FAILED,
                details={"image_id": image_id},
            ) from exc

        except PydanticValidationError as exc:
            logger.error("Stored image metadata is malformed", extra={"image_id": image_id})
            raise DynamoDBError(
                message="Invalid image metadata format",
                error_code=ERROR_CODE_METADATA_FETCH_FAILED,
                details={"image_id": image_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error fetching metadata")
            raise DynamoDBError(
                message="Unable to retrieve image metadata",
                error_code=ERROR_CODE_METADATA_FETCH_FAILED,
                details={"image_id": image_id},
            ) from exc

    def remove_metadata(self, *, image_id: str) -> None:
        """Remove the record for an image and release its hash guard.

        Removing an absent record is a no-op.

        Raises:
            DynamoDBError: If deletion fails
        """
        logger.debug("Removing metadata", extra={"image_id": image_id})

        try:
            item = self._db.get_item(key={"image_id": image_id}, consistent_read=True).get("Item")
            if item is None:
                return

            actions: list[dict[str, Any]] = [{"Delete": {"Key": {"image_id": image_id}}}]
            if item.get("file_hash"):
                actions.append({"Delete": {"Key": hash_guard_key(item["file_hash"])}})

            self._db.transact_write(actions=actions)
            logger.info("Metadata removed", extra={"image_id": image_id})

        except ClientError as exc:
            logger.error("DynamoDB metadata delete failed", extra={"image_id": image_id})
            raise DynamoDBError(
                message="Unable to delete image metadata",
                error_code=ERROR_CODE_METADATA_DELETE_FAILED,
                details={"image_id": image_id},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error removing metadata")
            raise DynamoDBError(
                message="Unable to delete image metadata",
                error_code=ERROR_CODE_METADATA_DELETE_FAILED,
                details={"image_id": image_id},
            ) from exc

    def list_images(self, *, status: str, limit: int | None = None) -> list[ImageRecord]:
        """List records with `status`, newest first.

        NOTE:
        - Uses the status/created_at index; created_at is ISO-8601 UTC so
          lexicographic order is chronological.
        - With `limit`, stops reading the index once `limit` records are in
          hand, so a page costs reads proportional to its end offset rather
          than to the whole index.
        """
        logger.debug("Listing images", extra={"status": status, "limit": limit})

        query_kwargs: dict[str, Any] = {
            "IndexName": STATUS_CREATED_INDEX,
            "KeyConditionExpression": Key("status").eq(status),
            "ScanIndexForward": False,
        }

        records: list[ImageRecord] = []
        last_evaluated_key: dict[str, Any] | None = None

        try:
            while True:
                if last_evaluated_key:
                    query_kwargs["ExclusiveStartKey"] = last_evaluated_key
                if limit is not None:
                    query_kwargs["Limit"] = limit - len(records)

                response = self._db.query(**query_kwargs)
                page_items = response.get("Items", [])

                if not isinstance(page_items, list):
                    raise DynamoDBError(
                        message="Invalid query response from DynamoDB",
                        error_code=ERROR_CODE_METADATA_LIST_FAILED,
                        details={"status": status},
                    )

                records.extend(_to_record(item) for item in page_items)

                last_evaluated_key = response.get("LastEvaluatedKey")
                if not last_evaluated_key:
                    break
                if limit is not None and len(records) >= limit:
                    break

            logger.info("Images listed", extra={"status": status, "count": len(records)})
            return records

        except DynamoDBError:
            raise

        except ClientError as exc:
            logger.error("DynamoDB query failed", extra={"status": status})
            raise DynamoDBError(
                message="Unable to list images",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
                details={"status": status},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error listing images")
            raise DynamoDBError(
                message="Unable to list images",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
                details={"status": status},
            ) from exc

    def count_images(self, *, status: str) -> int:
        """Count records with `status` without fetching them.

        Raises:
            DynamoDBError: If the query fails
        """
        query_kwargs: dict[str, Any] = {
            "IndexName": STATUS_CREATED_INDEX,
            "KeyConditionExpression": Key("status").eq(status),
            "Select": "COUNT",
        }

        total = 0
        try:
            while True:
                response = self._db.query(**query_kwargs)
                total += int(response.get("Count", 0))

                last_evaluated_key = response.get("LastEvaluatedKey")
                if not last_evaluated_key:
                    return total
                query_kwargs["ExclusiveStartKey"] = last_evaluated_key

        except ClientError as exc:
            logger.error("DynamoDB count query failed", extra={"status": status})
            raise DynamoDBError(
                message="Unable to list images",
                error_code=ERROR_CODE_METADATA_LIST_FAILED,
                details={"status": status},
            ) from exc

    def check_duplicate_image(self, *, file_hash: str) -> bool:
        """Check whether any stored image already has `file_hash`.

        BEHAVIOR ON ERROR:
        - If the check fails, an exception is raised (fail-closed approach)
        - This prevents silent duplicate uploads if DynamoDB is unavailable

        Raises:
            DynamoDBError: If check fails
        """
        logger.debug("Checking for duplicate", extra={"file_hash": file_hash})

        try:
            response = self._db.query(
                IndexName=FILE_HASH_INDEX,
                KeyConditionExpression=Key("file_hash").eq(file_hash),
                Limit=1,
            )

            items = response.get("Items", [])

            if not isinstance(items, list):
                raise DynamoDBError(
                    message="Invalid duplicate check response",
                    error_code=ERROR_CODE_METADATA_DUPLICATE_CHECK_FAILED,
                    details={"file_hash": file_hash},
                )

            is_duplicate = bool(items)
            logger.debug(
                "Duplicate check completed",
                extra={"file_hash": file_hash, "is_duplicate": is_duplicate},
            )
            return is_duplicate

        except DynamoDBError:
            raise

        except ClientError as exc:
            logger.error("DynamoDB duplicate check failed", extra={"file_hash": file_hash})
            raise DynamoDBError(
                message="Unable to verify duplicate image",
                error_code=ERROR_CODE_METADATA_DUPLICATE_CHECK_FAILED,
                details={"file_hash": file_hash},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error checking duplicate")
            raise DynamoDBError(
                message="Unable to verify duplicate image",
                error_code=ERROR_CODE_METADATA_DUPLICATE_CHECK_FAILED,
                details={"file_hash": file_hash},
            ) from exc

    def is_reachable(self) -> bool:
        """Probe the table with DescribeTable."""
        try:
            self._db.describe()
            return True
        except Exception:
            logger.warning("DynamoDB health probe failed", exc_info=True)
            return False
