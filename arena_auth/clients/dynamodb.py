"""
DynamoDB-backed credential store.

Items are keyed by ``userId`` and hold only ciphertext for secret attributes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from arena_auth.core.config import AWSSettings
from arena_auth.core.errors import StoreUnavailableError
from arena_auth.models.credentials import CredentialRecord

logger = logging.getLogger(__name__)

_CONDITION_FAILED = "ConditionalCheckFailedException"


def _to_item(record: CredentialRecord) -> Dict[str, Any]:
    return {
        "userId": record.user_id,
        "accessToken": record.access_token_encrypted,
        "refreshToken": record.refresh_token_encrypted,
        "accessExpiresAt": record.access_expires_at,
        "sessionToken": record.session_token_encrypted,
        "sessionExpiresAt": record.session_expires_at,
    }


def _from_item(item: Dict[str, Any]) -> CredentialRecord:
    # boto3 returns DynamoDB numbers as Decimal.
    return CredentialRecord(
        user_id=item["userId"],
        access_token_encrypted=item["accessToken"],
        refresh_token_encrypted=item["refreshToken"],
        access_expires_at=int(item["accessExpiresAt"]),
        session_token_encrypted=item["sessionToken"],
        session_expires_at=int(item["sessionExpiresAt"]),
    )


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == _CONDITION_FAILED


class DynamoDBCredentialStore:
    """Credential record CRUD on a single DynamoDB table."""

    def __init__(self, settings: AWSSettings, *, table: Any = None) -> None:
        self._settings = settings
        if table is None:
            # One attempt with bounded timeouts; retry policy belongs to callers.
            client_config = Config(
                connect_timeout=settings.store_timeout_seconds,
                read_timeout=settings.store_timeout_seconds,
                retries={"total_max_attempts": 1, "mode": "standard"},
            )
            resource = boto3.resource(
                "dynamodb", region_name=settings.region_name, config=client_config
            )
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table

    def get(self, user_id: str) -> Optional[CredentialRecord]:
        """Retrieve the record for ``user_id``."""
        try:
            response = self._table.get_item(Key={"userId": user_id})
        except (BotoCoreError, ClientError) as exc:
            raise StoreUnavailableError(f"DynamoDB get_item failed: {exc}") from exc
        item = response.get("Item")
        if not item:
            return None
        return _from_item(item)

    def put(self, user_id: str, record: CredentialRecord) -> None:
        """Put the full record in the table."""
        item = _to_item(record)
        item["userId"] = user_id
        try:
            self._table.put_item(Item=item)
        except (BotoCoreError, ClientError) as exc:
            raise StoreUnavailableError(f"DynamoDB put_item failed: {exc}") from exc

    def delete(self, user_id: str) -> None:
        try:
            self._table.delete_item(Key={"userId": user_id})
        except (BotoCoreError, ClientError) as exc:
            raise StoreUnavailableError(f"DynamoDB delete_item failed: {exc}") from exc

    def update_session_expiry(self, user_id: str, session_expires_at: int) -> bool:
        """Slide the session deadline without touching any other attribute."""
        return self._update(
            user_id,
            update_expression="SET sessionExpiresAt = :sessionExpiresAt",
            values={":sessionExpiresAt": session_expires_at},
            condition=Attr("userId").exists(),
        )

    def update_tokens(
        self,
        user_id: str,
        *,
        access_token_encrypted: str,
        refresh_token_encrypted: str,
        access_expires_at: int,
        expected_access_token_encrypted: Optional[str] = None,
    ) -> bool:
        """Store a refreshed token set, optionally as a compare-and-swap."""
        condition = Attr("userId").exists()
        if expected_access_token_encrypted is not None:
            condition = condition & Attr("accessToken").eq(
                expected_access_token_encrypted
            )
        return self._update(
            user_id,
            update_expression=(
                "SET accessToken = :accessToken, refreshToken = :refreshToken, "
                "accessExpiresAt = :accessExpiresAt"
            ),
            values={
                ":accessToken": access_token_encrypted,
                ":refreshToken": refresh_token_encrypted,
                ":accessExpiresAt": access_expires_at,
            },
            condition=condition,
        )

    def _update(
        self,
        user_id: str,
        *,
        update_expression: str,
        values: Dict[str, Any],
        condition: Any,
    ) -> bool:
        try:
            self._table.update_item(
                Key={"userId": user_id},
                UpdateExpression=update_expression,
                ExpressionAttributeValues=values,
                ConditionExpression=condition,
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                logger.info(
                    "Conditional update skipped", extra={"user_id": user_id}
                )
                return False
            raise StoreUnavailableError(f"DynamoDB update_item failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreUnavailableError(f"DynamoDB update_item failed: {exc}") from exc
        return True


__all__ = ["DynamoDBCredentialStore"]
