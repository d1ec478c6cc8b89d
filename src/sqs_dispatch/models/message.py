"""
Module: message.py
Description: Message and queue models for the SQS dispatch client.

Defines the buffered message model built from ReceiveMessage output,
the resolved queue handle, and the JSON codec used for message bodies.

Key Components:
- QueueHandle: name and URL of one remote queue
- PendingMessage: receipt metadata plus raw body of a buffered message
- encode_payload(): dict -> JSON text
- decode_body(): JSON text -> dict, raising DecodeError otherwise

Dependencies: pydantic, json
"""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from sqs_dispatch.errors import DecodeError


class QueueHandle(BaseModel):
    """
    Reference to one durable SQS queue.

    Two handles are equal when they point at the same queue, which is
    what happens when two task keys truncate to the same queue name.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Queue name")
    url: str = Field(..., min_length=1, description="Queue URL used for API calls")


class PendingMessage(BaseModel):
    """
    A message held in a worker's delivery buffer.

    Attributes:
        message_id: SQS message id
        receipt_handle: Token required to delete this delivery
        body: Raw message body text
        received_at: Epoch seconds at which the batch reached the client
        receive_count: SQS ApproximateReceiveCount
        deleted: Whether the receipt handle has been used for deletion
    """

    model_config = ConfigDict(validate_assignment=True)

    message_id: str = Field(..., description="SQS message id")
    receipt_handle: str = Field(..., min_length=1, description="Receipt handle")
    body: str = Field(default="", description="Raw message body")
    received_at: float = Field(..., description="Client receipt time, epoch seconds")
    receive_count: int = Field(default=1, ge=1, description="Approximate receive count")
    deleted: bool = Field(default=False, description="Receipt handle consumed")

    @classmethod
    def from_sqs(cls, raw: Dict[str, Any], received_at: float) -> 'PendingMessage':
        """
        Build a PendingMessage from one entry of a ReceiveMessage response.

        Args:
            raw: Message dict as returned by boto3
            received_at: Time the batch was received

        Returns:
            PendingMessage instance
        """
        attributes = raw.get('Attributes') or {}
        return cls(
            message_id=raw.get('MessageId', ''),
            receipt_handle=raw['ReceiptHandle'],
            body=raw.get('Body') or '',
            received_at=received_at,
            receive_count=int(attributes.get('ApproximateReceiveCount', 1)),
        )

    def age(self, now: float) -> float:
        """Seconds elapsed since the message was received."""
        return now - self.received_at

    def is_expired(self, now: float, visibility_timeout: int, visibility_reserve: int) -> bool:
        """
        Whether too little of the visibility window remains to deliver safely.

        A message is expired once ``visibility_timeout - visibility_reserve``
        seconds have elapsed since receipt. Expired messages are dropped
        without deletion so SQS redelivers them after the timeout.
        """
        return self.age(now) >= visibility_timeout - visibility_reserve

    def decode(self) -> Dict[str, Any]:
        """Decode the body into a dict. Raises DecodeError on malformed bodies."""
        return decode_body(self.body)

    def mark_deleted(self) -> None:
        """
        Record that the receipt handle has been used.

        Raises:
            RuntimeError: If the handle was already used for deletion
        """
        if self.deleted:
            raise RuntimeError(f"Receipt handle for message {self.message_id} already used")
        self.deleted = True


def encode_payload(payload: Dict[str, Any]) -> str:
    """
    Serialize a payload to JSON text.

    Args:
        payload: Key-value structure to send

    Returns:
        JSON string

    Raises:
        TypeError: If payload is not a dict or holds non-serializable values
    """
    if not isinstance(payload, dict):
        raise TypeError(f"payload must be a dict, got {type(payload).__name__}")
    return json.dumps(payload, ensure_ascii=False)


def decode_body(body: Optional[str]) -> Dict[str, Any]:
    """
    Parse a message body into a dict.

    Args:
        body: JSON text

    Returns:
        Decoded payload

    Raises:
        DecodeError: If body is empty, not JSON, or not a JSON object
    """
    if not isinstance(body, str) or not body.strip():
        raise DecodeError("message body is empty", body=body or "")

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeError(f"message body is not valid JSON: {e}", body=body) from e

    if not isinstance(parsed, dict):
        raise DecodeError(
            f"message body must be a JSON object, got {type(parsed).__name__}",
            body=body
        )

    return parsed
