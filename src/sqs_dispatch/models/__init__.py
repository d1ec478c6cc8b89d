"""
Package: models
Description: Data models for queued work.

- QueueHandle: resolved remote queue
- PendingMessage: buffered message awaiting delivery
- encode_payload / decode_body: JSON wire codec
"""

from sqs_dispatch.models.message import (
    PendingMessage,
    QueueHandle,
    decode_body,
    encode_payload,
)

__all__ = ["PendingMessage", "QueueHandle", "decode_body", "encode_payload"]
