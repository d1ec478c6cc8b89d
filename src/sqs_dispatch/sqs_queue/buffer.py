"""
Module: sqs_queue/buffer.py
Description: Delivery buffer that hands out SQS messages one at a time.

Messages are received in batches of up to messages_per_req and served
from a per-key buffer in the worker's context. Every buffered message
is stamped with the time its batch arrived. Serving a message that sat
in the buffer too long would risk SQS handing it to another consumer
before it is deleted here, so once less than visibility_reserve seconds
of the visibility timeout remain the message is dropped without being
deleted, and SQS redelivers it later.

Delivered messages are deleted before the caller processes them. A
worker that crashes after retrieve() returns loses that message; the
dispatcher offers no hook to acknowledge after processing.
"""

import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

from sqs_dispatch.errors import DecodeError
from sqs_dispatch.models.message import PendingMessage, QueueHandle
from sqs_dispatch.sqs_queue.connection import SQSConnection
from sqs_dispatch.sqs_queue.context import WorkerContext
from sqs_dispatch.sqs_queue.resolver import QueueResolver
from sqs_dispatch.utils.logger import get_logger
from sqs_dispatch.utils.metrics import (
    MESSAGES_DELIVERED,
    MESSAGES_EXPIRED,
    MESSAGES_RECEIVED,
    RETRIEVE_ERRORS,
    MetricsClient,
)


def receive_params(settings, handle: QueueHandle) -> Dict[str, Any]:
    """ReceiveMessage parameters for one non-blocking batch pull."""
    return {
        'QueueUrl': handle.url,
        'MaxNumberOfMessages': settings.messages_per_req,
        'VisibilityTimeout': settings.visibility_timeout,
        'WaitTimeSeconds': 0,
        'AttributeNames': ['ApproximateReceiveCount'],
    }


def to_buffer(response: Dict[str, Any], received_at: float) -> Deque[PendingMessage]:
    """Wrap the messages of a ReceiveMessage response, keeping their order."""
    return deque(
        PendingMessage.from_sqs(raw, received_at)
        for raw in response.get('Messages', [])
    )


class DeliveryBuffer:
    """
    Serves buffered SQS messages one per retrieve() call.

    Attributes:
        connection: Shared SQS connection
        resolver: Queue resolver for task keys
        logger: Log sink for retrieval errors
        clock: Returns current wall-clock time in epoch seconds
        metrics: Optional CloudWatch counters
    """

    def __init__(
        self,
        connection: SQSConnection,
        resolver: QueueResolver,
        logger=None,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsClient] = None
    ):
        self.connection = connection
        self.resolver = resolver
        self.logger = logger or get_logger(__name__)
        self.clock = clock
        self.metrics = metrics

    def retrieve(self, context: WorkerContext, key: str) -> Optional[Dict[str, Any]]:
        """
        Return the next payload for key, or None when no work is available.

        Args:
            context: Calling worker's context
            key: Task key

        Returns:
            Decoded payload, or None

        Raises:
            DecodeError: If the message body is not a JSON object
        """
        try:
            buffer = context.buffers.get(key)
            if not buffer:
                buffer = self._refill(context, key)

            if not buffer:
                return None

            message = buffer.popleft()
            settings = self.connection.settings

            if message.is_expired(self.clock(), settings.visibility_timeout,
                                  settings.visibility_reserve):
                self.logger.debug(
                    "Dropping buffered message past its delivery window",
                    task_key=key,
                    message_id=message.message_id,
                    received_at=message.received_at,
                    delivery_window=settings.delivery_window,
                    worker=context.name
                )
                self._count(MESSAGES_EXPIRED, key)
                return None

            payload = message.decode()
            self._delete(context, key, message)
            self._count(MESSAGES_DELIVERED, key)
            return payload

        except DecodeError as e:
            self.logger.error(
                "Undecodable message body",
                task_key=key,
                error=str(e),
                body=e.body[:500],
                worker=context.name
            )
            raise

        except Exception as e:
            self.logger.error(
                "Error retrieving message",
                task_key=key,
                error=str(e),
                error_type=type(e).__name__,
                worker=context.name,
                exc_info=True
            )
            self._count(RETRIEVE_ERRORS, key)
            return None

    def _refill(self, context: WorkerContext, key: str) -> Deque[PendingMessage]:
        handle = self.resolver.resolve(context, key)
        response = self.connection.call(
            'receive_message', **receive_params(self.connection.settings, handle)
        )
        buffer = to_buffer(response, self.clock())
        context.buffers[key] = buffer

        self.logger.debug(
            "Buffered messages from SQS",
            task_key=key,
            queue_name=handle.name,
            count=len(buffer),
            worker=context.name
        )
        self._count(MESSAGES_RECEIVED, key, len(buffer))
        return buffer

    def _delete(self, context: WorkerContext, key: str, message: PendingMessage) -> None:
        handle = self.resolver.resolve(context, key)
        message.mark_deleted()
        self.connection.call(
            'delete_message',
            QueueUrl=handle.url,
            ReceiptHandle=message.receipt_handle
        )

    def _count(self, metric_name: str, key: str, value: int = 1) -> None:
        if self.metrics is not None:
            self.metrics.increment(metric_name, key, value)
