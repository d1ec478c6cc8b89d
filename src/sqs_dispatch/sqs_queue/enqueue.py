"""
Module: sqs_queue/enqueue.py
Description: Fire-and-forget submission of work to SQS.

request() encodes the payload and resolves the queue in the caller's
thread, then hands SendMessage to a thread pool and returns the Future
without waiting. Errors before the hand-off raise DeliveryError; errors
during the detached send are only logged. This is best-effort delivery,
not a reliable delivery contract.
"""

import threading
from concurrent import futures
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Any, Dict, Optional, Set

from sqs_dispatch.errors import DeliveryError
from sqs_dispatch.models.message import encode_payload
from sqs_dispatch.sqs_queue.connection import SQSConnection
from sqs_dispatch.sqs_queue.context import WorkerContext
from sqs_dispatch.sqs_queue.resolver import QueueResolver
from sqs_dispatch.utils.logger import get_logger
from sqs_dispatch.utils.metrics import MESSAGES_REQUESTED, MetricsClient


class EnqueuePath:
    """
    Submits encoded payloads on a detached executor.

    The executor is shared by all workers of the process and created on
    first use. Only the encoded body and queue URL cross into the
    submission thread.
    """

    def __init__(
        self,
        connection: SQSConnection,
        resolver: QueueResolver,
        logger=None,
        metrics: Optional[MetricsClient] = None
    ):
        self.connection = connection
        self.resolver = resolver
        self.logger = logger or get_logger(__name__)
        self.metrics = metrics
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    def request(self, context: WorkerContext, key: str, payload: Dict[str, Any]) -> Future:
        """
        Queue payload for key without waiting for SQS to accept it.

        Args:
            context: Calling worker's context
            key: Task key
            payload: Key-value structure to send

        Returns:
            Future resolving to the SQS message id; safe to ignore

        Raises:
            DeliveryError: If encoding, queue resolution or hand-off fails
        """
        try:
            body = encode_payload(payload)
            handle = self.resolver.resolve(context, key)
            future = self._submit(key, handle.url, body)
        except Exception as e:
            self.logger.error(
                "Error sending message",
                task_key=key,
                payload=repr(payload)[:500],
                error=str(e),
                error_type=type(e).__name__,
                worker=context.name
            )
            raise DeliveryError(
                f"Error sending msg for key: {key}, value: {payload!r}; Error: {e}"
            ) from e

        return future

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for outstanding submissions.

        Args:
            timeout: Seconds to wait at most; None waits indefinitely

        Returns:
            True if every submission finished within the timeout
        """
        with self._lock:
            pending = list(self._pending)
        _, not_done = futures.wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        """Stop the submission executor. A later request() starts a new one."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    @property
    def pending(self) -> int:
        """Number of submissions not yet finished."""
        with self._lock:
            return len(self._pending)

    def _submit(self, key: str, queue_url: str, body: str) -> Future:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.connection.settings.submit_workers,
                    thread_name_prefix="sqs-submit"
                )
            future = self._executor.submit(self._send, key, queue_url, body)
            self._pending.add(future)
        future.add_done_callback(partial(self._on_done, key))
        return future

    def _send(self, key: str, queue_url: str, body: str) -> str:
        response = self.connection.call('send_message', QueueUrl=queue_url, MessageBody=body)
        message_id = response['MessageId']

        self.logger.debug(
            "Message sent to SQS",
            task_key=key,
            message_id=message_id,
            queue_url=queue_url
        )
        if self.metrics is not None:
            self.metrics.increment(MESSAGES_REQUESTED, key)
        return message_id

    def _on_done(self, key: str, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.logger.error(
                "SQS Client: Error sending msg",
                task_key=key,
                error=str(error),
                error_type=type(error).__name__
            )
