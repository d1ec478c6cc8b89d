"""
Module: client.py
Description: Dispatcher-facing SQS client.

SQSClient owns the process-wide pieces (settings, boto3 client, submit
executor). Each worker asks it for a WorkerClient, which carries that
worker's buffers and queue handles and exposes the two calls a job
dispatcher needs: retrieve(key) and request(key, payload).

Example:
    >>> client = SQSClient(settings).connect()
    >>> worker = client.worker("mailer")
    >>> worker.request("mailer__deliver", {"user_id": 42})
    >>> worker.retrieve("mailer__deliver")
    {'user_id': 42}
"""

import time
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional

from sqs_dispatch.config.settings import SQSSettings
from sqs_dispatch.errors import QueueConnectionError
from sqs_dispatch.models.message import QueueHandle
from sqs_dispatch.sqs_queue.buffer import DeliveryBuffer
from sqs_dispatch.sqs_queue.connection import SQSConnection
from sqs_dispatch.sqs_queue.context import WorkerContext
from sqs_dispatch.sqs_queue.enqueue import EnqueuePath
from sqs_dispatch.sqs_queue.resolver import QueueResolver
from sqs_dispatch.utils.logger import get_logger
from sqs_dispatch.utils.metrics import MetricsClient


class SQSClient:
    """
    SQS work transport shared by all workers of a process.

    Attributes:
        connection: Connection manager holding settings and the boto3 client
        resolver: Task key to queue resolver
        buffer: Delivery buffer used by retrieve()
        enqueue: Detached submission path used by request()
    """

    def __init__(
        self,
        settings: Optional[SQSSettings] = None,
        logger=None,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsClient] = None
    ):
        self.connection = SQSConnection(settings)
        self.logger = logger or get_logger(__name__)
        self.clock = clock
        self.metrics = metrics
        self.resolver = QueueResolver(self.connection)
        self.buffer: Optional[DeliveryBuffer] = None
        self.enqueue: Optional[EnqueuePath] = None

    @property
    def settings(self) -> SQSSettings:
        return self.connection.settings

    def connect(self) -> 'SQSClient':
        """
        Read settings, check credentials and create the SQS client.

        Raises:
            ConfigurationError: If credentials are missing or settings invalid
            QueueConnectionError: If the SQS client cannot be created
        """
        self.connection.connect()
        if self.enqueue is not None:
            return self
        settings = self.connection.settings

        if self.metrics is None and settings.metrics_enabled:
            self.metrics = MetricsClient.from_settings(settings)

        self.buffer = DeliveryBuffer(
            self.connection, self.resolver,
            logger=self.logger, clock=self.clock, metrics=self.metrics
        )
        self.enqueue = EnqueuePath(
            self.connection, self.resolver,
            logger=self.logger, metrics=self.metrics
        )
        return self

    def close(self) -> bool:
        """No persistent connection to SQS, so nothing to close."""
        return self.connection.close()

    def worker(self, name: Optional[str] = None) -> 'WorkerClient':
        """
        Create the client for one worker thread or task.

        Args:
            name: Optional label included in log entries

        Returns:
            WorkerClient with its own buffers and queue handles
        """
        return WorkerClient(self, WorkerContext(name=name))

    def retrieve(self, context: WorkerContext, key: str) -> Optional[Dict[str, Any]]:
        """Return the next payload for key in context, or None."""
        return self._require(self.buffer).retrieve(context, key)

    def request(self, context: WorkerContext, key: str, payload: Dict[str, Any]) -> Future:
        """Queue payload for key without waiting for SQS."""
        return self._require(self.enqueue).request(context, key, payload)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for detached submissions; True if all finished in time."""
        if self.enqueue is None:
            return True
        return self.enqueue.drain(timeout)

    def _require(self, component):
        if component is None:
            raise QueueConnectionError("SQS client is not connected; call connect() first")
        return component


class WorkerClient:
    """
    SQS client bound to one worker's context.

    Not safe to share between threads: each worker gets its own.
    """

    def __init__(self, client: SQSClient, context: WorkerContext):
        self.client = client
        self.context = context

    def retrieve(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Return at most one decoded payload for key.

        Returns None when the queue is empty, when the next buffered
        message is too close to its visibility timeout, or when SQS
        could not be reached.

        Raises:
            DecodeError: If the message body is not a JSON object
        """
        return self.client.retrieve(self.context, key)

    def request(self, key: str, payload: Dict[str, Any]) -> Future:
        """
        Enqueue payload for key, best effort.

        Raises:
            DeliveryError: If the payload cannot be encoded or handed off
        """
        return self.client.request(self.context, key, payload)

    def queue_for_key(self, key: str) -> QueueHandle:
        """Resolve (and create if needed) the queue for key."""
        return self.client.resolver.resolve(self.context, key)

    def queue_name(self, key: str) -> str:
        return self.client.resolver.queue_name(key)
