"""
Package: sqs_queue
Description: SQS transport for the dispatch client.

Connection management, queue resolution, the delivery buffer and the
detached enqueue path, plus an asyncio variant built on aioboto3.
"""

from sqs_dispatch.sqs_queue.aio import AsyncSQSClient
from sqs_dispatch.sqs_queue.buffer import DeliveryBuffer
from sqs_dispatch.sqs_queue.connection import SQSConnection
from sqs_dispatch.sqs_queue.context import WorkerContext
from sqs_dispatch.sqs_queue.enqueue import EnqueuePath
from sqs_dispatch.sqs_queue.resolver import QueueResolver

__all__ = [
    "AsyncSQSClient",
    "DeliveryBuffer",
    "EnqueuePath",
    "QueueResolver",
    "SQSConnection",
    "WorkerContext",
]
