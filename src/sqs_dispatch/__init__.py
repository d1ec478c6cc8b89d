"""
Package: sqs_dispatch
Description: Amazon SQS work transport for background-job dispatchers.
"""

from sqs_dispatch.client import SQSClient, WorkerClient
from sqs_dispatch.config.settings import SQSSettings, load_settings
from sqs_dispatch.errors import (
    ConfigurationError,
    DecodeError,
    DeliveryError,
    QueueConnectionError,
    SQSDispatchError,
)
from sqs_dispatch.sqs_queue.aio import AsyncSQSClient
from sqs_dispatch.sqs_queue.context import WorkerContext

__version__ = "0.1.0"

__all__ = [
    "AsyncSQSClient",
    "ConfigurationError",
    "DecodeError",
    "DeliveryError",
    "QueueConnectionError",
    "SQSClient",
    "SQSDispatchError",
    "SQSSettings",
    "WorkerClient",
    "WorkerContext",
    "load_settings",
]
