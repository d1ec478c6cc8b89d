"""
Module: sqs_queue/resolver.py
Description: Maps task keys to SQS queues.

Queue names consist of an optional prefix, the environment name and the
task key, truncated to the SQS limit. Long keys can truncate to the same
name; such keys silently share one queue. Nothing here detects that.
"""

from botocore.exceptions import BotoCoreError, ClientError

from sqs_dispatch.config.settings import SQSSettings
from sqs_dispatch.errors import QueueConnectionError
from sqs_dispatch.models.message import QueueHandle
from sqs_dispatch.sqs_queue.connection import SQSConnection
from sqs_dispatch.sqs_queue.context import WorkerContext
from sqs_dispatch.sqs_queue.retry import error_code
from sqs_dispatch.utils.logger import get_logger

logger = get_logger(__name__)

# Returned by CreateQueue when the name exists with different attributes.
QUEUE_EXISTS_CODES = {"QueueAlreadyExists", "QueueNameExists"}


def queue_name_for(settings: SQSSettings, key: str) -> str:
    """Build the truncated queue name for key."""
    name = f"{settings.prefix}{settings.environment}_{key}"
    return name[:settings.max_queue_name_length]


def create_queue_params(settings: SQSSettings, name: str) -> dict:
    """CreateQueue parameters using the configured visibility timeout as queue default."""
    return {
        'QueueName': name,
        'Attributes': {'VisibilityTimeout': str(settings.visibility_timeout)},
    }


class QueueResolver:
    """
    Resolves task keys to queue handles, creating queues on first use.

    Handles are cached in the calling worker's context for its lifetime.
    """

    def __init__(self, connection: SQSConnection):
        self.connection = connection

    def queue_name(self, key: str) -> str:
        """Return the queue name for key."""
        return queue_name_for(self.connection.settings, key)

    def resolve(self, context: WorkerContext, key: str) -> QueueHandle:
        """
        Return the queue handle for key, creating the queue if needed.

        Args:
            context: Calling worker's context
            key: Task key

        Returns:
            QueueHandle for the key's queue

        Raises:
            QueueConnectionError: If SQS cannot create or look up the queue
        """
        handle = context.queues.get(key)
        if handle is None:
            handle = self._fetch(self.queue_name(key))
            context.queues[key] = handle
        return handle

    def _fetch(self, name: str) -> QueueHandle:
        settings = self.connection.settings
        try:
            try:
                response = self.connection.call(
                    'create_queue', **create_queue_params(settings, name)
                )
            except ClientError as e:
                if error_code(e) not in QUEUE_EXISTS_CODES:
                    raise
                # Queue exists with other attributes; use it as is.
                response = self.connection.call('get_queue_url', QueueName=name)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Unable to resolve SQS queue",
                queue_name=name,
                error=str(e),
                error_type=type(e).__name__
            )
            raise QueueConnectionError(f"Unable to resolve queue {name}: {e}") from e

        logger.debug("SQS queue resolved", queue_name=name, queue_url=response['QueueUrl'])
        return QueueHandle(name=name, url=response['QueueUrl'])
