"""
Module: sqs_queue/aio.py
Description: asyncio variant of the SQS dispatch client.

Same buffering, expiry and naming rules as the threaded client, on top
of aioboto3. Submission is detached with asyncio.create_task; the task
is returned so callers may await it, and failures inside it are only
logged.

Unlike the threaded client, this one holds an aiohttp session, so
close() does release resources.

Example:
    >>> async with AsyncSQSClient(settings) as client:
    ...     context = WorkerContext(name="mailer")
    ...     await client.request(context, "mailer__deliver", {"user_id": 1})
    ...     payload = await client.retrieve(context, "mailer__deliver")
"""

import asyncio
import time
from contextlib import AsyncExitStack
from typing import Any, Callable, Dict, Optional, Set

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from sqs_dispatch.config.settings import SQSSettings
from sqs_dispatch.errors import DecodeError, DeliveryError, QueueConnectionError
from sqs_dispatch.models.message import QueueHandle, encode_payload
from sqs_dispatch.sqs_queue.buffer import receive_params, to_buffer
from sqs_dispatch.sqs_queue.connection import (
    build_botocore_config,
    require_credentials,
    resolve_settings,
)
from sqs_dispatch.sqs_queue.context import WorkerContext
from sqs_dispatch.sqs_queue.resolver import (
    QUEUE_EXISTS_CODES,
    create_queue_params,
    queue_name_for,
)
from sqs_dispatch.sqs_queue.retry import build_async_retrying, error_code
from sqs_dispatch.utils.logger import get_logger


class AsyncSQSClient:
    """
    aioboto3-backed client exposing retrieve/request coroutines.

    Worker state is passed explicitly as a WorkerContext, one per task.
    """

    def __init__(
        self,
        settings: Optional[SQSSettings] = None,
        logger=None,
        clock: Callable[[], float] = time.time
    ):
        self._settings = settings
        self.logger = logger or get_logger(__name__)
        self.clock = clock
        self._sqs = None
        self._stack: Optional[AsyncExitStack] = None
        self._tasks: Set[asyncio.Task] = set()

    async def __aenter__(self) -> 'AsyncSQSClient':
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def settings(self) -> SQSSettings:
        if self._settings is None:
            self._settings = resolve_settings()
        return self._settings

    @property
    def sqs(self):
        if self._sqs is None:
            raise QueueConnectionError("SQS client is not connected; call connect() first")
        return self._sqs

    async def connect(self) -> 'AsyncSQSClient':
        """
        Validate settings and open the aioboto3 SQS client.

        Raises:
            ConfigurationError: If credentials are missing or settings invalid
            QueueConnectionError: If the client cannot be created
        """
        if self._sqs is not None:
            return self

        settings = self.settings
        require_credentials(settings)

        stack = AsyncExitStack()
        try:
            session = aioboto3.Session(
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key.get_secret_value(),
                region_name=settings.aws_region,
            )
            self._sqs = await stack.enter_async_context(
                session.client(
                    'sqs',
                    endpoint_url=settings.endpoint_url,
                    config=build_botocore_config(settings),
                )
            )
        except Exception as e:
            await stack.aclose()
            self.logger.error(
                "Unable to connect to SQS",
                region=settings.aws_region,
                error=str(e),
                error_type=type(e).__name__
            )
            raise QueueConnectionError(f"Unable to connect to SQS. Error: {e}") from e

        self._stack = stack
        self.logger.info(
            "Async SQS client connected",
            region=settings.aws_region,
            environment=settings.environment
        )
        return self

    async def close(self) -> bool:
        """Wait for detached submissions, then close the underlying client."""
        await self.drain()
        if self._stack is not None:
            await self._stack.aclose()
        self._stack = None
        self._sqs = None
        return True

    def queue_name(self, key: str) -> str:
        return queue_name_for(self.settings, key)

    async def resolve(self, context: WorkerContext, key: str) -> QueueHandle:
        """
        Return the queue handle for key, creating the queue if needed.

        Raises:
            QueueConnectionError: If SQS cannot create or look up the queue
        """
        handle = context.queues.get(key)
        if handle is not None:
            return handle

        name = self.queue_name(key)
        try:
            try:
                response = await self._call(
                    'create_queue', **create_queue_params(self.settings, name)
                )
            except ClientError as e:
                if error_code(e) not in QUEUE_EXISTS_CODES:
                    raise
                response = await self._call('get_queue_url', QueueName=name)
        except (ClientError, BotoCoreError) as e:
            self.logger.error(
                "Unable to resolve SQS queue",
                queue_name=name,
                error=str(e),
                error_type=type(e).__name__
            )
            raise QueueConnectionError(f"Unable to resolve queue {name}: {e}") from e

        handle = QueueHandle(name=name, url=response['QueueUrl'])
        context.queues[key] = handle
        return handle

    async def retrieve(self, context: WorkerContext, key: str) -> Optional[Dict[str, Any]]:
        """
        Return the next payload for key, or None when no work is available.

        Raises:
            DecodeError: If the message body is not a JSON object
        """
        try:
            buffer = context.buffers.get(key)
            if not buffer:
                handle = await self.resolve(context, key)
                response = await self._call('receive_message', **receive_params(self.settings, handle))
                buffer = context.buffers[key] = to_buffer(response, self.clock())

            if not buffer:
                return None

            message = buffer.popleft()
            settings = self.settings
            if message.is_expired(self.clock(), settings.visibility_timeout,
                                  settings.visibility_reserve):
                self.logger.debug(
                    "Dropping buffered message past its delivery window",
                    task_key=key,
                    message_id=message.message_id,
                    worker=context.name
                )
                return None

            payload = message.decode()
            handle = await self.resolve(context, key)
            message.mark_deleted()
            await self._call('delete_message', QueueUrl=handle.url,
                             ReceiptHandle=message.receipt_handle)
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
            return None

    async def request(self, context: WorkerContext, key: str, payload: Dict[str, Any]) -> asyncio.Task:
        """
        Queue payload for key on a detached task.

        Encoding and queue resolution are awaited; SendMessage is not.

        Returns:
            The submission task, resolving to the SQS message id or to
            None when the send failed

        Raises:
            DeliveryError: If encoding or queue resolution fails
        """
        try:
            body = encode_payload(payload)
            handle = await self.resolve(context, key)
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

        task = asyncio.create_task(self._send(key, handle.url, body))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for all detached submissions to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _send(self, key: str, queue_url: str, body: str) -> Optional[str]:
        try:
            response = await self._call('send_message', QueueUrl=queue_url, MessageBody=body)
        except Exception as e:
            self.logger.error(
                "SQS Client: Error sending msg",
                task_key=key,
                error=str(e),
                error_type=type(e).__name__
            )
            return None
        return response['MessageId']

    async def _call(self, operation: str, **params) -> Any:
        method = getattr(self.sqs, operation)
        return await build_async_retrying(self.settings)(method, **params)
