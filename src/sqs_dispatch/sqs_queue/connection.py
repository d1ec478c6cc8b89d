"""
Module: sqs_queue/connection.py
Description: Connection manager for the SQS dispatch client.

Reads settings once, checks that credentials are present, and builds
the boto3 SQS client shared by every worker of the process. boto3
clients are safe to use from several threads at once, so no locking
happens here.

SQS is reached over stateless HTTP requests; there is no session to
tear down, which is why close() does nothing.
"""

from typing import Any, Optional

import boto3
from botocore.config import Config
from pydantic import ValidationError

from sqs_dispatch.config.settings import SQSSettings, load_settings
from sqs_dispatch.errors import ConfigurationError, QueueConnectionError
from sqs_dispatch.sqs_queue.retry import build_retrying
from sqs_dispatch.utils.logger import get_logger

logger = get_logger(__name__)


def resolve_settings(settings: Optional[SQSSettings] = None) -> SQSSettings:
    """
    Return the given settings or load them from the environment.

    Raises:
        ConfigurationError: If the environment holds invalid values
    """
    if settings is not None:
        return settings
    try:
        return load_settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid SQS settings: {e}") from e


def require_credentials(settings: SQSSettings) -> None:
    """Raise ConfigurationError unless both credentials are configured."""
    if not settings.has_credentials:
        raise ConfigurationError(
            "Unable to start SQS client due to missing SQS options: "
            "aws_access_key_id and aws_secret_access_key are required"
        )


def build_botocore_config(settings: SQSSettings) -> Config:
    """Translate HTTP retry and timeout settings into a botocore Config."""
    return Config(
        region_name=settings.aws_region,
        connect_timeout=settings.http_open_timeout,
        read_timeout=settings.http_read_timeout,
        retries={
            "total_max_attempts": settings.http_retry_count + 1,
            "mode": "standard",
        },
        max_pool_connections=max(10, settings.submit_workers * 2),
    )


class SQSConnection:
    """
    Holds settings and the shared boto3 SQS client.

    Attributes:
        settings: Validated client settings
        sqs: boto3 SQS client (available after connect())

    Example:
        >>> connection = SQSConnection(settings).connect()
        >>> connection.call('send_message', QueueUrl=url, MessageBody='{}')
    """

    def __init__(self, settings: Optional[SQSSettings] = None):
        self._settings = settings
        self._sqs = None
        self._retrying = None

    @property
    def settings(self) -> SQSSettings:
        """Settings in effect, loading them from the environment on first access."""
        if self._settings is None:
            self._settings = resolve_settings()
        return self._settings

    @property
    def connected(self) -> bool:
        return self._sqs is not None

    @property
    def sqs(self):
        """
        The boto3 SQS client.

        Raises:
            QueueConnectionError: If connect() has not been called
        """
        if self._sqs is None:
            raise QueueConnectionError("SQS client is not connected; call connect() first")
        return self._sqs

    def connect(self) -> 'SQSConnection':
        """
        Validate settings and create the SQS client.

        Calling connect() on a connected instance is a no-op.

        Returns:
            self

        Raises:
            ConfigurationError: If credentials are missing or settings invalid
            QueueConnectionError: If the client cannot be created
        """
        if self._sqs is not None:
            return self

        settings = self.settings
        require_credentials(settings)

        try:
            session = boto3.session.Session(
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key.get_secret_value(),
                region_name=settings.aws_region,
            )
            self._sqs = session.client(
                'sqs',
                endpoint_url=settings.endpoint_url,
                config=build_botocore_config(settings),
            )
        except Exception as e:
            logger.error(
                "Unable to connect to SQS",
                region=settings.aws_region,
                endpoint_url=settings.endpoint_url,
                error=str(e),
                error_type=type(e).__name__
            )
            raise QueueConnectionError(f"Unable to connect to SQS. Error: {e}") from e

        self._retrying = build_retrying(settings)

        logger.info(
            "SQS client connected",
            region=settings.aws_region,
            environment=settings.environment,
            prefix=settings.prefix,
            messages_per_req=settings.messages_per_req,
            visibility_timeout=settings.visibility_timeout,
            visibility_reserve=settings.visibility_reserve
        )
        return self

    def close(self) -> bool:
        """No persistent connection to SQS, so nothing to close."""
        return True

    def call(self, operation: str, **params) -> Any:
        """
        Invoke an SQS API operation through the transport retry policy.

        Args:
            operation: boto3 client method name, e.g. 'receive_message'
            **params: Operation parameters

        Returns:
            The operation's response dict
        """
        method = getattr(self.sqs, operation)
        return self._retrying.copy()(method, **params)
