"""
Module: sqs_queue/retry.py
Description: Transport-level retry policy for SQS calls.

High-level reiteration of throttling and server-side errors with
exponential backoff, bounded by the configured reiteration time.
botocore performs its own low-level HTTP retries underneath; this
policy only covers errors that survive those.
"""

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from tenacity import (
    AsyncRetrying,
    Retrying,
    retry_if_exception,
    stop_after_delay,
    wait_exponential,
)

from sqs_dispatch.config.settings import SQSSettings
from sqs_dispatch.utils.logger import get_logger

logger = get_logger(__name__)

RETRIABLE_ERROR_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestThrottled",
    "ServiceUnavailable",
    "InternalError",
    "InternalFailure",
    "RequestTimeout",
    "500",
    "502",
    "503",
    "504",
}

RETRIABLE_TRANSPORT_ERRORS = (
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)


def error_code(exc: BaseException) -> str:
    """Return the AWS error code of a ClientError, or an empty string."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "")
    return ""


def is_retriable(exc: BaseException) -> bool:
    """Whether an SQS call that raised exc may be attempted again."""
    if isinstance(exc, RETRIABLE_TRANSPORT_ERRORS):
        return True
    return error_code(exc) in RETRIABLE_ERROR_CODES


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception()
    logger.warning(
        "Retrying SQS call",
        operation=getattr(retry_state.fn, "__name__", str(retry_state.fn)),
        attempt=retry_state.attempt_number,
        error=str(exc),
        error_type=type(exc).__name__,
    )


def _policy(settings: SQSSettings) -> dict:
    return dict(
        stop=stop_after_delay(settings.aws_reiteration_time),
        wait=wait_exponential(
            multiplier=settings.http_retry_delay,
            max=max(settings.http_retry_delay, settings.aws_reiteration_time),
        ),
        retry=retry_if_exception(is_retriable),
        before_sleep=_log_retry,
        reraise=True,
    )


def build_retrying(settings: SQSSettings) -> Retrying:
    """
    Build the retry controller for blocking SQS calls.

    Args:
        settings: Client settings providing reiteration time and delay

    Returns:
        tenacity.Retrying; call as ``retrying(fn, **kwargs)``
    """
    return Retrying(**_policy(settings))


def build_async_retrying(settings: SQSSettings) -> AsyncRetrying:
    """Async counterpart of build_retrying() for aioboto3 clients."""
    return AsyncRetrying(**_policy(settings))
