"""
Module: errors.py
Description: Exception hierarchy for the SQS dispatch client.

Setup and resolution errors propagate to the caller. Decode and
delivery errors propagate because they point at a producer/consumer
mismatch. Transient retrieval errors never reach this hierarchy: the
delivery buffer logs them and reports an empty poll.
"""


class SQSDispatchError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(SQSDispatchError):
    """Required settings are missing or invalid."""


class QueueConnectionError(SQSDispatchError, ConnectionError):
    """SQS could not be reached, authenticated against, or a queue could not be resolved."""


class DecodeError(SQSDispatchError, ValueError):
    """A retrieved message body is not a serialized key-value structure."""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message)
        self.body = body


class DeliveryError(SQSDispatchError):
    """An outbound message could not be handed off for submission."""
