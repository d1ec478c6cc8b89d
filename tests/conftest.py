"""
Module: conftest.py
Description: Shared pytest fixtures for SQS dispatch client tests.

Provides test settings, a controllable clock, a stubbed boto3 SQS
client for unit tests, and moto-backed clients for integration tests.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from moto import mock_aws

from sqs_dispatch.client import SQSClient
from sqs_dispatch.config.settings import SQSSettings
from sqs_dispatch.sqs_queue.buffer import DeliveryBuffer
from sqs_dispatch.sqs_queue.connection import SQSConnection
from sqs_dispatch.sqs_queue.context import WorkerContext
from sqs_dispatch.sqs_queue.enqueue import EnqueuePath
from sqs_dispatch.sqs_queue.resolver import QueueResolver

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/test_mailer__deliver"


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> SQSSettings:
    """Settings that ignore .env files and carry dummy credentials."""
    values = dict(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        aws_region="us-east-1",
        environment="test",
        aws_reiteration_time=0,
        http_retry_delay=0,
    )
    values.update(overrides)
    return SQSSettings(_env_file=None, **values)


def sqs_message(message_id: str, payload=None, body=None, receive_count: int = 1) -> dict:
    """One entry of a ReceiveMessage response."""
    return {
        "MessageId": message_id,
        "ReceiptHandle": f"rh-{message_id}",
        "Body": body if body is not None else json.dumps(payload or {}),
        "Attributes": {"ApproximateReceiveCount": str(receive_count)},
    }


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's SQS_* variables out of the tests."""
    import os
    for name in list(os.environ):
        if name.startswith("SQS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def test_settings():
    """Provide test configuration settings without retries."""
    return make_settings()


@pytest.fixture
def clock():
    """Provide a controllable wall clock."""
    return FakeClock()


@pytest.fixture
def context():
    """Provide a fresh worker context."""
    return WorkerContext(name="test-worker")


@pytest.fixture
def stub_sqs():
    """
    Provide a stubbed boto3 SQS client.

    create_queue answers with QUEUE_URL; receive_message returns an
    empty batch unless a test configures it.
    """
    sqs = MagicMock(name="sqs")
    sqs.create_queue.return_value = {"QueueUrl": QUEUE_URL}
    sqs.get_queue_url.return_value = {"QueueUrl": QUEUE_URL}
    sqs.receive_message.return_value = {}
    sqs.send_message.return_value = {"MessageId": "mid-1"}
    sqs.delete_message.return_value = {}
    return sqs


@pytest.fixture
def connection(test_settings, stub_sqs):
    """Provide a connected SQSConnection whose boto3 client is stub_sqs."""
    with patch("sqs_dispatch.sqs_queue.connection.boto3.session.Session") as session_cls:
        session_cls.return_value.client.return_value = stub_sqs
        yield SQSConnection(test_settings).connect()


@pytest.fixture
def resolver(connection):
    return QueueResolver(connection)


@pytest.fixture
def log_sink():
    """Provide a logger double recording error/debug calls."""
    return MagicMock(name="logger")


@pytest.fixture
def metrics():
    return MagicMock(name="metrics")


@pytest.fixture
def delivery_buffer(connection, resolver, log_sink, clock, metrics):
    return DeliveryBuffer(connection, resolver, logger=log_sink, clock=clock, metrics=metrics)


@pytest.fixture
def enqueue_path(connection, resolver, log_sink, metrics):
    path = EnqueuePath(connection, resolver, logger=log_sink, metrics=metrics)
    yield path
    path.shutdown(wait=True)


@pytest.fixture
def moto_client(test_settings, clock):
    """
    Provide a connected SQSClient backed by moto.

    Yields inside mock_aws so queues created by the test exist for the
    whole test.
    """
    with mock_aws():
        client = SQSClient(test_settings, clock=clock).connect()
        yield client
        client.drain(timeout=10)
        if client.enqueue is not None:
            client.enqueue.shutdown(wait=True)
