"""
Module: test_client.py
Description: Unit tests for the SQSClient facade.

Covers connect() wiring: it must leave the host's logging setup alone
and must keep the components of an earlier connect() so outstanding
submissions stay tracked.
"""

import threading
from unittest.mock import patch

import pytest
import structlog

from sqs_dispatch.client import SQSClient
from sqs_dispatch.errors import QueueConnectionError

KEY = "mailer__deliver"


@pytest.fixture
def session_cls(stub_sqs):
    with patch("sqs_dispatch.sqs_queue.connection.boto3.session.Session") as session_cls:
        session_cls.return_value.client.return_value = stub_sqs
        yield session_cls


@pytest.fixture
def host_processors():
    """Structlog configured by the application embedding the client."""
    processors = [structlog.processors.KeyValueRenderer()]
    structlog.configure(processors=processors)
    yield processors
    structlog.reset_defaults()


class TestConnect:
    """Test cases for SQSClient.connect."""

    def test_keeps_host_structlog_configuration(self, test_settings, session_cls, host_processors):
        client = SQSClient(test_settings).connect()

        assert structlog.get_config()["processors"] == host_processors
        client.close()

    def test_requires_connect_before_use(self, test_settings, context):
        client = SQSClient(test_settings)

        with pytest.raises(QueueConnectionError):
            client.retrieve(context, KEY)

    def test_second_connect_keeps_components(self, test_settings, session_cls):
        client = SQSClient(test_settings).connect()
        buffer, enqueue = client.buffer, client.enqueue

        client.connect()

        assert client.buffer is buffer
        assert client.enqueue is enqueue

    def test_second_connect_keeps_pending_submissions(self, test_settings, session_cls, stub_sqs):
        """drain() still waits for a send started before a repeated connect()."""
        release = threading.Event()

        def slow_send(**kwargs):
            release.wait(5)
            return {"MessageId": "mid-1"}

        stub_sqs.send_message.side_effect = slow_send
        client = SQSClient(test_settings).connect()
        future = client.worker("w1").request(KEY, {"n": 1})

        try:
            client.connect()
            assert client.drain(timeout=0.2) is False
        finally:
            release.set()

        assert client.drain(timeout=5)
        assert future.result() == "mid-1"
        client.enqueue.shutdown(wait=True)
