"""
Module: test_sqs_work.py
Description: Unit tests for the sqs_work.py smoke-check script.
"""

import argparse
import importlib.util
from concurrent.futures import Future
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

SCRIPT = Path(__file__).resolve().parents[3] / "scripts" / "sqs_work.py"


@pytest.fixture(scope="module")
def sqs_work():
    spec = importlib.util.spec_from_file_location("sqs_work", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def request_args(timeout: float = 1.0) -> argparse.Namespace:
    return argparse.Namespace(key="mailer__deliver", payload='{"user_id": 42}', timeout=timeout)


def client_with_future(future: Future) -> MagicMock:
    client = MagicMock(name="client")
    worker = client.worker.return_value
    worker.request.return_value = future
    worker.queue_name.return_value = "test_mailer__deliver"
    return client


class TestRequestCommand:
    """Test cases for the request subcommand."""

    def test_prints_message_id(self, sqs_work, capsys):
        future = Future()
        future.set_result("mid-1")

        assert sqs_work.cmd_request(client_with_future(future), request_args()) == 0
        assert "✅ Sent to test_mailer__deliver (message id mid-1)" in capsys.readouterr().out

    @pytest.mark.parametrize("error", [
        ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "SendMessage"),
        EndpointConnectionError(endpoint_url="https://sqs.us-east-1.amazonaws.com"),
    ])
    def test_send_failure_reports_error(self, sqs_work, capsys, error):
        future = Future()
        future.set_exception(error)

        assert sqs_work.cmd_request(client_with_future(future), request_args()) == 1
        assert "❌" in capsys.readouterr().out

    def test_timeout_reports_error(self, sqs_work, capsys):
        assert sqs_work.cmd_request(client_with_future(Future()), request_args(timeout=0.01)) == 1
        assert "❌ SQS did not accept the message within 0.01s" in capsys.readouterr().out

    def test_invalid_json_payload(self, sqs_work, capsys):
        args = argparse.Namespace(key="mailer__deliver", payload="{not json", timeout=1.0)

        assert sqs_work.cmd_request(MagicMock(), args) == 2
        assert "❌ Payload is not valid JSON" in capsys.readouterr().out
