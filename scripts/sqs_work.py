#!/usr/bin/env python3
"""
Script: sqs_work.py
Description: Smoke-check the SQS work transport from a shell.

Uses the same SQS_* environment variables (or .env file) as worker
processes, so it talks to exactly the queues they use.

Usage:
    python scripts/sqs_work.py queue-name mailer__deliver
    python scripts/sqs_work.py request mailer__deliver '{"user_id": 42}'
    python scripts/sqs_work.py retrieve mailer__deliver --count 5
"""

import argparse
import json
import sys
from concurrent import futures

from botocore.exceptions import BotoCoreError, ClientError

from sqs_dispatch import SQSClient, SQSDispatchError
from sqs_dispatch.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def cmd_queue_name(client: SQSClient, args) -> int:
    worker = client.worker("cli")
    print(worker.queue_name(args.key))
    return 0


def cmd_request(client: SQSClient, args) -> int:
    try:
        payload = json.loads(args.payload)
    except json.JSONDecodeError as e:
        print(f"❌ Payload is not valid JSON: {e}")
        return 2

    worker = client.worker("cli")
    future = worker.request(args.key, payload)
    try:
        message_id = future.result(timeout=args.timeout)
    except futures.TimeoutError:
        print(f"❌ SQS did not accept the message within {args.timeout}s")
        return 1
    except (ClientError, BotoCoreError) as e:
        logger.error("SQS work command failed", command="request", error=str(e))
        print(f"❌ {e}")
        return 1
    print(f"✅ Sent to {worker.queue_name(args.key)} (message id {message_id})")
    return 0


def cmd_retrieve(client: SQSClient, args) -> int:
    worker = client.worker("cli")
    received = 0
    for _ in range(args.count):
        payload = worker.retrieve(args.key)
        if payload is None:
            break
        received += 1
        print(json.dumps(payload, indent=2, ensure_ascii=False))

    if received == 0:
        print(f"No work available on {worker.queue_name(args.key)}")
    return 0


def main():
    """Main script execution."""
    parser = argparse.ArgumentParser(
        description="Send and receive work on SQS task queues",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/sqs_work.py queue-name mailer__deliver
  python scripts/sqs_work.py request mailer__deliver '{"user_id": 42}'
  python scripts/sqs_work.py retrieve mailer__deliver --count 5

Warning:
  retrieve deletes every message it prints.
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    name_parser = subparsers.add_parser("queue-name", help="Print the queue name for a task key")
    name_parser.add_argument("key", help="Task key")
    name_parser.set_defaults(func=cmd_queue_name)

    request_parser = subparsers.add_parser("request", help="Enqueue one JSON payload")
    request_parser.add_argument("key", help="Task key")
    request_parser.add_argument("payload", help="JSON object to send")
    request_parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for SQS to accept the message (default: 30)"
    )
    request_parser.set_defaults(func=cmd_request)

    retrieve_parser = subparsers.add_parser("retrieve", help="Retrieve and delete payloads")
    retrieve_parser.add_argument("key", help="Task key")
    retrieve_parser.add_argument(
        "--count",
        type=int,
        default=1,
        help="Maximum number of payloads to retrieve (default: 1)"
    )
    retrieve_parser.set_defaults(func=cmd_retrieve)

    args = parser.parse_args()

    try:
        client = SQSClient()
        configure_logging(client.settings.log_level)
        client.connect()
        sys.exit(args.func(client, args))
    except SQSDispatchError as e:
        logger.error("SQS work command failed", command=args.command, error=str(e))
        print(f"❌ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
