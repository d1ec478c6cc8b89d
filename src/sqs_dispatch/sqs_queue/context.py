"""
Module: sqs_queue/context.py
Description: Per-worker state for the SQS dispatch client.

Each worker thread or task owns exactly one WorkerContext holding its
delivery buffers and resolved queue handles. Contexts are never shared,
so their dictionaries are mutated without locks.
"""

from dataclasses import dataclass, field
from typing import Deque, Dict, Optional

from sqs_dispatch.models.message import PendingMessage, QueueHandle


@dataclass
class WorkerContext:
    """
    Buffers and queue handles owned by a single worker.

    Attributes:
        name: Optional label included in log entries
        buffers: Pending messages per task key, in fetch order
        queues: Resolved queue handle per task key
    """

    name: Optional[str] = None
    buffers: Dict[str, Deque[PendingMessage]] = field(default_factory=dict)
    queues: Dict[str, QueueHandle] = field(default_factory=dict)

    def buffered(self, key: str) -> int:
        """Number of messages still waiting in the buffer for key."""
        return len(self.buffers.get(key, ()))

    def clear(self) -> None:
        """
        Forget buffered messages and cached handles.

        Dropped messages are not deleted; SQS makes them visible again
        once their visibility timeout lapses.
        """
        self.buffers.clear()
        self.queues.clear()
