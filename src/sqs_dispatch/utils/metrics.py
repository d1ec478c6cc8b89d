"""
Module: metrics.py
Description: CloudWatch custom metrics publishing.

Publishes queue activity counters (messages received, delivered,
expired, requested, retrieval errors) to CloudWatch, one dimension per
task key. increment() only schedules the PutMetricData call on a
single background thread, so a slow CloudWatch endpoint never holds up
retrieve() or request().

Key Components:
- MetricsClient: CloudWatch metrics client
- put_metric(): Publish individual metrics
- increment(): Count one event for a task key in the background
- flush()/shutdown(): Wait for or stop background publishing
- Graceful error handling for metrics failures

Dependencies: boto3, botocore, concurrent.futures, typing, logger
"""

import threading
from concurrent import futures
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Set

import boto3
from botocore.config import Config

from sqs_dispatch.config.settings import SQSSettings
from sqs_dispatch.utils.logger import get_logger

logger = get_logger(__name__)

MESSAGES_RECEIVED = "MessagesReceived"
MESSAGES_DELIVERED = "MessagesDelivered"
MESSAGES_EXPIRED = "MessagesExpired"
MESSAGES_REQUESTED = "MessagesRequested"
RETRIEVE_ERRORS = "RetrieveErrors"


class MetricsClient:
    """CloudWatch metrics client."""

    def __init__(self, namespace: str = "SQSDispatch", cloudwatch=None):
        """
        Initialize metrics client.

        Args:
            namespace: CloudWatch metrics namespace
            cloudwatch: Optional boto3 CloudWatch client; a default one is created otherwise
        """
        self.namespace = namespace
        self.cloudwatch = cloudwatch or boto3.client('cloudwatch')
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

        logger.info(
            "Metrics client initialized",
            namespace=namespace
        )

    @classmethod
    def from_settings(cls, settings: SQSSettings) -> 'MetricsClient':
        """Create a client using the same credentials, region and timeouts as SQS."""
        secret = settings.aws_secret_access_key
        config = Config(
            region_name=settings.aws_region,
            connect_timeout=settings.http_open_timeout,
            read_timeout=settings.http_read_timeout,
            retries={"total_max_attempts": settings.http_retry_count + 1, "mode": "standard"},
        )
        cloudwatch = boto3.client(
            'cloudwatch',
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=secret.get_secret_value() if secret else None,
            config=config,
        )
        return cls(namespace=settings.metrics_namespace, cloudwatch=cloudwatch)

    def put_metric(
        self,
        metric_name: str,
        value: float,
        unit: str = 'Count',
        dimensions: Optional[dict] = None
    ) -> None:
        """
        Publish a metric to CloudWatch.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (Count, Seconds, etc.)
            dimensions: Optional metric dimensions
        """
        try:
            metric_data = {
                'MetricName': metric_name,
                'Value': value,
                'Unit': unit
            }

            if dimensions:
                metric_data['Dimensions'] = [
                    {'Name': k, 'Value': v}
                    for k, v in dimensions.items()
                ]

            self.cloudwatch.put_metric_data(
                Namespace=self.namespace,
                MetricData=[metric_data]
            )

            logger.debug(
                "Metric published to CloudWatch",
                metric_name=metric_name,
                value=value,
                unit=unit,
                dimensions=dimensions,
                namespace=self.namespace
            )

        except Exception as e:
            # Never fail a queue operation because of metrics
            logger.warning(
                "Failed to publish metric",
                metric_name=metric_name,
                value=value,
                error=str(e),
                namespace=self.namespace
            )

    def increment(self, metric_name: str, task_key: str, value: int = 1) -> Optional[Future]:
        """
        Count value occurrences of metric_name for task_key.

        Returns:
            Future of the background publish, or None when value is not positive
        """
        if value <= 0:
            return None
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1,
                    thread_name_prefix="sqs-metrics"
                )
            future = self._executor.submit(
                self.put_metric, metric_name, value, dimensions={'TaskKey': task_key}
            )
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for scheduled metrics to be published.

        Returns:
            True if every publish finished within the timeout
        """
        with self._lock:
            pending = list(self._pending)
        _, not_done = futures.wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        """Stop the publishing thread. A later increment() starts a new one."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
