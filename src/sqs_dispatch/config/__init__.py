"""
Package: config
Description: Settings for the SQS dispatch client.
"""

from sqs_dispatch.config.settings import SQSSettings, load_settings

__all__ = ["SQSSettings", "load_settings"]
