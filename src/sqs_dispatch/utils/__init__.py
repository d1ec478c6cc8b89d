"""
Module: utils
Description: Package initialization for utility functions.

Shared helpers used throughout the SQS dispatch client:
- logger: Structured logging configuration and helpers
- metrics: Optional CloudWatch counters for queue activity
"""

__all__ = []
