"""Resilience helpers."""

from sql_backup.resilience.retry import RetryConfig, retry_async

__all__ = ["RetryConfig", "retry_async"]
