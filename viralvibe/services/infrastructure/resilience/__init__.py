"""Retry and backoff for remote API calls."""

from .retry import ErrorClass, classify_error, compute_quota_delay, call_with_retry

__all__ = ["ErrorClass", "classify_error", "compute_quota_delay", "call_with_retry"]
