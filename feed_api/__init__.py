"""
Top-level package for the Feed API.

The server lives in ``feed_api.app``; ``feed_api.client`` is a small
HTTP client for the same API.
"""

__all__ = []
