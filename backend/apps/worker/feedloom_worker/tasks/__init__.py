"""
Task modules for background processing.

This package contains all background task implementations.
"""

from . import cleanup, feed_fetcher, operations

__all__ = ["feed_fetcher", "cleanup", "operations"]
