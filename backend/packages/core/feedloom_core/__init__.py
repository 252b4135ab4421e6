"""
Feedloom Core Package.

This package contains the fetch, schedule and prune engine, service
classes, and shared schemas for the Feedloom application.
"""

__version__ = "0.1.0"

from .logging_config import get_logger, init_logging

__all__ = ["init_logging", "get_logger"]
