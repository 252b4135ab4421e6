"""
Feedloom Worker.

arq worker running fetch obligations, bulk operations and the daily
prune.
"""

__version__ = "0.1.0"
