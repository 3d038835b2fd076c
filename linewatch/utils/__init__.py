"""
Utility modules for the line-movement tracker.

Common utilities: logging, secrets, circuit breaking, API key checks.
"""

from linewatch.utils.logging import get_logger
from linewatch.utils.secrets import read_secret

__all__ = [
    "get_logger",
    "read_secret",
]
