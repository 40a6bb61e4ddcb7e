# context_deploy/utils/__init__.py
"""Utility functions for context-deploy"""

from .async_utils import run_async, retry_async, BoundedWorkerPool
from .file_utils import (
    sanitize_file_name,
    calculate_file_checksum,
    read_text_async,
    write_text_async,
    copy_file_async,
)
from .formatting import format_duration_ms, format_path, pluralize

__all__ = [
    "run_async",
    "retry_async",
    "BoundedWorkerPool",
    "sanitize_file_name",
    "calculate_file_checksum",
    "read_text_async",
    "write_text_async",
    "copy_file_async",
    "format_duration_ms",
    "format_path",
    "pluralize",
]
