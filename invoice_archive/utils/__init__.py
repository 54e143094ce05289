"""
Utility Module for Invoice Archive System.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - File operations
    - Background execution
"""

from .logger import setup_logger, get_logger
from .helpers import (
    ensure_directory,
    get_file_extension,
    generate_timestamp,
    run_in_background,
)

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'get_file_extension',
    'generate_timestamp',
    'run_in_background',
]
