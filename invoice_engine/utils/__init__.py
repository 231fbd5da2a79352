"""
Utility Module for the Invoice Import Engine.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Custom exceptions
    - File helpers
    - Fixed-point money math
"""

from .logger import setup_logger, get_logger
from .helpers import ensure_directory, get_file_extension, generate_timestamp
from .money import to_cents, line_total_cents, cents_to_amount, format_money, round_money

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'get_file_extension',
    'generate_timestamp',
    'to_cents',
    'line_total_cents',
    'cents_to_amount',
    'format_money',
    'round_money'
]
