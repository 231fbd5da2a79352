"""
Data Normalizers Module.

This module provides normalization functions for:
    - Date formats (to DD/MM/YYYY)
    - Currency/amount values
    - Text cleaning

Normalizers never reject input. A value that cannot be normalized is
passed through unchanged together with a warning; rejecting it is the
validator's job.

Author: ML Engineering Team
"""

import re
from datetime import datetime
from typing import Optional, Tuple
from dateutil import parser as date_parser

from config import get_config
from invoice_engine.schema import DATE_FORMAT
from invoice_engine.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class DateNormalizer:
    """
    Normalizes date strings to the DD/MM/YYYY import format.

    Numeric dates are read day-first: separators are unified, day and
    month are zero-padded and a two-digit year is expanded around a
    pivot. Textual dates are parsed with dateutil.

    Attributes:
        year_pivot: Two-digit years above this become 19xx, others 20xx

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.normalize("5-3-24")
        ("05/03/2024", None)
        >>> normalizer.normalize("15 March 2024")
        ("15/03/2024", None)
        >>> normalizer.normalize("sometime")
        ("sometime", "Invalid date format: sometime")
    """

    NUMERIC_DATE = re.compile(r'^(\d{1,4})[/\-.](\d{1,2})[/\-.](\d{1,4})$')
    MONTH_NAME = re.compile(
        r'\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\b',
        re.IGNORECASE
    )

    def __init__(self, year_pivot: Optional[int] = None) -> None:
        """Initialize the date normalizer with configuration."""
        if year_pivot is None:
            year_pivot = get_config("extraction.two_digit_year_pivot", 50)
        self.year_pivot = int(year_pivot)

    def normalize(self, date_str: str) -> Tuple[str, Optional[str]]:
        """
        Normalize a date string.

        Args:
            date_str: Captured date text.

        Returns:
            Tuple of (normalized value, warning). The warning is None when
            normalization succeeded; otherwise the input is returned as-is.
        """
        if not date_str:
            return "", None

        cleaned = self._clean_date_string(date_str)

        match = self.NUMERIC_DATE.match(cleaned)
        if match:
            return self._normalize_numeric(*match.groups()), None

        if self.MONTH_NAME.search(cleaned):
            parsed = self._try_dateutil_parser(cleaned)
            if parsed is not None:
                return parsed.strftime(DATE_FORMAT), None

        logger.debug(f"Could not normalize date: {date_str}")
        return date_str, f"Invalid date format: {date_str}"

    def _clean_date_string(self, date_str: str) -> str:
        """Collapse whitespace and drop ordinal suffixes."""
        date_str = ' '.join(date_str.split())
        date_str = re.sub(r'(\d+)(st|nd|rd|th)\b', r'\1', date_str, flags=re.IGNORECASE)
        return date_str.strip()

    def _normalize_numeric(self, first: str, second: str, third: str) -> str:
        """Assemble DD/MM/YYYY from numeric parts; YYYY-MM-DD is reordered."""
        if len(first) == 4:
            year, month, day = first, second, third
        else:
            day, month, year = first, second, third

        if len(year) == 2:
            year = f"19{year}" if int(year) > self.year_pivot else f"20{year}"

        return f"{day.zfill(2)}/{month.zfill(2)}/{year}"

    def _try_dateutil_parser(self, date_str: str) -> Optional[datetime]:
        """
        Parse a textual date day-first.

        Returns:
            Parsed datetime or None.
        """
        try:
            return date_parser.parse(date_str, dayfirst=True)
        except (ValueError, OverflowError):
            return None


class AmountNormalizer:
    """
    Normalizes currency/amount strings to numbers.

    Handles currency symbols, thousand separators and comma decimals.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.parse("$1,234.56")
        1234.56
        >>> normalizer.parse("€ 1.234,56")
        1234.56
    """

    CURRENCY_SYMBOLS = ['$', '€', '£', '¥', '₹']
    CURRENCY_CODES = ['AUD', 'NZD', 'USD', 'EUR', 'GBP']

    def parse(self, amount_str: str) -> Optional[float]:
        """
        Convert an amount string to a float.

        Args:
            amount_str: Input amount string (e.g., "$1,234.56").

        Returns:
            Parsed value, or None if the text holds no number.
        """
        if not amount_str:
            return None

        amount_str = self._clean_amount_string(amount_str)
        if not amount_str:
            return None

        amount_str = self._handle_european_format(amount_str)
        amount_str = amount_str.replace(',', '')

        try:
            return float(amount_str)
        except ValueError:
            logger.debug(f"Could not parse amount: {amount_str}")
            return None

    def _clean_amount_string(self, amount_str: str) -> str:
        """Strip currency markers and everything but digits, separators and sign."""
        amount_str = ' '.join(amount_str.split())

        for symbol in self.CURRENCY_SYMBOLS:
            amount_str = amount_str.replace(symbol, '')

        for code in self.CURRENCY_CODES:
            amount_str = re.sub(rf'\b{code}\b', '', amount_str, flags=re.IGNORECASE)

        amount_str = re.sub(r'[^\d,.\-]', '', amount_str)
        return amount_str.strip()

    def _handle_european_format(self, amount_str: str) -> str:
        """
        Convert comma-decimal format to dot-decimal.

        Only a single comma followed by at most two digits, placed after
        any dot, is read as a decimal separator.
        """
        if amount_str.count(',') == 1:
            comma_pos = amount_str.rfind(',')
            dot_pos = amount_str.rfind('.')

            if comma_pos > dot_pos:
                after_comma = amount_str[comma_pos + 1:]
                if len(after_comma) <= 2 and after_comma.isdigit():
                    amount_str = amount_str.replace('.', '')
                    amount_str = amount_str.replace(',', '.')

        return amount_str


def clean_text(text: str) -> str:
    """Collapse whitespace and trim trailing separator punctuation."""
    if not text:
        return ""
    text = ' '.join(text.split())
    return text.strip(' .,;:')
