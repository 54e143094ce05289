"""
Data Normalizers Module.

This module turns the loosely shaped values of a vendor OCR payload into
typed invoice fields:
    - Word extraction (scalar, {"word": ...} object, or array of either)
    - Date formats
    - Currency/amount values
    - Item (commodity) names

Field-level failures never raise; callers keep their defaults.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from dateutil import parser as date_parser

from config import ConfigurationManager
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)


def _word_of(item: Any) -> str:
    """Word carried by a single scalar or {"word": ...} entry."""
    if isinstance(item, dict):
        item = item.get("word")
    if item is None or isinstance(item, (dict, list, bool)):
        return ""
    return str(item)


def extract_words(value: Any) -> List[str]:
    """
    Flatten a vendor field into a list of strings.

    Handles the three shapes the provider uses for the same field:
    a scalar, an object wrapping a "word" value, or an array of either.
    Array positions are preserved; entries without a word become "".

    Example:
        >>> extract_words("打印纸")
        ["打印纸"]
        >>> extract_words({"word": "打印纸"})
        ["打印纸"]
        >>> extract_words([{"row": "1", "word": "打印纸"}, "墨盒"])
        ["打印纸", "墨盒"]
    """
    if value is None:
        return []
    if isinstance(value, list):
        return [_word_of(item) for item in value]
    return [_word_of(value)]


def first_word(payload: dict, key: str) -> str:
    """
    First non-blank word of ``payload[key]``, or "" when there is none.

    Example:
        >>> first_word({"InvoiceNum": [{"word": ""}, {"word": "0123"}]}, "InvoiceNum")
        "0123"
    """
    for word in extract_words(payload.get(key)):
        if word.strip():
            return word
    return ""


class DateNormalizer:
    """
    Parses invoice date strings.

    Explicit formats are tried in order and the first exact match wins;
    if none match, dateutil's parser gets a chance.

    Attributes:
        input_formats: List of strptime formats tried in order

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.parse("2024年01月15日")
        datetime.date(2024, 1, 15)
    """

    def __init__(self, config: Optional[ConfigurationManager] = None) -> None:
        config = config or ConfigurationManager(autoload=False)
        self.input_formats = config.get(
            "postprocessing.date.input_formats",
            ["%Y%m%d", "%Y年%m月%d日", "%Y-%m-%d", "%Y/%m/%d"]
        )

    def parse(self, date_str: str) -> Optional[date]:
        """
        Parse a date string.

        Args:
            date_str: Raw date text from the OCR payload.

        Returns:
            Parsed date, or None if every strategy fails.
        """
        if not date_str or not date_str.strip():
            return None

        date_str = date_str.strip()

        parsed = self._try_explicit_formats(date_str)
        if parsed is None:
            parsed = self._try_dateutil_parser(date_str)

        if parsed is None:
            logger.debug(f"Could not parse date: {date_str}")
        return parsed

    def _try_explicit_formats(self, date_str: str) -> Optional[date]:
        for fmt in self.input_formats:
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue
        return None

    def _try_dateutil_parser(self, date_str: str) -> Optional[date]:
        try:
            return date_parser.parse(date_str).date()
        except (ValueError, OverflowError):
            return None


class AmountNormalizer:
    """
    Parses currency/amount strings into Decimal values.

    Currency symbols and thousands separators are stripped before parsing.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.parse("¥1,234.56")
        Decimal('1234.56')
    """

    def __init__(self, config: Optional[ConfigurationManager] = None) -> None:
        config = config or ConfigurationManager(autoload=False)
        self.currency_symbols = config.get("postprocessing.amount.currency_symbols", ["¥", "￥"])
        self.thousands_separator = config.get("postprocessing.amount.thousands_separator", ",")

    def clean(self, amount_str: str) -> str:
        """Strip currency symbols, thousands separators and whitespace."""
        for symbol in self.currency_symbols:
            amount_str = amount_str.replace(symbol, "")
        if self.thousands_separator:
            amount_str = amount_str.replace(self.thousands_separator, "")
        return "".join(amount_str.split())

    def parse(self, amount_str: str) -> Optional[Decimal]:
        """
        Parse an amount string.

        Args:
            amount_str: Raw amount text (e.g., "¥1,234.56").

        Returns:
            Non-negative finite Decimal, or None if the text is not one.
        """
        if not amount_str:
            return None

        cleaned = self.clean(amount_str)
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            logger.debug(f"Could not parse amount: {amount_str}")
            return None

        if not value.is_finite() or value < 0:
            logger.debug(f"Rejected amount: {amount_str}")
            return None

        return value


class ItemNameNormalizer:
    """
    Builds the item description from commodity names and specifications.

    The two lists are parallel; for each position the specification wins
    when it is non-blank. Characters that clash with archive file naming
    are removed.

    Example:
        >>> ItemNameNormalizer().merge(["*办公用品*纸", "笔"], ["A4", ""])
        "A4, 笔"
    """

    STRIP_CHARS = "*#&-_"

    def clean(self, text: str) -> str:
        if not text:
            return ""
        return text.translate({ord(c): None for c in self.STRIP_CHARS}).strip()

    def merge(self, names: List[str], specs: List[str]) -> str:
        merged = []
        for i in range(max(len(names), len(specs))):
            spec = self.clean(specs[i]) if i < len(specs) else ""
            name = self.clean(names[i]) if i < len(names) else ""
            final = spec or name
            if final:
                merged.append(final)
        return ", ".join(merged)
