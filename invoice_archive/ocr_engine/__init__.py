"""
OCR Engine Module for Invoice Archive System.

This module provides:
    - The recognition client for the VAT invoice OCR provider
    - Normalization of provider payloads into invoice records
    - Field normalizers (word shapes, dates, amounts, item names)
"""

from .baidu_client import BaiduOCRClient
from .normalizers import (
    AmountNormalizer,
    DateNormalizer,
    ItemNameNormalizer,
    extract_words,
    first_word,
)
from .result_normalizer import OCRResultNormalizer

__all__ = [
    'BaiduOCRClient',
    'OCRResultNormalizer',
    'AmountNormalizer',
    'DateNormalizer',
    'ItemNameNormalizer',
    'extract_words',
    'first_word',
]
