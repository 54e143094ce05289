"""
Statistics Module for Invoice Archive System.

Aggregates archive listings into totals, monthly/daily sums, payment method
counts and a daily spending heatmap.
"""

from .aggregator import aggregate
from .heatmap import LEVEL_COLORS, build_heatmap, spending_level

__all__ = [
    'aggregate',
    'build_heatmap',
    'spending_level',
    'LEVEL_COLORS',
]
