"""
Statistics snapshot data classes.

A snapshot is derived from an archive listing and never mutated; it is
recomputed whenever the archive changes.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict


@dataclass(frozen=True)
class StatisticsSnapshot:
    """
    Aggregate statistics over a set of archive entries.

    Attributes:
        total_amount: Sum of all amounts
        count: Number of entries
        average: total_amount / count, 0 for an empty set
        monthly_amounts: YYYY-MM -> sum, ascending by month
        daily_amounts: date -> sum, ascending by day
        payment_method_counts: exact payment method string -> entry count
        trailing_30_days_amount: Sum of amounts dated within the last 30 days
        generated_on: The "today" the trailing window was measured from
    """
    total_amount: Decimal = Decimal("0")
    count: int = 0
    average: Decimal = Decimal("0")
    monthly_amounts: Dict[str, Decimal] = field(default_factory=dict)
    daily_amounts: Dict[date, Decimal] = field(default_factory=dict)
    payment_method_counts: Dict[str, int] = field(default_factory=dict)
    trailing_30_days_amount: Decimal = Decimal("0")
    generated_on: date = field(default_factory=date.today)

    def to_dict(self) -> Dict:
        return {
            'total_amount': format(self.total_amount, 'f'),
            'count': self.count,
            'average': format(self.average, 'f'),
            'monthly_amounts': {k: format(v, 'f') for k, v in self.monthly_amounts.items()},
            'daily_amounts': {k.isoformat(): format(v, 'f') for k, v in self.daily_amounts.items()},
            'payment_method_counts': dict(self.payment_method_counts),
            'trailing_30_days_amount': format(self.trailing_30_days_amount, 'f'),
            'generated_on': self.generated_on.isoformat(),
        }


@dataclass(frozen=True)
class HeatmapDay:
    """One cell of the daily spending heatmap (level 0 means no spending)."""
    day: date
    amount: Decimal
    level: int
    color_hex: str
