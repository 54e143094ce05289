"""
Daily spending heatmap.

Turns the daily sums of a snapshot into a fixed window of cells, each with
an intensity level relative to the busiest day in the window.
"""

from datetime import timedelta
from decimal import Decimal
from typing import List

from invoice_archive.models import HeatmapDay, StatisticsSnapshot

# Level -> cell colour, from "no spending" to "top quarter"
LEVEL_COLORS = {
    0: "#F1F5F9",
    1: "#C7D2FE",
    2: "#818CF8",
    3: "#4F46E5",
    4: "#3730A3",
}


def spending_level(amount: Decimal, max_amount: Decimal) -> int:
    """
    Level 0 for no spending, otherwise 1-4 by quarter of the maximum.

    A day exactly on a quarter boundary belongs to the upper level.
    """
    if amount <= 0 or max_amount <= 0:
        return 0

    ratio = amount / max_amount
    if ratio < Decimal("0.25"):
        return 1
    if ratio < Decimal("0.5"):
        return 2
    if ratio < Decimal("0.75"):
        return 3
    return 4


def build_heatmap(snapshot: StatisticsSnapshot, days: int = 365) -> List[HeatmapDay]:
    """
    Build one heatmap cell per day, oldest first.

    Args:
        snapshot: Source statistics.
        days: Window length, ending at ``snapshot.generated_on``.

    Returns:
        ``days`` cells.
    """
    end = snapshot.generated_on
    start = end - timedelta(days=days - 1)

    window = [start + timedelta(days=offset) for offset in range(days)]
    amounts = [snapshot.daily_amounts.get(day, Decimal("0")) for day in window]
    max_amount = max(amounts, default=Decimal("0"))

    cells = []
    for day, amount in zip(window, amounts):
        level = spending_level(amount, max_amount)
        cells.append(HeatmapDay(day=day, amount=amount, level=level, color_hex=LEVEL_COLORS[level]))

    return cells
