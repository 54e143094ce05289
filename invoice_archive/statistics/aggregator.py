"""
Statistics Aggregator Module.

Folds a list of archive entries into a StatisticsSnapshot. The function is
pure: it reads nothing but its arguments, so the caller decides when the
archive is re-listed.
"""

from collections import Counter, defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from invoice_archive.models import ArchiveEntry, StatisticsSnapshot
from invoice_archive.utils.logger import get_logger

logger = get_logger(__name__)

TRAILING_WINDOW_DAYS = 30


def aggregate(entries: Iterable[ArchiveEntry], today: Optional[date] = None) -> StatisticsSnapshot:
    """
    Compute archive statistics.

    Monthly sums are keyed by the directory an entry was found in, daily
    sums by the record's own date. Entries whose date could not be decoded
    count towards totals, monthly sums and payment methods but are left out
    of the daily view.

    Args:
        entries: Archive listing.
        today: Reference day for the trailing window. Defaults to today.

    Returns:
        StatisticsSnapshot with ascending monthly and daily mappings.

    Example:
        >>> snapshot = aggregate(store.list_entries())
        >>> snapshot.total_amount == sum(snapshot.monthly_amounts.values())
        True
    """
    if today is None:
        today = date.today()

    window_start = today - timedelta(days=TRAILING_WINDOW_DAYS)

    total = Decimal("0")
    count = 0
    trailing = Decimal("0")
    monthly = defaultdict(Decimal)
    daily = defaultdict(Decimal)
    methods = Counter()

    for entry in entries:
        record = entry.record
        amount = record.amount

        total += amount
        count += 1
        monthly[entry.year_month] += amount
        methods[record.payment_method] += 1

        if record.has_known_date:
            daily[record.invoice_date] += amount
            if record.invoice_date >= window_start:
                trailing += amount

    average = total / count if count else Decimal("0")

    logger.debug(f"Aggregated {count} entries, total {total}")

    return StatisticsSnapshot(
        total_amount=total,
        count=count,
        average=average,
        monthly_amounts={k: monthly[k] for k in sorted(monthly)},
        daily_amounts={k: daily[k] for k in sorted(daily)},
        payment_method_counts=dict(methods),
        trailing_30_days_amount=trailing,
        generated_on=today,
    )
