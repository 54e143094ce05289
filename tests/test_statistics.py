from datetime import date, timedelta
from decimal import Decimal

import pytest

from invoice_archive.models import (
    UNKNOWN_DATE,
    ArchiveEntry,
    InvoiceRecord,
    InvoiceStatus,
    StatisticsSnapshot,
)
from invoice_archive.statistics import LEVEL_COLORS, aggregate, build_heatmap, spending_level

TODAY = date(2024, 3, 31)


def _entry(day, amount, method="现金", year_month=None):
    record = InvoiceRecord(
        status=InvoiceStatus.ARCHIVED,
        invoice_date=day,
        amount=Decimal(amount),
        payment_method=method,
    )
    return ArchiveEntry(
        year_month=year_month or day.strftime("%Y-%m"),
        day=day.isoformat() if day != UNKNOWN_DATE else "",
        file_name="x.pdf",
        file_path="/archive/x.pdf",
        record=record,
    )


@pytest.fixture
def entries():
    return [
        _entry(date(2024, 3, 30), "100.10"),
        _entry(date(2024, 3, 30), "20", method="公务卡"),
        _entry(date(2024, 3, 1), "30.5", method="公务卡"),
        _entry(date(2024, 1, 15), "1234.56"),
    ]


class TestAggregate:

    def test_totals(self, entries):
        snapshot = aggregate(entries, today=TODAY)

        assert snapshot.count == 4
        assert snapshot.total_amount == Decimal("1385.16")
        assert snapshot.average == Decimal("1385.16") / 4
        assert snapshot.generated_on == TODAY

    def test_sums_are_consistent(self, entries):
        snapshot = aggregate(entries, today=TODAY)

        assert sum(snapshot.monthly_amounts.values()) == snapshot.total_amount
        assert sum(snapshot.payment_method_counts.values()) == snapshot.count

    def test_monthly_and_daily_ascending(self, entries):
        snapshot = aggregate(entries, today=TODAY)

        assert list(snapshot.monthly_amounts) == ["2024-01", "2024-03"]
        assert snapshot.monthly_amounts["2024-03"] == Decimal("150.60")
        assert list(snapshot.daily_amounts) == [date(2024, 1, 15), date(2024, 3, 1), date(2024, 3, 30)]
        assert snapshot.daily_amounts[date(2024, 3, 30)] == Decimal("120.10")

    def test_payment_methods_counted_exactly(self):
        snapshot = aggregate([_entry(TODAY, "1", "现金"), _entry(TODAY, "1", "现金 ")], today=TODAY)
        assert snapshot.payment_method_counts == {"现金": 1, "现金 ": 1}

    def test_trailing_30_days(self, entries):
        snapshot = aggregate(entries, today=TODAY)
        # 2024-03-01 is exactly 30 days before 2024-03-31
        assert snapshot.trailing_30_days_amount == Decimal("150.60")

    def test_unknown_dates_left_out_of_daily_view(self):
        unknown = _entry(UNKNOWN_DATE, "5", year_month="2024-03")
        snapshot = aggregate([unknown, _entry(TODAY, "10")], today=TODAY)

        assert snapshot.total_amount == Decimal("15")
        assert snapshot.monthly_amounts == {"2024-03": Decimal("15")}
        assert snapshot.daily_amounts == {TODAY: Decimal("10")}
        assert snapshot.trailing_30_days_amount == Decimal("10")

    def test_empty(self):
        snapshot = aggregate([], today=TODAY)

        assert snapshot.count == 0
        assert snapshot.total_amount == Decimal("0")
        assert snapshot.average == Decimal("0")
        assert snapshot.monthly_amounts == {}

    def test_to_dict(self, entries):
        data = aggregate(entries, today=TODAY).to_dict()
        assert data["total_amount"] == "1385.16"
        assert data["daily_amounts"]["2024-01-15"] == "1234.56"


class TestHeatmap:

    def test_window(self):
        snapshot = StatisticsSnapshot(generated_on=TODAY)
        cells = build_heatmap(snapshot, days=365)

        assert len(cells) == 365
        assert cells[-1].day == TODAY
        assert cells[0].day == TODAY - timedelta(days=364)
        assert all(c.level == 0 and c.color_hex == LEVEL_COLORS[0] for c in cells)

    def test_levels_by_quarter_of_maximum(self):
        daily = {
            TODAY: Decimal("100"),
            TODAY - timedelta(days=1): Decimal("20"),
            TODAY - timedelta(days=2): Decimal("25"),
            TODAY - timedelta(days=3): Decimal("50"),
            TODAY - timedelta(days=4): Decimal("74"),
        }
        snapshot = StatisticsSnapshot(daily_amounts=daily, generated_on=TODAY)

        levels = {c.day: c.level for c in build_heatmap(snapshot, days=7)}

        assert levels[TODAY] == 4
        assert levels[TODAY - timedelta(days=1)] == 1
        assert levels[TODAY - timedelta(days=2)] == 2
        assert levels[TODAY - timedelta(days=3)] == 3
        assert levels[TODAY - timedelta(days=4)] == 3
        assert levels[TODAY - timedelta(days=5)] == 0

    def test_spending_level_edges(self):
        assert spending_level(Decimal("0"), Decimal("100")) == 0
        assert spending_level(Decimal("5"), Decimal("0")) == 0
        assert spending_level(Decimal("75"), Decimal("100")) == 4
