"""Unit tests for contribution aggregation, ranking and amount bucketing."""

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from contribution_stats import (
    apportion_percentages,
    bucket_amounts,
    compute_contribution_stats,
    rank_contributors,
)


def contribution(amount, status="confirmed", invite_id=1, at=None):
    return SimpleNamespace(
        amount=Decimal(amount) if amount is not None else None,
        status=status,
        invite_id=invite_id,
        contributed_at=at or datetime(2026, 5, 1, 12, 0),
        contributor_name=f"Guest {invite_id}",
    )


class TestComputeContributionStats:
    def test_confirmed_and_cancelled_gift_contributions(self):
        stats = compute_contribution_stats([
            contribution("20.00"),
            contribution("30.50"),
            contribution("49.50"),
            contribution("100.00", status="cancelled"),
        ])

        assert stats["total_amount"] == Decimal("100.00")
        assert stats["confirmed_count"] == 3
        assert stats["cancelled_count"] == 1
        assert stats["average_amount"] == Decimal("33.33")
        assert stats["min_amount"] == Decimal("20.00")
        assert stats["max_amount"] == Decimal("49.50")
        assert stats["total_contributions"] == 4
        assert stats["confirmation_rate_percent"] == Decimal("100.00")

    def test_no_contributions_gives_zeroed_record(self):
        stats = compute_contribution_stats([])

        assert stats["total_contributions"] == 0
        assert stats["total_amount"] == Decimal("0.00")
        assert stats["average_amount"] == Decimal("0.00")
        assert stats["min_amount"] == Decimal("0.00")
        assert stats["max_amount"] == Decimal("0.00")
        assert stats["confirmation_rate_percent"] == 0

    def test_pending_amounts_are_reported_separately(self):
        stats = compute_contribution_stats([
            contribution("10.00"),
            contribution("15.25", status="pending"),
            contribution("40.00", status="delivered"),
        ])

        assert stats["total_amount"] == Decimal("50.00")
        assert stats["pending_amount"] == Decimal("15.25")
        assert stats["pending_count"] == 1
        assert stats["delivered_count"] == 1
        assert stats["confirmation_rate_percent"] == Decimal("66.67")

    def test_total_matches_sum_of_settled_amounts(self):
        items = [
            contribution("0.10"),
            contribution("0.20", status="delivered"),
            contribution("0.30", status="pending"),
            contribution("9999.99", status="cancelled"),
            contribution("12.34"),
        ]
        stats = compute_contribution_stats(items)

        settled = sum(c.amount for c in items if c.status in ("confirmed", "delivered"))
        assert stats["total_amount"] == settled == Decimal("12.64")

    def test_gift_contributions_without_amount_are_counted_not_summed(self):
        stats = compute_contribution_stats([contribution(None), contribution("25.00")])

        assert stats["confirmed_count"] == 2
        assert stats["total_amount"] == Decimal("25.00")
        assert stats["average_amount"] == Decimal("25.00")

    def test_only_cancelled_contributions(self):
        stats = compute_contribution_stats([contribution("80.00", status="cancelled")])

        assert stats["total_amount"] == Decimal("0.00")
        assert stats["cancelled_count"] == 1
        assert stats["confirmation_rate_percent"] == Decimal("0.00")


class TestRankContributors:
    def test_equal_totals_are_ordered_by_earliest_contribution(self):
        ranking = rank_contributors([
            contribution("50.00", invite_id=2, at=datetime(2026, 5, 2, 9, 0)),
            contribution("50.00", invite_id=1, at=datetime(2026, 5, 1, 9, 0)),
        ])

        assert [entry["invite_id"] for entry in ranking] == [1, 2]
        assert [entry["rank"] for entry in ranking] == [1, 2]
        assert ranking[0]["first_contribution_at"] == "2026-05-01T09:00:00"

    def test_totals_are_summed_per_invite_and_sorted_descending(self):
        ranking = rank_contributors([
            contribution("30.00", invite_id=1),
            contribution("30.00", invite_id=1, status="delivered"),
            contribution("45.00", invite_id=2),
            contribution("500.00", invite_id=3, status="pending"),
            contribution("500.00", invite_id=4, status="cancelled"),
        ])

        assert [(e["invite_id"], e["total_amount"]) for e in ranking] == [
            (1, Decimal("60.00")),
            (2, Decimal("45.00")),
        ]
        assert ranking[0]["contribution_count"] == 2

    def test_same_total_and_timestamp_falls_back_to_invite_id(self):
        at = datetime(2026, 5, 1, 9, 0)
        ranking = rank_contributors([
            contribution("20.00", invite_id=9, at=at),
            contribution("20.00", invite_id=3, at=at),
        ])

        assert [e["invite_id"] for e in ranking] == [3, 9]

    def test_limit(self):
        ranking = rank_contributors(
            [contribution("10.00", invite_id=i) for i in range(1, 6)], limit=2
        )

        assert len(ranking) == 2


class TestBucketAmounts:
    def test_band_boundaries_are_lower_inclusive(self):
        buckets = bucket_amounts([
            Decimal("24.99"), Decimal("25.00"), Decimal("99.99"),
            Decimal("100.00"), Decimal("199.99"), Decimal("200.00"),
        ])
        counts = {b["band"]: b["count"] for b in buckets}

        assert counts == {"0-24": 1, "25-49": 1, "50-99": 1, "100-199": 2, "200+": 1}

    def test_percentages_sum_to_exactly_one_hundred(self):
        buckets = bucket_amounts([Decimal("10"), Decimal("30"), Decimal("60")])

        assert sum(b["percentage"] for b in buckets) == Decimal("100.00")
        assert [b["percentage"] for b in buckets[:3]] == [
            Decimal("33.34"), Decimal("33.33"), Decimal("33.33"),
        ]

    def test_seven_amounts_still_sum_to_one_hundred(self):
        amounts = ["5", "5", "30", "75", "75", "150", "400"]
        buckets = bucket_amounts(amounts)

        assert sum(b["percentage"] for b in buckets) == Decimal("100.00")
        assert sum(b["count"] for b in buckets) == 7

    def test_empty_input_reports_zero_everywhere(self):
        buckets = bucket_amounts([])

        assert len(buckets) == 5
        assert all(b["count"] == 0 for b in buckets)
        assert all(b["percentage"] == Decimal("0.00") for b in buckets)

    def test_float_input_is_read_as_decimal(self):
        buckets = bucket_amounts([24.999])

        # 24.999 rounds to 25.00 at the cent
        assert buckets[1]["count"] == 1


def test_apportion_breaks_remainder_ties_by_position():
    assert apportion_percentages([1, 1, 1]) == [
        Decimal("33.34"), Decimal("33.33"), Decimal("33.33"),
    ]
    assert apportion_percentages([0, 0]) == [Decimal("0.00"), Decimal("0.00")]
