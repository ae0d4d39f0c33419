"""Tests for attendance statistics, daily snapshots and presence prediction."""

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from models import db, PresenceSnapshot
from presence import arrivals_by_hour, compute_live_stats, peak_hour, predict_rate
from services.check_in_service import CheckInService
from services.presence_service import PresenceService


def guest(rsvp=None, companions=0, ceremony=False, reception=False, arrived_at=None):
    return SimpleNamespace(
        rsvp_status=rsvp,
        companions_confirmed=companions,
        present_ceremony=ceremony,
        present_reception=reception,
        arrived_at=arrived_at,
    )


class TestPeakHour:
    def test_earliest_hour_wins_ties(self):
        times = [
            datetime(2026, 6, 20, 16, 5),
            datetime(2026, 6, 20, 14, 10),
            datetime(2026, 6, 20, 16, 45),
            datetime(2026, 6, 20, 14, 55),
        ]

        assert peak_hour(times) == 14

    def test_most_arrivals_wins(self):
        times = [datetime(2026, 6, 20, 14, 0)] + [datetime(2026, 6, 20, 17, m) for m in (1, 2)]

        assert peak_hour(times) == 17

    def test_no_arrivals(self):
        assert peak_hour([]) is None

    def test_arrivals_by_hour_percentages(self):
        rows = arrivals_by_hour([datetime(2026, 6, 20, h, 0) for h in (15, 15, 16)])

        assert [(r["hour"], r["count"]) for r in rows] == [(15, 2), (16, 1)]
        assert sum(r["percentage"] for r in rows) == Decimal("100.00")


def test_compute_live_stats():
    stats = compute_live_stats([
        guest("confirmed", companions=1, ceremony=True, arrived_at=datetime(2026, 6, 20, 14, 30)),
        guest("confirmed", reception=True, arrived_at=datetime(2026, 6, 20, 19, 0)),
        guest("confirmed"),
        guest("declined"),
        guest("maybe"),
        guest(None),
    ])

    assert stats["total_invites"] == 6
    assert stats["confirmed_rsvp"] == 3
    assert stats["declined_rsvp"] == 1
    assert stats["maybe_rsvp"] == 1
    assert stats["no_answer"] == 1
    assert stats["total_confirmed_people"] == 4
    assert stats["present_ceremony"] == 1
    assert stats["present_reception"] == 1
    assert stats["presence_rate"] == Decimal("50.00")
    assert stats["attendance_rate"] == Decimal("66.67")
    assert stats["peak_arrival_hour"] == 14


def test_guest_scanned_without_rsvp_keeps_rates_bounded():
    stats = compute_live_stats([
        guest("confirmed", ceremony=True),
        guest(None, ceremony=True),
        guest("declined", reception=True),
    ])

    assert stats["present_any"] == 3
    assert stats["present_confirmed"] == 1
    assert stats["present_unconfirmed"] == 2
    assert stats["presence_rate"] == Decimal("33.33")
    assert stats["attendance_rate"] == Decimal("100.00")


def test_compute_live_stats_without_guests():
    stats = compute_live_stats([])

    assert stats["presence_rate"] == Decimal("0.00")
    assert stats["attendance_rate"] == Decimal("0.00")
    assert stats["peak_arrival_hour"] is None


class TestPredictRate:
    def test_linear_trend_is_extrapolated(self):
        points = [(date(2026, 6, 1), Decimal("50")), (date(2026, 6, 2), Decimal("60"))]

        assert predict_rate(points, date(2026, 6, 3)) == Decimal("70.00")

    def test_prediction_is_clamped(self):
        points = [(date(2026, 6, 1), Decimal("80")), (date(2026, 6, 2), Decimal("95"))]

        assert predict_rate(points, date(2026, 6, 10)) == Decimal("100.00")

    def test_single_point_returns_its_value(self):
        assert predict_rate([(date(2026, 6, 1), Decimal("42.5"))], date(2026, 6, 8)) == Decimal("42.50")

    def test_no_points(self):
        assert predict_rate([], date(2026, 6, 8)) is None


class TestPresenceService:
    @pytest.fixture
    def service(self, app):
        return PresenceService(batch_size=2)

    def test_snapshot_is_created_then_refreshed(self, service, couple, make_invite):
        day = date(2026, 6, 20)
        make_invite(couple, rsvp_status="confirmed", present_ceremony=True)
        service.take_snapshot(couple.id, day)

        make_invite(couple, rsvp_status="confirmed")
        snapshot = service.take_snapshot(couple.id, day)

        assert snapshot["confirmed_rsvp"] == 2
        assert PresenceSnapshot.query.filter_by(couple_id=couple.id).count() == 1

    def test_live_value_is_authoritative_when_snapshot_diverges(self, service, couple, make_invite):
        day = date(2026, 6, 20)
        make_invite(couple, rsvp_status="confirmed")
        service.take_snapshot(couple.id, day)

        make_invite(couple)
        result = service.get_presence_rate(couple.id, day)

        assert result["presence_rate"] == Decimal("50.00")
        assert result["snapshot"]["presence_rate"] == Decimal("100.00")
        assert result["snapshot_stale"] is True
        assert result["source"] == "live"

    def test_scanned_guest_without_rsvp(self, service, couple, make_invite, make_organizer):
        scanner = make_organizer(couple, role="scanner")
        make_invite(couple, rsvp_status="confirmed", present_ceremony=True)
        make_invite(couple, qr_token="walk-in")
        CheckInService().scan(scanner, "walk-in", "ceremony", now=datetime(2026, 6, 20, 14, 0))

        snapshot = service.take_snapshot(couple.id, date(2026, 6, 20))
        live = service.get_live_stats(couple.id)

        assert live["present_any"] == 2
        assert live["attendance_rate"] == Decimal("100.00")
        assert snapshot["presence_rate"] == Decimal("50.00")

    def test_fresh_snapshot_is_not_stale(self, service, couple, make_invite):
        day = date(2026, 6, 20)
        make_invite(couple, rsvp_status="confirmed", present_reception=True)
        service.take_snapshot(couple.id, day)

        assert service.get_presence_rate(couple.id, day)["snapshot_stale"] is False

    def test_latest_snapshot_date(self, service, couple, make_invite):
        make_invite(couple, rsvp_status="confirmed")
        service.take_snapshot(couple.id, date(2026, 6, 19))

        result = service.get_presence_rate(couple.id, date(2026, 6, 20))

        assert result["snapshot"] is None
        assert result["latest_snapshot_date"] == "2026-06-19"

    def test_no_snapshot(self, service, couple):
        result = service.get_presence_rate(couple.id, date(2026, 6, 20))

        assert result["snapshot"] is None
        assert result["snapshot_stale"] is None
        assert result["latest_snapshot_date"] is None

    def test_prediction_uses_recent_snapshots(self, service, couple):
        for day, rate in ((1, "40.00"), (2, "50.00"), (3, "60.00")):
            db.session.add(PresenceSnapshot(couple_id=couple.id, snapshot_date=date(2026, 6, day),
                                            presence_rate=Decimal(rate)))
        db.session.commit()

        prediction = service.predict_presence_rate(couple.id, days_ahead=1, today=date(2026, 6, 3))

        assert prediction["predicted_presence_rate"] == Decimal("70.00")
        assert prediction["snapshots_used"] == 3

    def test_prediction_without_snapshots(self, service, couple):
        assert service.predict_presence_rate(couple.id, today=date(2026, 6, 3)) is None

    def test_batch_refresh(self, service, make_couple, make_invite):
        couples = [make_couple() for _ in range(3)]
        for c in couples:
            make_invite(c, rsvp_status="confirmed")

        refreshed = service.batch_refresh_snapshots([c.id for c in couples], date(2026, 6, 20))

        assert refreshed == 3
        assert PresenceSnapshot.query.count() == 3

    def test_arrival_analysis(self, service, couple, make_invite):
        make_invite(couple, arrived_at=datetime(2026, 6, 20, 15, 10))
        make_invite(couple, arrived_at=datetime(2026, 6, 20, 15, 40))
        make_invite(couple)

        analysis = service.get_arrival_analysis(couple.id)

        assert analysis["total_arrivals"] == 2
        assert analysis["peak_arrival_hour"] == 15
        assert analysis["by_hour"][0]["percentage"] == Decimal("100.00")
