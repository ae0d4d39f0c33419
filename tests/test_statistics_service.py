"""Tests for gift / pot statistics, leaderboards and distributions."""

from datetime import datetime
from decimal import Decimal

import pytest

from services.statistics_service import StatisticsService


@pytest.fixture
def service(app):
    return StatisticsService()


def test_gift_stats_skip_cancelled_amounts(service, couple, make_invite, make_gift, make_contribution):
    gift = make_gift(couple)
    guest = make_invite(couple)
    for amount in ("20.00", "30.50", "49.50"):
        make_contribution(guest, gift=gift, amount=amount, status="confirmed")
    make_contribution(guest, gift=gift, amount="100.00", status="cancelled")

    stats = service.get_gift_stats(gift.id)

    assert stats["total_amount"] == Decimal("100.00")
    assert stats["confirmed_count"] == 3
    assert stats["cancelled_count"] == 1
    assert stats["average_amount"] == Decimal("33.33")
    assert stats["gift_id"] == gift.id


def test_empty_pot(service, couple, make_pot):
    pot = make_pot(couple, target_amount="300")

    stats = service.get_pot_stats(pot.id)
    distribution = service.get_distribution(pot_id=pot.id)

    assert stats["total_amount"] == Decimal("0.00")
    assert stats["confirmation_rate_percent"] == 0
    assert stats["progress_percent"] == Decimal("0.00")
    assert stats["goal_reached"] is False
    assert all(bucket["count"] == 0 for bucket in distribution)
    assert all(bucket["percentage"] == 0 for bucket in distribution)


def test_unknown_target_gives_zeroed_record(service):
    stats = service.get_gift_stats(12345)

    assert stats["total_contributions"] == 0
    assert stats["total_amount"] == Decimal("0.00")
    assert service.get_leaderboard(pot_id=12345) == []


def test_pot_stats_ignore_cached_amount(service, couple, make_invite, make_pot, make_contribution):
    pot = make_pot(couple, target_amount="100")
    pot.current_amount = Decimal("9999.00")
    make_contribution(make_invite(couple), pot=pot, amount="100.00", status="confirmed")

    stats = service.get_pot_stats(pot.id)

    assert stats["total_amount"] == Decimal("100.00")
    assert stats["progress_percent"] == Decimal("100.00")
    assert stats["goal_reached"] is True


def test_stats_of_another_couple_are_refused(service, couple, make_couple, make_gift):
    gift = make_gift(make_couple())

    with pytest.raises(PermissionError):
        service.get_gift_stats(gift.id, couple_id=couple.id)


def test_leaderboard_tie_is_broken_by_earliest_contribution(service, couple, make_invite, make_pot,
                                                           make_contribution):
    pot = make_pot(couple)
    guest_b = make_invite(couple, first_name="B")
    guest_a = make_invite(couple, first_name="A")
    make_contribution(guest_b, pot=pot, amount="50.00", contributed_at=datetime(2026, 5, 2, 10, 0))
    make_contribution(guest_a, pot=pot, amount="50.00", contributed_at=datetime(2026, 5, 1, 10, 0))

    leaderboard = service.get_leaderboard(pot_id=pot.id)

    assert [entry["invite_id"] for entry in leaderboard] == [guest_a.id, guest_b.id]
    assert leaderboard[0]["contributor_name"] == "A Dupont"
    assert leaderboard[0]["rank"] == 1


def test_leaderboard_requires_exactly_one_target(service):
    with pytest.raises(ValueError):
        service.get_leaderboard()
    with pytest.raises(ValueError):
        service.get_leaderboard(gift_id=1, pot_id=1)


def test_couple_distribution_counts_settled_amounts_only(service, couple, make_invite, make_pot,
                                                        make_contribution):
    pot = make_pot(couple)
    guest = make_invite(couple)
    make_contribution(guest, pot=pot, amount="10.00", status="confirmed")
    make_contribution(guest, pot=pot, amount="250.00", status="confirmed")
    make_contribution(guest, pot=pot, amount="80.00", status="pending")

    distribution = {b["band"]: b for b in service.get_distribution(couple_id=couple.id)}

    assert distribution["0-24"]["count"] == 1
    assert distribution["200+"]["count"] == 1
    assert distribution["50-99"]["count"] == 0
    assert distribution["0-24"]["percentage"] + distribution["200+"]["percentage"] == Decimal("100.00")


def test_couple_overview(service, couple, make_invite, make_gift, make_pot, make_contribution):
    guest = make_invite(couple)
    make_contribution(guest, gift=make_gift(couple), amount="30.00")
    make_contribution(guest, pot=make_pot(couple), amount="70.00")
    make_contribution(guest, pot=make_pot(couple, name="House"), amount="5.00", status="cancelled")

    overview = service.get_couple_overview(couple.id)

    assert overview["total_amount"] == Decimal("100.00")
    assert overview["gift_contributions"] == 1
    assert overview["pot_contributions"] == 1
