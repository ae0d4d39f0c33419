"""Tests for the gift registry and pots service."""

from decimal import Decimal

import pytest

from models import Gift
from services.registry_service import RegistryService


@pytest.fixture
def service(app):
    return RegistryService()


class TestGifts:
    def test_create_gift(self, service, couple):
        gift = service.create_gift(couple.id, {
            "name": "  Espresso machine ", "estimated_price": "249.9", "priority": "high",
            "category": "Kitchen", "desired_quantity": 1,
        })

        assert gift["name"] == "Espresso machine"
        assert gift["estimated_price"] == Decimal("249.90")
        assert gift["is_complete"] is False

    @pytest.mark.parametrize("data", [
        {"name": ""},
        {"name": "Vase", "priority": "urgent"},
        {"name": "Vase", "desired_quantity": 0},
        {"name": "Vase", "estimated_price": "-1"},
    ])
    def test_invalid_gift(self, service, couple, data):
        with pytest.raises(ValueError):
            service.create_gift(couple.id, data)

    def test_failed_update_leaves_gift_untouched(self, service, couple, make_gift):
        gift = make_gift(couple, name="Toaster")

        with pytest.raises(ValueError):
            service.update_gift(gift.id, couple.id, {"name": "Kettle", "desired_quantity": 0})

        assert gift.name == "Toaster"

    def test_update_gift_of_another_couple(self, service, couple, make_couple, make_gift):
        gift = make_gift(make_couple())

        with pytest.raises(PermissionError):
            service.update_gift(gift.id, couple.id, {"name": "Mine"})

    def test_pending_and_completed(self, service, couple, make_gift):
        make_gift(couple, name="Plates", desired_quantity=2, received_quantity=2)
        make_gift(couple, name="Glasses", desired_quantity=6, received_quantity=1)

        assert [g["name"] for g in service.list_pending_gifts(couple.id)] == ["Glasses"]
        assert [g["name"] for g in service.list_completed_gifts(couple.id)] == ["Plates"]

    def test_reorder(self, service, couple, make_gift):
        first, second, third = (make_gift(couple, name=n) for n in ("A", "B", "C"))

        assert service.reorder_gifts(couple.id, [third.id, first.id, second.id]) == 3

        ordered = Gift.query.filter_by(couple_id=couple.id).order_by(Gift.display_order).all()
        assert [g.name for g in ordered] == ["C", "A", "B"]

    def test_reorder_checks_every_gift_first(self, service, couple, make_couple, make_gift):
        mine = make_gift(couple)
        foreign = make_gift(make_couple())

        with pytest.raises(PermissionError):
            service.reorder_gifts(couple.id, [mine.id, foreign.id])
        assert mine.display_order is None


class TestPots:
    def test_target_must_be_positive(self, service, couple):
        with pytest.raises(ValueError):
            service.create_pot(couple.id, {"name": "Trip", "target_amount": "0"})

    def test_closest_to_goal(self, service, couple, make_invite, make_pot, make_contribution):
        guest = make_invite(couple)
        near = make_pot(couple, name="Near", target_amount="100")
        far = make_pot(couple, name="Far", target_amount="1000")
        done = make_pot(couple, name="Done", target_amount="50")
        make_pot(couple, name="Open ended")
        make_contribution(guest, pot=near, amount="90")
        make_contribution(guest, pot=far, amount="100")
        make_contribution(guest, pot=done, amount="50")

        closest = service.list_pots_closest_to_goal(couple.id)

        assert [p["name"] for p in closest] == ["Near", "Far"]
        assert closest[0]["progress_percent"] == Decimal("90.00")
        assert closest[0]["remaining_amount"] == Decimal("10.00")


def test_registry_summary(service, couple, make_invite, make_gift, make_pot, make_contribution):
    guest = make_invite(couple)
    make_gift(couple, name="Lamp", estimated_price=Decimal("40.00"), received_quantity=1)
    make_gift(couple, name="Rug", estimated_price=Decimal("160.00"), priority="low")
    pot = make_pot(couple, target_amount="200")
    make_contribution(guest, pot=pot, amount="200")
    make_pot(couple, name="Savings")

    summary = service.get_registry_summary(couple.id)

    assert summary["gifts"]["total"] == 2
    assert summary["gifts"]["complete"] == 1
    assert summary["gifts"]["pending"] == 1
    assert summary["gifts"]["estimated_total_value"] == Decimal("200.00")
    assert summary["gifts"]["average_price"] == Decimal("100.00")
    assert summary["gifts"]["by_priority"] == {"None": 1, "low": 1}
    assert summary["pots"]["raised_amount"] == Decimal("200.00")
    assert summary["pots"]["goals_reached"] == 1
