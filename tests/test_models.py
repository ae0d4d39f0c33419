"""Tests for entity validation rules, status stamping and permissions."""

from datetime import datetime, time
from decimal import Decimal

import pytest

from models import (
    Contribution, ContributionStatus, Couple, Invite, Organizer, ProgrammeItem, ValidationError, format_money,
    parse_money,
)


class TestContributionValidation:
    def test_gift_and_pot_together_are_rejected(self):
        contribution = Contribution(invite_id=1, gift_id=1, pot_id=2, amount="10")

        with pytest.raises(ValidationError) as exc:
            contribution.validate()
        assert exc.value.field == "pot"

    def test_missing_target_is_rejected(self):
        contribution = Contribution(invite_id=1, amount="10")

        with pytest.raises(ValidationError) as exc:
            contribution.validate()
        assert exc.value.field == "gift"

    def test_pot_contribution_requires_amount(self):
        with pytest.raises(ValidationError) as exc:
            Contribution(invite_id=1, pot_id=1).validate()
        assert exc.value.field == "amount"

    def test_gift_contribution_may_omit_amount(self):
        Contribution(invite_id=1, gift_id=1).validate()

    @pytest.mark.parametrize("amount", ["0", "-5", "10000", "12000.50"])
    def test_amount_bounds(self, amount):
        with pytest.raises(ValidationError) as exc:
            Contribution(invite_id=1, pot_id=1, amount=amount).validate()
        assert exc.value.field == "amount"

    def test_message_length(self):
        with pytest.raises(ValidationError) as exc:
            Contribution(invite_id=1, gift_id=1, message="x" * 1001).validate()
        assert exc.value.field == "message"

    def test_amount_is_rounded_to_the_cent(self):
        assert Contribution(invite_id=1, gift_id=1, amount="12.345").amount == Decimal("12.35")


class TestContributionStatus:
    def test_new_contribution_is_pending(self):
        contribution = Contribution(invite_id=1, gift_id=1)

        assert contribution.status == ContributionStatus.PENDING
        assert contribution.contributed_at is not None
        assert contribution.can_be_confirmed()

    def test_confirmation_date_is_never_overwritten(self):
        contribution = Contribution(invite_id=1, gift_id=1)
        first = datetime(2026, 5, 1, 10, 0)

        contribution.set_status("confirmed", when=first)
        contribution.set_status("confirmed", when=datetime(2026, 5, 3, 10, 0))

        assert contribution.confirmed_at == first

    def test_delivery_stamps_its_own_date(self):
        contribution = Contribution(invite_id=1, gift_id=1)
        contribution.set_status("confirmed", when=datetime(2026, 5, 1))
        contribution.set_status("delivered", when=datetime(2026, 5, 2))

        assert contribution.delivered_at == datetime(2026, 5, 2)
        assert contribution.confirmed_at == datetime(2026, 5, 1)

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            Contribution(invite_id=1, gift_id=1).set_status("refunded")

    def test_only_confirmed_gift_contributions_can_be_delivered(self):
        pot_contribution = Contribution(invite_id=1, pot_id=1, amount="10")
        pot_contribution.set_status("confirmed")
        gift_contribution = Contribution(invite_id=1, gift_id=1)

        assert not pot_contribution.can_be_delivered()
        assert not gift_contribution.can_be_delivered()
        gift_contribution.set_status("confirmed")
        assert gift_contribution.can_be_delivered()

    def test_contribution_type(self):
        assert Contribution(invite_id=1, gift_id=1).contribution_type == "gift"
        assert Contribution(invite_id=1, pot_id=1, amount="5").contribution_type == "pot"


def test_format_money():
    assert format_money(Decimal("1234.5")) == "1 234,50 €"
    assert format_money(None) == "N/A"


@pytest.mark.parametrize("raw", ["abc", "12,50", "Infinity", "NaN", [10]])
def test_parse_money_rejects_unparsable_amounts(raw):
    with pytest.raises(ValidationError) as exc:
        parse_money(raw, "amount")
    assert exc.value.field == "amount"


def test_parse_money_quantizes_valid_amounts():
    assert parse_money("19.999", "amount") == Decimal("20.00")
    assert parse_money("", "amount") is None


def test_programme_duration_label():
    assert ProgrammeItem(starts_at=time(14, 0), ends_at=time(15, 30)).duration_label == "1h30"
    assert ProgrammeItem(starts_at=time(14, 0), ends_at=time(14, 45)).duration_label == "45 min"
    assert ProgrammeItem(starts_at=time(14, 0)).duration_label is None


def test_couple_modules():
    assert Couple(enabled_modules=None).has_module("gallery") is True
    assert Couple(enabled_modules=["quiz"]).has_module("polls") is False


def test_invite_companions_cannot_exceed_maximum():
    invite = Invite(first_name="Lou", last_name="Petit", companions_max=1, companions_confirmed=2)

    with pytest.raises(ValidationError) as exc:
        invite.validate()
    assert exc.value.field == "companions_confirmed"


class TestOrganizerPermissions:
    def test_scanner_role(self):
        organizer = Organizer(role="scanner")

        assert organizer.get_permissions() == ["scan_qr", "view_guests"]
        assert "ROLE_SCANNER" in organizer.get_roles()

    def test_explicit_list_narrows_role_permissions(self):
        organizer = Organizer(role="photographer", permissions=["upload_media", "export_data"])

        assert organizer.get_permissions() == ["upload_media"]
        assert not organizer.has_permission("export_data")

    def test_organizer_role_has_stats(self):
        organizer = Organizer(role="organizer")

        assert organizer.has_permission("view_stats")
        assert organizer.get_roles() == ["ROLE_ORGANIZER"]


def test_password_hashing(app, make_couple):
    couple = make_couple(password="correct horse")

    assert couple.password_hash != "correct horse"
    assert couple.check_password("correct horse")
    assert not couple.check_password("wrong")
