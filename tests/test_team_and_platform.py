"""Tests for the organizer team and platform administration services."""

import pytest

from models import Couple, SuperAdmin, ValidationError, db
from services.organizer_service import OrganizerService
from services.platform_service import PlatformService

MEMBER = {"first_name": "Jamie", "last_name": "Roux", "email": "Jamie@Example.com",
          "password": "long-enough", "role": "photographer"}


class TestOrganizerService:

    def test_create_member(self, couple):
        member = OrganizerService().create_organizer(couple.id, MEMBER)

        assert member["email"] == "jamie@example.com"
        assert member["role"] == "photographer"
        assert "upload_media" in member["permissions"]

    def test_email_is_unique_within_a_wedding(self, couple, make_couple):
        service = OrganizerService()
        service.create_organizer(couple.id, MEMBER)

        with pytest.raises(ValidationError) as excinfo:
            service.create_organizer(couple.id, dict(MEMBER, email="JAMIE@example.com "))

        assert excinfo.value.field == "email"
        assert service.create_organizer(make_couple().id, MEMBER)["email"] == "jamie@example.com"

    @pytest.mark.parametrize("overrides, field", [
        ({"password": "short"}, "password"),
        ({"role": "bouncer"}, "role"),
        ({"permissions": ["manage_organizers"]}, "permissions"),
        ({"email": "not-an-email"}, "email"),
        ({"last_name": ""}, "last_name"),
    ])
    def test_invalid_member(self, couple, overrides, field):
        with pytest.raises(ValidationError) as excinfo:
            OrganizerService().create_organizer(couple.id, dict(MEMBER, **overrides))

        assert excinfo.value.field == field

    def test_list_team_by_role(self, couple, make_organizer):
        make_organizer(couple, role="scanner", email="scan@example.com")
        make_organizer(couple, role="photographer", email="photo@example.com")

        team = OrganizerService().list_team(couple.id, role="scanner")

        assert [m["email"] for m in team] == ["scan@example.com"]


class TestPlatformService:

    @pytest.fixture
    def other_admin(self, app):
        admin = SuperAdmin(email="ops@example.com", first_name="Ops", last_name="Team")
        admin.set_password("secret-password")
        db.session.add(admin)
        db.session.commit()
        return admin

    def test_suspended_admin_leaves_active_list(self, super_admin, other_admin):
        service = PlatformService()

        result = service.set_admin_status(other_admin.id, "suspended", super_admin)

        assert result["status"] == "suspended"
        assert [a["email"] for a in service.list_active_admins()] == ["admin@example.com"]
        service.set_admin_status(other_admin.id, "active", super_admin)
        assert len(service.list_active_admins()) == 2

    def test_admin_cannot_suspend_themselves(self, super_admin):
        with pytest.raises(ValueError):
            PlatformService().set_admin_status(super_admin.id, "suspended", super_admin)

    def test_unknown_status(self, super_admin, couple):
        service = PlatformService()

        with pytest.raises(ValidationError):
            service.set_admin_status(super_admin.id, "banned", super_admin)
        with pytest.raises(ValidationError):
            service.set_couple_status(couple.id, "deleted")

    def test_set_couple_status(self, couple):
        PlatformService().set_couple_status(couple.id, "archived")

        assert db.session.get(Couple, couple.id).status == "archived"
