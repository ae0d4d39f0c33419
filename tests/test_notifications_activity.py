"""Tests for notifications and the activity log."""

from datetime import datetime, timedelta

import pytest

from models import db, ActivityLog, Notification, ValidationError
from services.activity_log_service import ActivityLogService
from services.notification_service import NotificationService


class TestNotificationService:
    @pytest.fixture
    def service(self, app):
        return NotificationService(batch_size=2)

    def test_bulk_creation_for_every_guest(self, service, couple, make_invite):
        for _ in range(5):
            make_invite(couple)

        created = service.create_bulk(couple.id, "event_reminder", "See you Saturday")

        assert created == 5
        assert Notification.query.filter_by(couple_id=couple.id).count() == 5

    def test_bulk_creation_for_selected_guests(self, service, couple, make_invite):
        guests = [make_invite(couple) for _ in range(3)]

        created = service.create_bulk(couple.id, "programme_update", "New schedule",
                                      invite_ids=[g.id for g in guests[:2]])

        assert created == 2

    def test_unknown_type(self, service, couple):
        with pytest.raises(ValueError):
            service.create_notification(couple.id, "party", "Hello")

    def test_title_is_required(self, service, couple):
        with pytest.raises(ValueError):
            service.create_notification(couple.id, "new_message", "  ")

    def test_read_tracking(self, service, couple, make_invite):
        guest = make_invite(couple)
        first = service.create_notification(couple.id, "new_message", "Hi", invite_id=guest.id)
        service.create_notification(couple.id, "new_message", "Hi again", invite_id=guest.id)

        read = service.mark_as_read(first["id"])

        assert read["is_read"] is True
        assert read["read_at"] is not None
        assert service.unread_count(guest.id) == 1
        assert service.mark_all_read(guest.id) == 1
        assert service.unread_count(guest.id) == 0

    def test_mark_as_read_checks_the_couple(self, service, couple, make_couple):
        notification = service.create_notification(couple.id, "new_message", "Hi")

        with pytest.raises(PermissionError):
            service.mark_as_read(notification["id"], couple_id=make_couple().id)


class TestActivityLogService:
    @pytest.fixture
    def service(self, app):
        return ActivityLogService()

    def test_log_entry(self, service, couple):
        entry = service.log(couple.id, "photo_upload", actor_id=3, actor_kind="organizer",
                            details={"media_id": 12}, ip_address="10.0.0.1")

        assert entry.id is not None
        assert entry.details == {"media_id": 12}
        assert service.count_by_action(couple.id) == {"photo_upload": 1}

    def test_unknown_actor_kind(self, service, couple):
        with pytest.raises(ValueError):
            service.log(couple.id, "login", actor_kind="robot")

    def test_suspicious_activity(self, service, couple):
        for _ in range(4):
            service.log(couple.id, "login", actor_id=1, actor_kind="couple", ip_address="1.2.3.4")
        service.log(couple.id, "login", actor_id=2, actor_kind="invite", ip_address="5.6.7.8")

        groups = service.find_suspicious_activity(couple.id, minutes=5, threshold=3)

        assert groups == [{"ip_address": "1.2.3.4", "actor_id": 1, "actor_kind": "couple", "action_count": 4}]

    def test_purge_old_logs(self, service, couple):
        old = service.log(couple.id, "login")
        old.created_at = datetime.utcnow() - timedelta(days=400)
        db.session.commit()
        service.log(couple.id, "login")

        assert service.purge_old_logs(months=12) == 1
        assert ActivityLog.query.count() == 1

    def test_list_for_couple_newest_first(self, service, couple):
        service.log(couple.id, "login")
        service.log(couple.id, "rsvp_update")

        logs = service.list_for_couple(couple.id)

        assert [log["action"] for log in logs] == ["rsvp_update", "login"]

    def test_list_for_couple_filters_by_known_action(self, service, couple):
        service.log(couple.id, "login")
        service.log(couple.id, "rsvp_update")

        assert [log["action"] for log in service.list_for_couple(couple.id, action="login")] == ["login"]
        with pytest.raises(ValidationError) as excinfo:
            service.list_for_couple(couple.id, action="bogus")
        assert excinfo.value.field == "action"
