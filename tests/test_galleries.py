"""Tests for galleries and media metadata."""

import pytest

from models import ActivityLog, ValidationError
from services.gallery_service import GalleryService

PHOTO = {"file_name": "kiss.jpg", "file_url": "https://cdn.example.com/kiss.jpg", "file_size": 2048,
         "width": 4000, "height": 3000}


@pytest.fixture
def service(app):
    return GalleryService()


@pytest.fixture
def guests_gallery(service, couple):
    return service.create_gallery(couple.id, {"name": "Your photos", "gallery_type": "guests"})


def test_gallery_defaults_to_official(service, couple):
    gallery = service.create_gallery(couple.id, {"name": "  Ceremony  "})

    assert gallery["name"] == "Ceremony"
    assert gallery["type"] == "official"
    assert service.list_galleries(couple.id)[0]["stats"]["total_media"] == 0


@pytest.mark.parametrize("data, field", [
    ({"name": ""}, "name"),
    ({"name": "Booth", "gallery_type": "secret"}, "gallery_type"),
])
def test_invalid_gallery(service, couple, data, field):
    with pytest.raises(ValidationError) as excinfo:
        service.create_gallery(couple.id, data)

    assert excinfo.value.field == field


def test_team_media_is_approved_and_logged(service, couple, make_organizer):
    gallery = service.create_gallery(couple.id, {"name": "Ceremony"})
    photographer = make_organizer(couple, role="photographer")

    media = service.add_media(gallery["id"], couple.id, PHOTO, organizer_id=photographer.id,
                              actor_kind="organizer", actor_id=photographer.id)

    assert media["is_approved"] is True
    assert media["type"] == "photo"
    log = ActivityLog.query.filter_by(action="photo_upload").one()
    assert log.details["media_id"] == media["id"]


def test_guest_media_waits_for_approval(service, couple, make_invite, guests_gallery):
    guest = make_invite(couple)

    media = service.add_guest_media(guests_gallery["id"], guest, PHOTO)

    assert media["is_approved"] is False
    assert media["invite_id"] == guest.id
    assert service.list_public_media(guests_gallery["id"], couple.id) == []
    service.approve_media(media["id"], couple.id)
    assert [m["id"] for m in service.list_public_media(guests_gallery["id"], couple.id)] == [media["id"]]


def test_guests_cannot_upload_to_official_gallery(service, couple, make_invite):
    gallery = service.create_gallery(couple.id, {"name": "Ceremony"})

    with pytest.raises(PermissionError):
        service.add_guest_media(gallery["id"], make_invite(couple), PHOTO)


@pytest.mark.parametrize("overrides, field", [
    ({"file_url": "ftp://cdn.example.com/kiss.jpg"}, "file_url"),
    ({"file_size": -1}, "file_size"),
    ({"width": "wide"}, "width"),
    ({"type": "hologram"}, "type"),
])
def test_invalid_media(service, couple, overrides, field):
    gallery = service.create_gallery(couple.id, {"name": "Ceremony"})

    with pytest.raises(ValidationError) as excinfo:
        service.add_media(gallery["id"], couple.id, dict(PHOTO, **overrides))

    assert excinfo.value.field == field


def test_gallery_stats(service, couple, make_invite, guests_gallery):
    service.add_media(guests_gallery["id"], couple.id, PHOTO)
    service.add_media(guests_gallery["id"], couple.id, dict(PHOTO, type="video", file_size=10000,
                                                            duration_seconds=30))
    service.add_guest_media(guests_gallery["id"], make_invite(couple), PHOTO)

    stats = service.get_stats(guests_gallery["id"], couple.id)

    assert stats == {"gallery_id": guests_gallery["id"], "total_media": 3, "photos": 2, "videos": 1,
                     "approved": 2, "pending": 1, "total_size": 14096}


def test_media_of_another_wedding(service, couple, make_couple, guests_gallery):
    media = service.add_media(guests_gallery["id"], couple.id, PHOTO)

    with pytest.raises(PermissionError):
        service.approve_media(media["id"], make_couple().id)
