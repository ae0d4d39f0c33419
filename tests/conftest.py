"""
Test configuration and fixtures.

The Flask app is imported once, against an in-memory SQLite database; each
test gets freshly created tables inside an application context.
"""

import os
from datetime import date, datetime
from decimal import Decimal

# Set test environment variables before importing app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["WTF_CSRF_ENABLED"] = "0"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-with-enough-length-0123456789")

import pytest

from app import app as flask_app
from models import (
    db, Couple, Invite, Organizer, SuperAdmin, Gift, Pot, Contribution,
    Quiz, QuizResult, Poll, ContributionStatus,
)

PASSWORD = "secret-password"


@pytest.fixture
def app():
    flask_app.config["TESTING"] = True
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


# =============================================================================
# FACTORIES
# =============================================================================


@pytest.fixture
def make_couple(app):
    counter = {"n": 0}

    def _make(password=None, **overrides):
        counter["n"] += 1
        n = counter["n"]
        couple = Couple(
            partner1_first_name=overrides.pop("partner1_first_name", "Alex"),
            partner1_last_name="Martin",
            partner2_first_name=overrides.pop("partner2_first_name", "Sam"),
            partner2_last_name="Bernard",
            admin_email=overrides.pop("admin_email", f"couple{n}@example.com"),
            wedding_date=overrides.pop("wedding_date", date(2026, 6, 20)),
            subdomain=f"wedding-{n}",
            **overrides,
        )
        if password:
            couple.set_password(password)
        db.session.add(couple)
        db.session.commit()
        return couple

    return _make


@pytest.fixture
def couple(make_couple):
    return make_couple(password=PASSWORD, admin_email="alex.sam@example.com")


@pytest.fixture
def make_invite(app):
    counter = {"n": 0}

    def _make(couple, **overrides):
        counter["n"] += 1
        n = counter["n"]
        values = {
            "first_name": f"Guest{n}",
            "last_name": "Dupont",
            "qr_token": f"token-{n:04d}",
            "companions_allowed": False,
            "companions_max": 0,
            "companions_confirmed": 0,
        }
        values.update(overrides)
        invite = Invite(couple_id=couple.id, **values)
        db.session.add(invite)
        db.session.commit()
        return invite

    return _make


@pytest.fixture
def make_gift(app):
    def _make(couple, name="Stand mixer", desired_quantity=1, **overrides):
        gift = Gift(couple_id=couple.id, name=name, desired_quantity=desired_quantity,
                    received_quantity=overrides.pop("received_quantity", 0), is_active=True, **overrides)
        db.session.add(gift)
        db.session.commit()
        return gift

    return _make


@pytest.fixture
def make_pot(app):
    def _make(couple, name="Honeymoon", target_amount=None, **overrides):
        pot = Pot(couple_id=couple.id, name=name, is_active=True,
                  target_amount=Decimal(target_amount) if target_amount is not None else None,
                  current_amount=Decimal("0.00"), **overrides)
        db.session.add(pot)
        db.session.commit()
        return pot

    return _make


@pytest.fixture
def make_contribution(app):
    def _make(invite, amount=None, status=ContributionStatus.CONFIRMED, gift=None, pot=None,
              contributed_at=None):
        contribution = Contribution(
            invite_id=invite.id,
            gift_id=gift.id if gift else None,
            pot_id=pot.id if pot else None,
            amount=amount,
            contributed_at=contributed_at or datetime(2026, 5, 1, 12, 0),
        )
        contribution.set_status(status)
        db.session.add(contribution)
        db.session.commit()
        return contribution

    return _make


@pytest.fixture
def make_organizer(app):
    def _make(couple, role="organizer", permissions=None, email="orga@example.com",
              password=None, is_active=True):
        organizer = Organizer(couple_id=couple.id, first_name="Jamie", last_name="Roux",
                              email=email, role=role, permissions=permissions, is_active=is_active)
        if password:
            organizer.set_password(password)
        db.session.add(organizer)
        db.session.commit()
        return organizer

    return _make


@pytest.fixture
def super_admin(app):
    admin = SuperAdmin(email="admin@example.com", first_name="Root", last_name="Admin")
    admin.set_password(PASSWORD)
    db.session.add(admin)
    db.session.commit()
    return admin


@pytest.fixture
def make_quiz(app):
    def _make(couple, title="How well do you know us?", is_active=True):
        quiz = Quiz(couple_id=couple.id, title=title, questions=[{"q": "Where did we meet?"}],
                    is_active=is_active)
        db.session.add(quiz)
        db.session.commit()
        return quiz

    return _make


@pytest.fixture
def make_quiz_result(app):
    def _make(quiz, invite, score, completion_seconds=None):
        result = QuizResult(quiz_id=quiz.id, invite_id=invite.id, score=score,
                            completion_seconds=completion_seconds, answers={})
        db.session.add(result)
        db.session.commit()
        return result

    return _make


@pytest.fixture
def make_poll(app):
    def _make(couple, options=("Chicken", "Fish", "Vegetarian"), **overrides):
        poll = Poll(couple_id=couple.id, title="Main course", options=list(options),
                    is_active=overrides.pop("is_active", True), **overrides)
        db.session.add(poll)
        db.session.commit()
        return poll

    return _make


# =============================================================================
# AUTH HELPERS
# =============================================================================


def login_headers(client, kind, email, password=PASSWORD):
    response = client.post("/api/auth/login", json={"kind": kind, "email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return {"Authorization": f"Bearer {response.get_json()['access_token']}"}


@pytest.fixture
def couple_headers(client, couple):
    return login_headers(client, "couple", couple.admin_email)
