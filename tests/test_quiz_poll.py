"""Tests for quiz results / statistics and poll answers / results."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from models import db, Poll
from services.poll_service import PollService
from services.quiz_service import QuizService


class TestQuizService:
    @pytest.fixture
    def service(self, app):
        return QuizService()

    def test_submit_result_once(self, service, couple, make_quiz, make_invite):
        quiz, guest = make_quiz(couple), make_invite(couple)

        result = service.submit_result(quiz.id, guest.id, score=80, completion_seconds=95)

        assert result["score"] == 80
        with pytest.raises(ValueError):
            service.submit_result(quiz.id, guest.id, score=90)

    def test_score_must_be_a_percentage(self, service, couple, make_quiz, make_invite):
        with pytest.raises(ValueError):
            service.submit_result(make_quiz(couple).id, make_invite(couple).id, score=101)

    def test_closed_quiz(self, service, couple, make_quiz, make_invite):
        with pytest.raises(ValueError):
            service.submit_result(make_quiz(couple, is_active=False).id, make_invite(couple).id, score=50)

    def test_guest_of_another_couple(self, service, couple, make_couple, make_quiz, make_invite):
        with pytest.raises(PermissionError):
            service.submit_result(make_quiz(couple).id, make_invite(make_couple()).id, score=50)

    def test_statistics_distribution_and_ranking(self, service, couple, make_quiz, make_invite,
                                                 make_quiz_result):
        quiz = make_quiz(couple)
        fast, slow, poor, idle = (make_invite(couple) for _ in range(4))
        make_quiz_result(quiz, slow, 95, completion_seconds=120)
        make_quiz_result(quiz, fast, 95, completion_seconds=60)
        make_quiz_result(quiz, poor, 40, completion_seconds=30)
        make_quiz_result(quiz, idle, None)

        stats = service.get_statistics(quiz.id, couple.id)
        distribution = {row["band"]: row["count"] for row in service.get_score_distribution(quiz.id)}
        ranking = service.get_ranking(quiz.id)

        assert stats["total_participants"] == 4
        assert stats["completed_participants"] == 3
        assert stats["average_score"] == Decimal("76.67")
        assert stats["min_score"] == 40
        assert stats["max_score"] == 95
        assert stats["average_completion_time"] == Decimal("70.00")
        assert stats["completion_rate"] == Decimal("75.00")
        assert distribution == {
            "Excellent (90-100)": 2, "Good (70-89)": 0, "Fair (50-69)": 0,
            "Poor (0-49)": 1, "Not completed": 1,
        }
        assert [r["invite_id"] for r in ranking] == [fast.id, slow.id, poor.id]
        assert [r["rank"] for r in ranking] == [1, 2, 3]

    def test_statistics_of_quiz_without_results(self, service, couple, make_quiz):
        stats = service.get_statistics(make_quiz(couple).id)

        assert stats["total_participants"] == 0
        assert stats["average_score"] == Decimal("0.00")
        assert stats["completion_rate"] == Decimal("0.00")

    def test_list_active_quizzes(self, service, couple, make_couple, make_quiz):
        opened = make_quiz(couple)
        make_quiz(couple, is_active=False)
        make_quiz(make_couple())

        assert [q["id"] for q in service.list_active(couple.id)] == [opened.id]

    def test_list_results_names_the_guests(self, service, couple, make_couple, make_quiz, make_invite,
                                           make_quiz_result):
        quiz = make_quiz(couple)
        guest = make_invite(couple)
        make_quiz_result(quiz, guest, 70)

        results = service.list_results(quiz.id, couple.id)

        assert [(r["invite_id"], r["invite_name"]) for r in results] == [(guest.id, guest.full_name)]
        with pytest.raises(PermissionError):
            service.list_results(quiz.id, make_couple().id)


class TestPollService:
    @pytest.fixture
    def service(self, app):
        return PollService()

    def test_answer_and_results(self, service, couple, make_poll, make_invite):
        poll = make_poll(couple)
        for answer in ("Fish", "Fish", "Chicken"):
            service.answer(poll.id, make_invite(couple).id, answer)

        results = service.get_results(poll.id, couple.id)

        assert results["total_responses"] == 3
        assert [(r["option"], r["count"]) for r in results["results"]] == [
            ("Chicken", 1), ("Fish", 2), ("Vegetarian", 0),
        ]
        assert sum(r["percentage"] for r in results["results"]) == Decimal("100.00")

    def test_one_answer_per_guest(self, service, couple, make_poll, make_invite):
        poll, guest = make_poll(couple), make_invite(couple)
        service.answer(poll.id, guest.id, "Fish")

        with pytest.raises(ValueError):
            service.answer(poll.id, guest.id, "Chicken")

    def test_answer_must_be_an_option(self, service, couple, make_poll, make_invite):
        with pytest.raises(ValueError):
            service.answer(make_poll(couple).id, make_invite(couple).id, "Pizza")

    def test_closed_poll(self, service, couple, make_poll, make_invite):
        poll = make_poll(couple, ends_at=datetime.utcnow() - timedelta(days=1))

        with pytest.raises(ValueError):
            service.answer(poll.id, make_invite(couple).id, "Fish")

    def test_deactivate_expired(self, service, couple, make_poll):
        expired = make_poll(couple, ends_at=datetime.utcnow() - timedelta(hours=1))
        running = make_poll(couple, ends_at=datetime.utcnow() + timedelta(days=3))

        assert service.deactivate_expired() == 1
        db.session.expire_all()
        assert db.session.get(Poll, expired.id).is_active is False
        assert db.session.get(Poll, running.id).is_active is True

    def test_active_polls_flag_answered(self, service, couple, make_poll, make_invite):
        answered, pending = make_poll(couple), make_poll(couple)
        make_poll(couple, is_active=False)
        guest = make_invite(couple)
        service.answer(answered.id, guest.id, "Fish")

        polls = {p["id"]: p for p in service.list_active(couple.id, invite_id=guest.id)}

        assert set(polls) == {answered.id, pending.id}
        assert polls[answered.id]["answered"] is True
        assert polls[pending.id]["answered"] is False
        assert "answered" not in service.list_active(couple.id)[0]
