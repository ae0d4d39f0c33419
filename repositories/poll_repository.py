"""Poll Repository - Persistence des sondages et des réponses."""
from datetime import datetime
from typing import Optional, List, Dict
from sqlalchemy import func
from models import db, Poll, PollResponse


class PollRepository:

    @staticmethod
    def find_by_id(poll_id: int) -> Optional[Poll]:
        """Trouve un sondage par son ID."""
        return db.session.get(Poll, poll_id)

    @staticmethod
    def find_active_by_couple(couple_id: int) -> List[Poll]:
        return Poll.query.filter_by(couple_id=couple_id, is_active=True)\
            .order_by(Poll.display_order.asc(), Poll.created_at.desc()).all()

    @staticmethod
    def find_response(poll_id: int, invite_id: int) -> Optional[PollResponse]:
        return PollResponse.query.filter_by(poll_id=poll_id, invite_id=invite_id).first()

    @staticmethod
    def count_by_answer(poll_id: int) -> Dict[str, int]:
        """Nombre de réponses par option."""
        rows = db.session.query(PollResponse.answer, func.count(PollResponse.id))\
            .filter(PollResponse.poll_id == poll_id)\
            .group_by(PollResponse.answer).all()
        return {answer: count for answer, count in rows}

    @staticmethod
    def find_expired(now: datetime) -> List[Poll]:
        """Sondages encore actifs dont la date de fin est passée."""
        return Poll.query.filter(
            Poll.is_active.is_(True),
            Poll.ends_at.isnot(None),
            Poll.ends_at < now
        ).all()

    @staticmethod
    def save_response(response: PollResponse) -> PollResponse:
        db.session.add(response)
        db.session.commit()
        return response

    @staticmethod
    def commit() -> None:
        db.session.commit()
