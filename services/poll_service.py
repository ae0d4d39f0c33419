"""Poll Service - Réponses et résultats des sondages."""
import logging
from datetime import datetime
from typing import Dict, Any, List
from models import PollResponse, NotFoundError
from contribution_stats import apportion_percentages
from repositories.poll_repository import PollRepository
from repositories.invite_repository import InviteRepository


class PollService:

    def __init__(self, poll_repository: PollRepository = None,
                 invite_repository: InviteRepository = None):
        self.poll_repo = poll_repository or PollRepository()
        self.invite_repo = invite_repository or InviteRepository()
        self.logger = logging.getLogger(__name__)

    def get_poll(self, poll_id: int, couple_id: int = None):
        poll = self.poll_repo.find_by_id(poll_id)
        if not poll:
            raise NotFoundError(f"Poll {poll_id} not found")
        if couple_id is not None and poll.couple_id != couple_id:
            raise PermissionError("Access denied to this poll")
        return poll

    def answer(self, poll_id: int, invite_id: int, answer: str, now: datetime = None) -> Dict[str, Any]:
        """Enregistre la réponse d'un invité (une seule par sondage).

        Raises:
            ValueError: sondage fermé, option inconnue ou réponse déjà donnée
            PermissionError: invité d'un autre couple
        """
        poll = self.get_poll(poll_id)
        if not poll.is_open(now):
            raise ValueError("This poll is closed")
        invite = self.invite_repo.find_by_id(invite_id)
        if not invite:
            raise NotFoundError(f"Invite {invite_id} not found")
        if invite.couple_id != poll.couple_id:
            raise PermissionError("This guest cannot answer this poll")
        if answer not in (poll.options or []):
            raise ValueError(f"'{answer}' is not an option of this poll")
        if self.poll_repo.find_response(poll_id, invite_id):
            raise ValueError("This guest already answered this poll")

        response = PollResponse(poll_id=poll_id, invite_id=invite_id, answer=answer)
        self.poll_repo.save_response(response)
        self.logger.info(f"Poll {poll_id}: invite {invite_id} answered '{answer}'")
        return {'poll_id': poll_id, 'invite_id': invite_id, 'answer': answer}

    def get_results(self, poll_id: int, couple_id: int = None) -> Dict[str, Any]:
        """Résultats par option, dans l'ordre des options, avec pourcentages."""
        poll = self.get_poll(poll_id, couple_id)
        counts = self.poll_repo.count_by_answer(poll_id)
        options = list(poll.options or [])
        values = [counts.get(option, 0) for option in options]
        percentages = apportion_percentages(values)
        return {
            'poll_id': poll_id,
            'title': poll.title,
            'total_responses': sum(values),
            'results': [
                {'option': option, 'count': count, 'percentage': pct}
                for option, count, pct in zip(options, values, percentages)
            ],
        }

    def list_active(self, couple_id: int, invite_id: int = None) -> List[Dict[str, Any]]:
        """Sondages actifs d'un couple; `answered` indique si l'invité a déjà répondu."""
        polls = []
        for poll in self.poll_repo.find_active_by_couple(couple_id):
            entry = poll.to_dict()
            if invite_id is not None:
                entry['answered'] = self.poll_repo.find_response(poll.id, invite_id) is not None
            polls.append(entry)
        return polls

    def deactivate_expired(self, now: datetime = None) -> int:
        """Désactive les sondages dont la date de fin est passée."""
        now = now or datetime.utcnow()
        expired = self.poll_repo.find_expired(now)
        for poll in expired:
            poll.is_active = False
        self.poll_repo.commit()
        if expired:
            self.logger.info(f"Deactivated {len(expired)} expired poll(s)")
        return len(expired)
