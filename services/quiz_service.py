"""Quiz Service - Résultats et statistiques des quiz invités."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, List
from models import QuizResult, NotFoundError, CENT
from contribution_stats import percent
from repositories.quiz_repository import QuizRepository
from repositories.invite_repository import InviteRepository

SCORE_BANDS = ['Excellent (90-100)', 'Good (70-89)', 'Fair (50-69)', 'Poor (0-49)', 'Not completed']


class QuizService:

    def __init__(self, quiz_repository: QuizRepository = None,
                 invite_repository: InviteRepository = None):
        self.quiz_repo = quiz_repository or QuizRepository()
        self.invite_repo = invite_repository or InviteRepository()
        self.logger = logging.getLogger(__name__)

    def get_quiz(self, quiz_id: int, couple_id: int = None):
        quiz = self.quiz_repo.find_by_id(quiz_id)
        if not quiz:
            raise NotFoundError(f"Quiz {quiz_id} not found")
        if couple_id is not None and quiz.couple_id != couple_id:
            raise PermissionError("Access denied to this quiz")
        return quiz

    def submit_result(self, quiz_id: int, invite_id: int, score: int = None,
                      answers: Dict[str, Any] = None, completion_seconds: int = None) -> Dict[str, Any]:
        """Enregistre le résultat d'un invité (un seul par quiz).

        Raises:
            ValueError: quiz inactif, score hors [0, 100], résultat déjà présent
            PermissionError: invité d'un autre couple
        """
        quiz = self.get_quiz(quiz_id)
        if not quiz.is_active:
            raise ValueError("This quiz is closed")
        invite = self.invite_repo.find_by_id(invite_id)
        if not invite:
            raise NotFoundError(f"Invite {invite_id} not found")
        if invite.couple_id != quiz.couple_id:
            raise PermissionError("This guest cannot answer this quiz")
        if score is not None and not 0 <= int(score) <= 100:
            raise ValueError("Score must be between 0 and 100")
        if completion_seconds is not None and int(completion_seconds) < 0:
            raise ValueError("Completion time cannot be negative")
        if self.quiz_repo.find_result(quiz_id, invite_id):
            raise ValueError("This guest already answered this quiz")

        result = QuizResult(
            quiz_id=quiz_id,
            invite_id=invite_id,
            score=int(score) if score is not None else None,
            answers=answers or {},
            completion_seconds=int(completion_seconds) if completion_seconds is not None else None
        )
        self.quiz_repo.save_result(result)
        self.logger.info(f"Quiz {quiz_id}: result {result.id} saved for invite {invite_id} (score={result.score})")
        return result.to_dict()

    def get_statistics(self, quiz_id: int, couple_id: int = None) -> Dict[str, Any]:
        """Participants, scores moyens/min/max, temps moyen et taux de complétion."""
        self.get_quiz(quiz_id, couple_id)
        raw = self.quiz_repo.get_statistics(quiz_id)

        def avg(value):
            if value is None:
                return Decimal('0.00')
            return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)

        return {
            'quiz_id': quiz_id,
            'total_participants': raw['total_participants'],
            'completed_participants': raw['completed_participants'],
            'average_score': avg(raw['average_score']),
            'min_score': raw['min_score'] or 0,
            'max_score': raw['max_score'] or 0,
            'average_completion_time': avg(raw['average_completion_time']),
            'completion_rate': percent(raw['completed_participants'], raw['total_participants']),
        }

    def get_score_distribution(self, quiz_id: int, couple_id: int = None) -> List[Dict[str, Any]]:
        """Effectifs par tranche de score, toutes tranches présentes."""
        self.get_quiz(quiz_id, couple_id)
        counts = self.quiz_repo.get_score_distribution(quiz_id)
        return [{'band': band, 'count': counts.get(band, 0)} for band in SCORE_BANDS]

    def get_ranking(self, quiz_id: int, couple_id: int = None, limit: int = None) -> List[Dict[str, Any]]:
        """Classement: score décroissant puis temps de complétion croissant."""
        self.get_quiz(quiz_id, couple_id)
        ranking = []
        for position, result in enumerate(self.quiz_repo.get_ranking(quiz_id, limit=limit), start=1):
            entry = result.to_dict()
            entry['rank'] = position
            entry['invite_name'] = result.invite.full_name
            ranking.append(entry)
        return ranking

    def list_active(self, couple_id: int) -> List[Dict[str, Any]]:
        """Quiz ouverts d'un couple, plus récents d'abord."""
        return [quiz.to_dict() for quiz in self.quiz_repo.find_active_by_couple(couple_id)]

    def list_results(self, quiz_id: int, couple_id: int = None) -> List[Dict[str, Any]]:
        """Tous les résultats d'un quiz (terminés ou non), plus récents d'abord."""
        self.get_quiz(quiz_id, couple_id)
        results = []
        for result in self.quiz_repo.find_results(quiz_id):
            entry = result.to_dict()
            entry['invite_name'] = result.invite.full_name
            results.append(entry)
        return results
