"""Quiz Repository - Persistence des quiz et de leurs résultats."""
from typing import Optional, List, Dict, Any
from sqlalchemy import func, case
from models import db, Quiz, QuizResult


class QuizRepository:

    @staticmethod
    def find_by_id(quiz_id: int) -> Optional[Quiz]:
        """Trouve un quiz par son ID."""
        return db.session.get(Quiz, quiz_id)

    @staticmethod
    def find_active_by_couple(couple_id: int) -> List[Quiz]:
        return Quiz.query.filter_by(couple_id=couple_id, is_active=True)\
            .order_by(Quiz.created_at.desc()).all()

    @staticmethod
    def find_result(quiz_id: int, invite_id: int) -> Optional[QuizResult]:
        """Résultat d'un invité pour un quiz (au plus un)."""
        return QuizResult.query.filter_by(quiz_id=quiz_id, invite_id=invite_id).first()

    @staticmethod
    def find_results(quiz_id: int) -> List[QuizResult]:
        return QuizResult.query.filter_by(quiz_id=quiz_id)\
            .order_by(QuizResult.completed_at.desc()).all()

    @staticmethod
    def get_statistics(quiz_id: int) -> Dict[str, Any]:
        """Agrégats bruts d'un quiz en une seule requête."""
        row = db.session.query(
            func.count(QuizResult.id),
            func.avg(QuizResult.score),
            func.min(QuizResult.score),
            func.max(QuizResult.score),
            func.avg(QuizResult.completion_seconds),
            func.count(QuizResult.score),
        ).filter(QuizResult.quiz_id == quiz_id).one()
        return {
            'total_participants': row[0] or 0,
            'average_score': row[1],
            'min_score': row[2],
            'max_score': row[3],
            'average_completion_time': row[4],
            'completed_participants': row[5] or 0,
        }

    @staticmethod
    def get_score_distribution(quiz_id: int) -> Dict[str, int]:
        """Nombre de participants par tranche de score."""
        band = case(
            (QuizResult.score.is_(None), 'Not completed'),
            (QuizResult.score >= 90, 'Excellent (90-100)'),
            (QuizResult.score >= 70, 'Good (70-89)'),
            (QuizResult.score >= 50, 'Fair (50-69)'),
            else_='Poor (0-49)'
        )
        rows = db.session.query(band, func.count(QuizResult.id))\
            .filter(QuizResult.quiz_id == quiz_id)\
            .group_by(band).all()
        return {label: count for label, count in rows}

    @staticmethod
    def get_ranking(quiz_id: int, limit: int = None) -> List[QuizResult]:
        """Classement: score décroissant puis temps de complétion croissant."""
        query = QuizResult.query.filter(
            QuizResult.quiz_id == quiz_id,
            QuizResult.score.isnot(None)
        ).order_by(
            QuizResult.score.desc(),
            QuizResult.completion_seconds.is_(None),
            QuizResult.completion_seconds.asc(),
            QuizResult.id.asc()
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def save_result(result: QuizResult) -> QuizResult:
        db.session.add(result)
        db.session.commit()
        return result
