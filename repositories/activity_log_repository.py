"""ActivityLog Repository - Journal d'activité en ajout seul."""
from datetime import datetime
from typing import List, Dict, Any
from sqlalchemy import func
from models import db, ActivityLog


class ActivityLogRepository:

    @staticmethod
    def find_by_couple(couple_id: int, action: str = None, limit: int = None) -> List[ActivityLog]:
        """Entrées d'un couple, plus récentes d'abord."""
        query = ActivityLog.query.filter_by(couple_id=couple_id)
        if action:
            query = query.filter_by(action=action)
        query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def count_by_action(couple_id: int) -> Dict[str, int]:
        rows = db.session.query(ActivityLog.action, func.count(ActivityLog.id))\
            .filter(ActivityLog.couple_id == couple_id)\
            .group_by(ActivityLog.action)\
            .order_by(func.count(ActivityLog.id).desc()).all()
        return {action: count for action, count in rows}

    @staticmethod
    def find_bursts(couple_id: int, since: datetime, threshold: int) -> List[Dict[str, Any]]:
        """Groupes (IP, acteur) ayant au moins `threshold` actions depuis `since`."""
        count = func.count(ActivityLog.id)
        rows = db.session.query(
            ActivityLog.ip_address, ActivityLog.actor_id, ActivityLog.actor_kind, count
        ).filter(
            ActivityLog.couple_id == couple_id,
            ActivityLog.created_at >= since
        ).group_by(
            ActivityLog.ip_address, ActivityLog.actor_id, ActivityLog.actor_kind
        ).having(count >= threshold).order_by(count.desc()).all()
        return [
            {'ip_address': ip, 'actor_id': actor_id, 'actor_kind': kind, 'action_count': n}
            for ip, actor_id, kind, n in rows
        ]

    @staticmethod
    def delete_older_than(limit_date: datetime) -> int:
        deleted = ActivityLog.query.filter(ActivityLog.created_at < limit_date)\
            .delete(synchronize_session=False)
        db.session.commit()
        return deleted

    @staticmethod
    def add(entry: ActivityLog) -> ActivityLog:
        """Ajoute à la session; le commit est fait par l'appelant."""
        db.session.add(entry)
        return entry

    @staticmethod
    def commit() -> None:
        db.session.commit()
