"""Notification Repository - Persistence des notifications."""
from datetime import datetime
from typing import Optional, List
from models import db, Notification


class NotificationRepository:

    @staticmethod
    def find_by_id(notification_id: int) -> Optional[Notification]:
        """Trouve une notification par son ID."""
        return db.session.get(Notification, notification_id)

    @staticmethod
    def find_by_couple(couple_id: int, limit: int = None) -> List[Notification]:
        """Notifications d'un couple, plus récentes d'abord."""
        query = Notification.query.filter_by(couple_id=couple_id)\
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def find_unread_by_invite(invite_id: int) -> List[Notification]:
        return Notification.query.filter_by(invite_id=invite_id, is_read=False)\
            .order_by(Notification.created_at.desc()).all()

    @staticmethod
    def count_unread_by_invite(invite_id: int) -> int:
        return Notification.query.filter_by(invite_id=invite_id, is_read=False).count()

    @staticmethod
    def mark_all_read_by_invite(invite_id: int) -> int:
        """Marque toutes les notifications d'un invité comme lues; retourne le nombre modifié."""
        updated = Notification.query.filter_by(invite_id=invite_id, is_read=False)\
            .update({'is_read': True, 'read_at': datetime.utcnow()}, synchronize_session=False)
        db.session.commit()
        return updated

    @staticmethod
    def add(notification: Notification) -> Notification:
        db.session.add(notification)
        return notification

    @staticmethod
    def save(notification: Notification) -> Notification:
        db.session.add(notification)
        db.session.commit()
        return notification

    @staticmethod
    def flush() -> None:
        db.session.flush()

    @staticmethod
    def commit() -> None:
        db.session.commit()
