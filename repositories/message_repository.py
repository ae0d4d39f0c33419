"""Message Repository - Fils de messages privés couple / invité."""
from datetime import datetime
from typing import Optional, List
from sqlalchemy import func
from models import db, PrivateMessage


class MessageRepository:

    @staticmethod
    def find_by_id(message_id: int) -> Optional[PrivateMessage]:
        return db.session.get(PrivateMessage, message_id)

    @staticmethod
    def find_thread(couple_id: int, invite_id: int, limit: int = None) -> List[PrivateMessage]:
        """Fil complet entre un couple et un invité, plus anciens d'abord."""
        query = PrivateMessage.query.filter_by(couple_id=couple_id, invite_id=invite_id)\
            .order_by(PrivateMessage.sent_at.asc(), PrivateMessage.id.asc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def find_by_couple(couple_id: int, sender: str = None, unread_only: bool = False) -> List[PrivateMessage]:
        """Messages d'un couple tous fils confondus, plus récents d'abord."""
        query = PrivateMessage.query.filter_by(couple_id=couple_id)
        if sender:
            query = query.filter_by(sender=sender)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(PrivateMessage.sent_at.desc(), PrivateMessage.id.desc()).all()

    @staticmethod
    def count_unread(couple_id: int, sender: str, invite_id: int = None) -> int:
        """Messages non lus envoyés par `sender` (dans un seul fil si invite_id)."""
        query = db.session.query(func.count(PrivateMessage.id)).filter(
            PrivateMessage.couple_id == couple_id,
            PrivateMessage.sender == sender,
            PrivateMessage.is_read.is_(False)
        )
        if invite_id is not None:
            query = query.filter(PrivateMessage.invite_id == invite_id)
        return query.scalar() or 0

    @staticmethod
    def mark_thread_read(couple_id: int, invite_id: int, sender: str) -> int:
        """Marque comme lus les messages de `sender` dans un fil; retourne le nombre modifié."""
        updated = PrivateMessage.query.filter_by(
            couple_id=couple_id, invite_id=invite_id, sender=sender, is_read=False
        ).update({'is_read': True, 'read_at': datetime.utcnow()}, synchronize_session=False)
        db.session.commit()
        return updated

    @staticmethod
    def save(message: PrivateMessage) -> PrivateMessage:
        db.session.add(message)
        db.session.commit()
        return message
