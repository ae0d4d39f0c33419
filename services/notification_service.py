"""Notification Service - Création et lecture des notifications invités."""
import logging
from typing import Optional, Dict, Any, List, Iterable
from models import Notification, NotificationType, NotFoundError
from repositories.notification_repository import NotificationRepository
from repositories.invite_repository import InviteRepository

DEFAULT_BATCH_SIZE = 50


class NotificationService:
    """Service pour la gestion des notifications.

    Les envois groupés sont une suite d'insertions avec un flush tous les
    `batch_size` éléments puis un commit final: une erreur en cours de lot
    laisse la session à l'appelant.
    """

    def __init__(self, notification_repository: NotificationRepository = None,
                 invite_repository: InviteRepository = None,
                 batch_size: int = DEFAULT_BATCH_SIZE):
        self.notification_repo = notification_repository or NotificationRepository()
        self.invite_repo = invite_repository or InviteRepository()
        self.batch_size = batch_size
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _build(couple_id: int, notification_type, title: str, content: str = None,
               invite_id: int = None, action_link: str = None) -> Notification:
        if not title or not title.strip():
            raise ValueError("Notification title is required")
        return Notification(
            couple_id=couple_id,
            invite_id=invite_id,
            notification_type=NotificationType(notification_type).value,
            title=title.strip(),
            content=content,
            action_link=action_link
        )

    def create_notification(self, couple_id: int, notification_type, title: str,
                            content: str = None, invite_id: int = None,
                            action_link: str = None) -> Dict[str, Any]:
        """Crée une notification (invite_id None = notification globale du couple)."""
        notification = self._build(couple_id, notification_type, title, content, invite_id, action_link)
        self.notification_repo.save(notification)
        self.logger.info(f"Notification {notification.id} ({notification.notification_type}) created for couple {couple_id}")
        return notification.to_dict()

    def create_bulk(self, couple_id: int, notification_type, title: str, content: str = None,
                    invite_ids: Optional[Iterable[int]] = None, action_link: str = None) -> int:
        """Crée une notification par invité.

        Args:
            invite_ids: Invités ciblés; None = tous les invités du couple

        Returns:
            Nombre de notifications créées
        """
        if invite_ids is None:
            invite_ids = [invite.id for invite in self.invite_repo.find_by_couple(couple_id)]

        created = 0
        for invite_id in invite_ids:
            notification = self._build(couple_id, notification_type, title, content, invite_id, action_link)
            self.notification_repo.add(notification)
            created += 1
            if created % self.batch_size == 0:
                self.notification_repo.flush()
        self.notification_repo.commit()

        self.logger.info(f"{created} notification(s) '{title}' created for couple {couple_id}")
        return created

    def mark_as_read(self, notification_id: int, couple_id: int = None) -> Dict[str, Any]:
        notification = self.notification_repo.find_by_id(notification_id)
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")
        if couple_id is not None and notification.couple_id != couple_id:
            raise PermissionError("Access denied to this notification")
        notification.mark_as_read()
        self.notification_repo.save(notification)
        return notification.to_dict()

    def mark_all_read(self, invite_id: int) -> int:
        updated = self.notification_repo.mark_all_read_by_invite(invite_id)
        self.logger.info(f"{updated} notification(s) marked as read for invite {invite_id}")
        return updated

    def unread_count(self, invite_id: int) -> int:
        return self.notification_repo.count_unread_by_invite(invite_id)

    def list_for_couple(self, couple_id: int, limit: int = 50) -> List[Dict[str, Any]]:
        return [n.to_dict() for n in self.notification_repo.find_by_couple(couple_id, limit=limit)]

    def list_unread_for_invite(self, invite_id: int) -> List[Dict[str, Any]]:
        return [n.to_dict() for n in self.notification_repo.find_unread_by_invite(invite_id)]
