"""Message Service - Messagerie privée entre un couple et ses invités.

Un fil = tous les messages échangés entre un couple et un invité. Chaque
côté lit les messages envoyés par l'autre: le compteur de non lus du couple
porte sur les messages des invités, celui d'un invité sur ceux du couple.
"""
import logging
from typing import Dict, Any, List
from models import Invite, PrivateMessage, MessageSender, NotificationType
from repositories.message_repository import MessageRepository
from services.notification_service import NotificationService


class MessageService:

    def __init__(self, message_repository: MessageRepository = None,
                 notification_service: NotificationService = None):
        self.message_repo = message_repository or MessageRepository()
        self.notifications = notification_service or NotificationService()
        self.logger = logging.getLogger(__name__)

    def _send(self, invite: Invite, sender: MessageSender, content: str, subject: str = None) -> PrivateMessage:
        message = PrivateMessage(
            couple_id=invite.couple_id,
            invite_id=invite.id,
            sender=sender.value,
            subject=subject.strip() if subject else None,
            content=content.strip() if content else content
        )
        message.validate()
        self.message_repo.save(message)
        self.logger.info(f"Message {message.id} sent by {sender.value} in thread couple {invite.couple_id} / invite {invite.id}")
        return message

    def send_from_invite(self, invite: Invite, content: str, subject: str = None) -> Dict[str, Any]:
        """Message d'un invité au couple; notification globale côté couple.

        Raises:
            ValidationError: contenu vide ou trop long
        """
        message = self._send(invite, MessageSender.INVITE, content, subject)
        self.notifications.create_notification(
            invite.couple_id, NotificationType.NEW_MESSAGE,
            title=f"New message from {invite.full_name}",
            content=message.subject
        )
        return message.to_dict()

    def send_from_couple(self, invite: Invite, content: str, subject: str = None) -> Dict[str, Any]:
        """Message du couple à un invité, qui reçoit une notification."""
        message = self._send(invite, MessageSender.COUPLE, content, subject)
        self.notifications.create_notification(
            invite.couple_id, NotificationType.NEW_MESSAGE,
            title="New message from the couple",
            content=message.subject,
            invite_id=invite.id
        )
        return message.to_dict()

    def get_thread(self, invite: Invite) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self.message_repo.find_thread(invite.couple_id, invite.id)]

    def list_inbox(self, couple_id: int, unread_only: bool = False) -> List[Dict[str, Any]]:
        """Messages reçus par le couple, plus récents d'abord."""
        messages = self.message_repo.find_by_couple(couple_id, sender=MessageSender.INVITE.value,
                                                    unread_only=unread_only)
        return [m.to_dict() for m in messages]

    def unread_count_for_couple(self, couple_id: int) -> int:
        return self.message_repo.count_unread(couple_id, MessageSender.INVITE.value)

    def unread_count_for_invite(self, invite: Invite) -> int:
        return self.message_repo.count_unread(invite.couple_id, MessageSender.COUPLE.value, invite_id=invite.id)

    def mark_read_by_couple(self, invite: Invite) -> int:
        """Le couple a lu le fil: les messages de l'invité passent à lus."""
        return self.message_repo.mark_thread_read(invite.couple_id, invite.id, MessageSender.INVITE.value)

    def mark_read_by_invite(self, invite: Invite) -> int:
        return self.message_repo.mark_thread_read(invite.couple_id, invite.id, MessageSender.COUPLE.value)
