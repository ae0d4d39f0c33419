"""Invite Service - Invités, RSVP et tokens QR.

Responsabilité (SRP) : logique métier des invités uniquement.
"""
import logging
import secrets
from datetime import datetime
from typing import Dict, Any, List
from models import Invite, RsvpStatus, GuestType, NotificationType, NotFoundError, ValidationError
from repositories.invite_repository import InviteRepository
from services.activity_log_service import ActivityLogService, ACTION_RSVP_UPDATE
from services.notification_service import NotificationService

QR_TOKEN_ATTEMPTS = 10


class InviteService:
    """Service pour la gestion métier des invités.

    Pattern: Service Layer
    """

    def __init__(self, invite_repository: InviteRepository = None,
                 activity_log_service: ActivityLogService = None,
                 notification_service: NotificationService = None):
        self.invite_repo = invite_repository or InviteRepository()
        self.activity_log = activity_log_service or ActivityLogService()
        self.notifications = notification_service or NotificationService()
        self.logger = logging.getLogger(__name__)

    def generate_qr_token(self) -> str:
        """Génère un token QR unique (32 caractères hexadécimaux).

        Raises:
            RuntimeError: aucun token libre après QR_TOKEN_ATTEMPTS essais
        """
        for _ in range(QR_TOKEN_ATTEMPTS):
            token = secrets.token_hex(16)
            if not self.invite_repo.qr_token_exists(token):
                return token
        raise RuntimeError(f"Unable to generate a unique QR token after {QR_TOKEN_ATTEMPTS} attempts")

    def create_invite(self, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Crée un invité avec son token QR.

        Raises:
            ValueError: nom manquant ou type d'invité inconnu
            ValidationError: accompagnants confirmés > maximum
        """
        first_name = (data.get('first_name') or '').strip()
        last_name = (data.get('last_name') or '').strip()
        if not first_name or not last_name:
            raise ValueError("First name and last name are required")

        guest_type = data.get('guest_type')
        if guest_type is not None:
            guest_type = GuestType(guest_type).value

        invite = Invite(
            couple_id=couple_id,
            first_name=first_name,
            last_name=last_name,
            email=data.get('email'),
            phone=data.get('phone'),
            guest_type=guest_type,
            companions_allowed=bool(data.get('companions_allowed', False)),
            companions_max=int(data.get('companions_max', 0) or 0),
            companions_confirmed=0,
            dietary_restrictions=data.get('dietary_restrictions'),
            qr_token=self.generate_qr_token()
        )
        invite.validate()
        self.invite_repo.save(invite)
        self.logger.info(f"Invite {invite.id} ({invite.full_name}) created for couple {couple_id}")
        return invite.to_dict()

    def get_invite(self, invite_id: int, couple_id: int = None) -> Invite:
        invite = self.invite_repo.find_by_id(invite_id)
        if not invite:
            raise NotFoundError(f"Invite {invite_id} not found")
        if couple_id is not None and invite.couple_id != couple_id:
            raise PermissionError("Access denied to this guest")
        return invite

    def get_by_token(self, token: str) -> Invite:
        invite = self.invite_repo.find_by_qr_token(token) if token else None
        if not invite:
            raise NotFoundError("Unknown invitation token")
        return invite

    def update_rsvp(self, invite: Invite, status: str, companions: int = None,
                    comment: str = None, dietary_restrictions: str = None) -> Dict[str, Any]:
        """Enregistre la réponse RSVP d'un invité.

        Un refus remet les accompagnants confirmés à zéro.

        Raises:
            ValueError: statut inconnu
            ValidationError: accompagnants non autorisés ou au-delà du maximum
        """
        status = RsvpStatus(status)
        companions = int(companions or 0)
        if status == RsvpStatus.DECLINED:
            companions = 0
        if companions < 0:
            raise ValidationError('companions_confirmed', 'Companions cannot be negative')
        if companions and not invite.companions_allowed:
            raise ValidationError('companions_confirmed', 'This invitation does not allow companions')
        if companions > (invite.companions_max or 0):
            raise ValidationError(
                'companions_confirmed',
                f'At most {invite.companions_max} companion(s) allowed'
            )

        previous = invite.rsvp_status
        invite.rsvp_status = status.value
        invite.companions_confirmed = companions
        invite.rsvp_date = datetime.utcnow()
        if comment is not None:
            invite.rsvp_comment = comment
        if dietary_restrictions is not None:
            invite.dietary_restrictions = dietary_restrictions
        self.invite_repo.save(invite)

        self.logger.info(f"Invite {invite.id} RSVP: {previous} -> {invite.rsvp_status}")
        self.activity_log.log(
            invite.couple_id, ACTION_RSVP_UPDATE,
            actor_id=invite.id, actor_kind='invite',
            details={'from': previous, 'to': invite.rsvp_status, 'companions': companions}
        )
        if status == RsvpStatus.CONFIRMED:
            self.notifications.create_notification(
                invite.couple_id, NotificationType.RSVP_CONFIRMATION,
                title='Your attendance is confirmed',
                content=f"Thank you {invite.first_name}, see you soon!",
                invite_id=invite.id
            )
        return invite.to_dict()

    def rsvp_summary(self, couple_id: int) -> Dict[str, int]:
        """Nombre d'invités par statut RSVP ('no_answer' pour les non-réponses)."""
        counts = self.invite_repo.count_by_rsvp_status(couple_id)
        summary = {status.value: counts.get(status.value, 0) for status in RsvpStatus}
        summary['no_answer'] = counts.get(None, 0)
        summary['total'] = sum(counts.values())
        return summary

    def list_invites(self, couple_id: int, rsvp_status: str = None) -> List[Dict[str, Any]]:
        if rsvp_status:
            rsvp_status = RsvpStatus(rsvp_status).value
        return [i.to_dict() for i in self.invite_repo.find_by_couple(couple_id, rsvp_status=rsvp_status)]

    def search(self, couple_id: int, term: str) -> List[Dict[str, Any]]:
        term = (term or '').strip()
        if len(term) < 2:
            raise ValueError("Search term must be at least 2 characters")
        return [i.to_dict() for i in self.invite_repo.search_by_name(couple_id, term)]
