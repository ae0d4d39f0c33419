"""Activity Log Service - Journal d'activité des couples.

Responsabilité (SRP) : enregistrement et consultation du journal.
- Capture IP / User-Agent de la requête Flask courante si disponible
- Détection d'activité suspecte et purge des anciennes entrées
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List
from flask import has_request_context, request
from models import ActivityLog, ActorKind, ValidationError
from repositories.activity_log_repository import ActivityLogRepository

# Actions journalisées par l'application
ACTION_LOGIN = 'login'
ACTION_RSVP_UPDATE = 'rsvp_update'
ACTION_PHOTO_UPLOAD = 'photo_upload'
ACTION_QR_SCAN = 'qr_scan'
ACTION_CONTRIBUTION_CREATE = 'contribution_create'
ACTION_CONTRIBUTION_STATUS = 'contribution_status'

KNOWN_ACTIONS = [
    ACTION_LOGIN,
    ACTION_RSVP_UPDATE,
    ACTION_PHOTO_UPLOAD,
    ACTION_QR_SCAN,
    ACTION_CONTRIBUTION_CREATE,
    ACTION_CONTRIBUTION_STATUS,
]


class ActivityLogService:
    """Service d'écriture et de lecture du journal d'activité."""

    def __init__(self, log_repository: ActivityLogRepository = None):
        self.log_repo = log_repository or ActivityLogRepository()
        self.logger = logging.getLogger(__name__)

    def log(self, couple_id: int, action: str, actor_id: Optional[int] = None,
            actor_kind: Optional[str] = None, details: Optional[Dict[str, Any]] = None,
            ip_address: Optional[str] = None, user_agent: Optional[str] = None,
            commit: bool = True) -> ActivityLog:
        """Ajoute une entrée au journal.

        Args:
            couple_id: Couple concerné
            action: Nom de l'action (voir KNOWN_ACTIONS)
            actor_id: ID de l'acteur (couple, organisateur, invité, super admin)
            actor_kind: Type d'acteur (ActorKind)
            details: Données libres sérialisées en JSON
            commit: False pour laisser l'appelant valider la transaction

        Raises:
            ValueError: action vide ou type d'acteur inconnu
        """
        if not action or not action.strip():
            raise ValueError("Action is required")
        if actor_kind is not None:
            actor_kind = ActorKind(actor_kind).value

        if has_request_context():
            ip_address = ip_address or request.remote_addr
            user_agent = user_agent or request.headers.get('User-Agent')

        entry = ActivityLog(
            couple_id=couple_id,
            action=action.strip(),
            actor_id=actor_id,
            actor_kind=actor_kind,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent
        )
        self.log_repo.add(entry)
        if commit:
            self.log_repo.commit()

        self.logger.info(f"Activity '{entry.action}' logged for couple {couple_id} (actor {actor_kind}:{actor_id})")
        return entry

    def list_for_couple(self, couple_id: int, action: str = None, limit: int = 100) -> List[Dict[str, Any]]:
        if action and action not in KNOWN_ACTIONS:
            raise ValidationError('action', f"Unknown action: {action}")
        return [entry.to_dict() for entry in self.log_repo.find_by_couple(couple_id, action=action, limit=limit)]

    def count_by_action(self, couple_id: int) -> Dict[str, int]:
        return self.log_repo.count_by_action(couple_id)

    def find_suspicious_activity(self, couple_id: int, minutes: int = 5,
                                 threshold: int = 20, now: datetime = None) -> List[Dict[str, Any]]:
        """Groupes IP/acteur ayant au moins `threshold` actions en `minutes` minutes."""
        now = now or datetime.utcnow()
        bursts = self.log_repo.find_bursts(couple_id, now - timedelta(minutes=minutes), threshold)
        if bursts:
            self.logger.warning(f"{len(bursts)} suspicious activity group(s) for couple {couple_id}")
        return bursts

    def purge_old_logs(self, months: int = 12, now: datetime = None) -> int:
        """Supprime les entrées plus anciennes que `months` mois (30 jours par mois)."""
        if months < 1:
            raise ValueError("Retention must be at least one month")
        now = now or datetime.utcnow()
        deleted = self.log_repo.delete_older_than(now - timedelta(days=30 * months))
        self.logger.info(f"Purged {deleted} activity log entries older than {months} month(s)")
        return deleted
