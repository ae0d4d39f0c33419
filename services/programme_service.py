"""Programme Service - Déroulé de la journée présenté aux invités.

Responsabilité (SRP) : activités du programme d'un couple.
- Création / mise à jour avec validation des horaires
- Réordonnancement en lot et détection des chevauchements
- Notification des invités quand le programme change
"""
import logging
from datetime import time
from typing import Dict, Any, List
from models import ProgrammeItem, ActivityType, NotificationType, NotFoundError, ValidationError
from repositories.programme_repository import ProgrammeRepository
from services.notification_service import NotificationService

ITEM_FIELDS = ('title', 'description', 'starts_at', 'ends_at', 'location',
               'activity_type', 'display_order', 'is_active')


def parse_time(value, field):
    """'HH:MM' -> time; ValidationError sur `field` si le format est invalide."""
    if value is None or value == '':
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(field, f"Invalid time: {value!r} (expected HH:MM)")


class ProgrammeService:

    def __init__(self, programme_repository: ProgrammeRepository = None,
                 notification_service: NotificationService = None):
        self.programme_repo = programme_repository or ProgrammeRepository()
        self.notifications = notification_service or NotificationService()
        self.logger = logging.getLogger(__name__)

    def _apply_fields(self, item: ProgrammeItem, data: Dict[str, Any]) -> None:
        """Valide puis applique les champs; rien n'est modifié en cas d'erreur."""
        values = {field: data.get(field, getattr(item, field)) for field in ITEM_FIELDS}
        values['title'] = (values['title'] or '').strip()
        values['starts_at'] = parse_time(values['starts_at'], 'starts_at')
        values['ends_at'] = parse_time(values['ends_at'], 'ends_at')
        if values['activity_type'] is not None:
            try:
                values['activity_type'] = ActivityType(values['activity_type']).value
            except ValueError:
                raise ValidationError('activity_type', f"Unknown activity type: {values['activity_type']}")
        if values['display_order'] is not None:
            values['display_order'] = int(values['display_order'])
        values['is_active'] = bool(values['is_active'])

        candidate = ProgrammeItem(**values)
        candidate.validate()
        for field, value in values.items():
            setattr(item, field, value)

    def create_item(self, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Ajoute une activité, en fin de programme si aucun ordre n'est donné.

        Raises:
            ValidationError: titre manquant, heure invalide, fin avant début
        """
        item = ProgrammeItem(couple_id=couple_id, is_active=True)
        self._apply_fields(item, data)
        if item.display_order is None:
            item.display_order = self.programme_repo.next_display_order(couple_id)
        self.programme_repo.save(item)
        self.logger.info(f"Programme item {item.id} '{item.title}' created for couple {couple_id}")
        return item.to_dict()

    def get_item(self, item_id: int, couple_id: int = None) -> ProgrammeItem:
        item = self.programme_repo.find_by_id(item_id)
        if not item:
            raise NotFoundError(f"Programme item {item_id} not found")
        if couple_id is not None and item.couple_id != couple_id:
            raise PermissionError("Access denied to this programme item")
        return item

    def update_item(self, item_id: int, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        item = self.get_item(item_id, couple_id)
        self._apply_fields(item, data)
        self.programme_repo.save(item)
        self.logger.info(f"Programme item {item.id} updated")
        return item.to_dict()

    def delete_item(self, item_id: int, couple_id: int) -> None:
        item = self.get_item(item_id, couple_id)
        self.programme_repo.delete(item)
        self.logger.info(f"Programme item {item_id} deleted for couple {couple_id}")

    def list_items(self, couple_id: int, active_only: bool = True) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self.programme_repo.find_by_couple(couple_id, active_only)]

    def reorder(self, couple_id: int, ordered_ids: List[int]) -> int:
        """Réordonne les activités (position = index + 1), appartenances vérifiées d'abord."""
        for item_id in ordered_ids:
            self.get_item(item_id, couple_id)
        for position, item_id in enumerate(ordered_ids, start=1):
            self.programme_repo.update_display_order(item_id, position)
        self.programme_repo.commit()
        self.logger.info(f"Reordered {len(ordered_ids)} programme item(s) for couple {couple_id}")
        return len(ordered_ids)

    def find_conflicts(self, couple_id: int) -> List[Dict[str, Any]]:
        """Paires d'activités actives dont les horaires se chevauchent."""
        items = sorted(self.programme_repo.find_by_couple(couple_id), key=lambda i: (i.starts_at, i.id))
        conflicts = []
        for index, first in enumerate(items):
            for second in items[index + 1:]:
                if first.overlaps(second):
                    conflicts.append({'first': first.to_dict(), 'second': second.to_dict()})
        return conflicts

    def notify_guests(self, couple_id: int, message: str = None) -> int:
        """Prévient tous les invités d'un changement de programme."""
        created = self.notifications.create_bulk(
            couple_id, NotificationType.PROGRAMME_UPDATE,
            title="The wedding programme has been updated",
            content=message
        )
        self.logger.info(f"Programme update sent to {created} guest(s) of couple {couple_id}")
        return created
