"""Organizer Service - Équipe d'organisation d'un couple."""
import logging
from typing import Dict, Any, List
from models import Organizer, OrganizerRole, ROLE_PERMISSIONS, ValidationError, normalize_email
from repositories.organizer_repository import OrganizerRepository

MIN_PASSWORD_LENGTH = 8


class OrganizerService:

    def __init__(self, organizer_repository: OrganizerRepository = None):
        self.organizer_repo = organizer_repository or OrganizerRepository()
        self.logger = logging.getLogger(__name__)

    def list_team(self, couple_id: int, role: str = None) -> List[Dict[str, Any]]:
        if role:
            role = OrganizerRole(role).value
        return [o.to_dict() for o in self.organizer_repo.find_by_couple(couple_id, role=role)]

    def create_organizer(self, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Ajoute un membre à l'équipe.

        L'email est unique au sein d'un couple; la liste de permissions
        explicite, si fournie, doit rester dans celles du rôle.

        Raises:
            ValidationError: champ manquant, email déjà utilisé, rôle ou permission inconnus
        """
        first_name = (data.get('first_name') or '').strip()
        last_name = (data.get('last_name') or '').strip()
        if not first_name or not last_name:
            raise ValidationError('last_name', 'First name and last name are required')
        email = normalize_email(data.get('email'))
        if not email or '@' not in email:
            raise ValidationError('email', 'A valid email is required')
        if self.organizer_repo.find_by_email_in_couple(email, couple_id):
            raise ValidationError('email', 'This email is already used by a team member')
        password = data.get('password') or ''
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError('password', f'The password must have at least {MIN_PASSWORD_LENGTH} characters')
        try:
            role = OrganizerRole(data.get('role') or OrganizerRole.SCANNER)
        except ValueError:
            raise ValidationError('role', f"Unknown role: {data.get('role')}")
        permissions = data.get('permissions')
        if permissions is not None:
            unknown = [p for p in permissions if p not in ROLE_PERMISSIONS[role]]
            if unknown:
                raise ValidationError('permissions', f"Not available for role {role.value}: {', '.join(unknown)}")

        organizer = Organizer(
            couple_id=couple_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=role.value,
            permissions=permissions,
            is_active=True
        )
        organizer.set_password(password)
        self.organizer_repo.save(organizer)
        self.logger.info(f"Organizer {organizer.id} ({organizer.role}) added to couple {couple_id}")
        return organizer.to_dict()
