"""Organizer Repository - Persistence de l'équipe d'organisation d'un couple."""
from typing import Optional, List
from models import db, Organizer


class OrganizerRepository:

    @staticmethod
    def find_by_id(organizer_id: int) -> Optional[Organizer]:
        """Trouve un organisateur par son ID."""
        return db.session.get(Organizer, organizer_id)

    @staticmethod
    def find_all_by_email(email: str) -> List[Organizer]:
        """Comptes organisateur portant cet email (un par couple au plus)."""
        return Organizer.query.filter_by(email=email).order_by(Organizer.id.asc()).all()

    @staticmethod
    def find_by_email_in_couple(email: str, couple_id: int) -> Optional[Organizer]:
        return Organizer.query.filter_by(email=email, couple_id=couple_id).first()

    @staticmethod
    def find_by_couple(couple_id: int, role: str = None) -> List[Organizer]:
        """Récupère l'équipe d'un couple, éventuellement filtrée par rôle."""
        query = Organizer.query.filter_by(couple_id=couple_id)
        if role:
            query = query.filter_by(role=role)
        return query.order_by(Organizer.last_name.asc(), Organizer.first_name.asc()).all()

    @staticmethod
    def save(organizer: Organizer) -> Organizer:
        db.session.add(organizer)
        db.session.commit()
        return organizer
