"""Invite Repository - Gestion de la persistence des invités.

Responsabilité (SRP) : Accès aux données des invités uniquement.
"""
from typing import Optional, List, Dict
from sqlalchemy import func, or_
from models import db, Invite


class InviteRepository:
    """Repository pour la persistence des invités.

    Pattern: Repository Pattern
    """

    @staticmethod
    def find_by_id(invite_id: int) -> Optional[Invite]:
        """Trouve un invité par son ID."""
        if invite_id is None:
            return None
        return db.session.get(Invite, invite_id)

    @staticmethod
    def find_by_qr_token(token: str) -> Optional[Invite]:
        """Trouve un invité par son token QR."""
        return Invite.query.filter_by(qr_token=token).first()

    @staticmethod
    def qr_token_exists(token: str) -> bool:
        return db.session.query(Invite.id).filter_by(qr_token=token).first() is not None

    @staticmethod
    def find_by_couple(couple_id: int, rsvp_status: str = None) -> List[Invite]:
        """Récupère les invités d'un couple, triés par nom."""
        query = Invite.query.filter_by(couple_id=couple_id)
        if rsvp_status:
            query = query.filter_by(rsvp_status=rsvp_status)
        return query.order_by(Invite.last_name.asc(), Invite.first_name.asc()).all()

    @staticmethod
    def search_by_name(couple_id: int, term: str) -> List[Invite]:
        """Recherche insensible à la casse sur le prénom ou le nom."""
        pattern = f"%{term.lower()}%"
        return Invite.query.filter(
            Invite.couple_id == couple_id,
            or_(func.lower(Invite.first_name).like(pattern),
                func.lower(Invite.last_name).like(pattern))
        ).order_by(Invite.last_name.asc(), Invite.first_name.asc()).all()

    @staticmethod
    def count_by_rsvp_status(couple_id: int) -> Dict[Optional[str], int]:
        """Compte les invités par statut RSVP (clé None = pas de réponse)."""
        rows = db.session.query(Invite.rsvp_status, func.count(Invite.id))\
            .filter(Invite.couple_id == couple_id)\
            .group_by(Invite.rsvp_status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def save(invite: Invite) -> Invite:
        """Sauvegarde ou met à jour un invité."""
        db.session.add(invite)
        db.session.commit()
        return invite
