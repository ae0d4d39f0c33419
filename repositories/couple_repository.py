"""Couple Repository - Gestion de la persistence des couples (tenants).

Responsabilité (SRP) : Accès aux données des couples uniquement.
"""
from typing import Optional, List
from models import db, Couple, CoupleStatus


class CoupleRepository:
    """Repository pour la persistence des couples.

    Pattern: Repository Pattern
    """

    @staticmethod
    def find_by_id(couple_id: int) -> Optional[Couple]:
        """Trouve un couple par son ID."""
        return db.session.get(Couple, couple_id)

    @staticmethod
    def find_by_email(email: str) -> Optional[Couple]:
        """Trouve un couple par l'email de son compte administrateur."""
        return Couple.query.filter_by(admin_email=email).first()

    @staticmethod
    def find_by_subdomain(subdomain: str) -> Optional[Couple]:
        return Couple.query.filter_by(subdomain=subdomain).first()

    @staticmethod
    def find_active() -> List[Couple]:
        """Récupère les couples actifs, mariage le plus proche d'abord."""
        return Couple.query.filter_by(status=CoupleStatus.ACTIVE.value)\
            .order_by(Couple.wedding_date.asc()).all()

    @staticmethod
    def save(couple: Couple) -> Couple:
        """Sauvegarde ou met à jour un couple."""
        db.session.add(couple)
        db.session.commit()
        return couple
