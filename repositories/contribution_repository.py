"""Contribution Repository - Persistence des contributions (cadeaux et cagnottes).

Responsabilité (SRP) : Accès aux données des contributions uniquement.
Les agrégats (sommes, moyennes, classements) sont calculés par
`contribution_stats` à partir des lignes retournées ici.
"""
from typing import Optional, List
from models import db, Contribution, Invite


class ContributionRepository:
    """Repository pour la persistence des contributions.

    Pattern: Repository Pattern
    """

    @staticmethod
    def find_by_id(contribution_id: int) -> Optional[Contribution]:
        """Trouve une contribution par son ID."""
        return db.session.get(Contribution, contribution_id)

    @staticmethod
    def find_by_gift(gift_id: int, status: str = None) -> List[Contribution]:
        """Récupère les contributions d'un cadeau, plus anciennes d'abord."""
        query = Contribution.query.filter_by(gift_id=gift_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Contribution.contributed_at.asc(), Contribution.id.asc()).all()

    @staticmethod
    def find_by_pot(pot_id: int, status: str = None) -> List[Contribution]:
        """Récupère les contributions d'une cagnotte, plus anciennes d'abord."""
        query = Contribution.query.filter_by(pot_id=pot_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Contribution.contributed_at.asc(), Contribution.id.asc()).all()

    @staticmethod
    def find_by_invite(invite_id: int) -> List[Contribution]:
        """Récupère les contributions d'un invité, plus récentes d'abord."""
        return Contribution.query.filter_by(invite_id=invite_id)\
            .order_by(Contribution.contributed_at.desc()).all()

    @staticmethod
    def find_by_couple(couple_id: int, status: str = None) -> List[Contribution]:
        """Récupère toutes les contributions des invités d'un couple."""
        query = Contribution.query.join(Invite, Contribution.invite_id == Invite.id)\
            .filter(Invite.couple_id == couple_id)
        if status:
            query = query.filter(Contribution.status == status)
        return query.order_by(Contribution.contributed_at.desc(), Contribution.id.desc()).all()

    @staticmethod
    def save(contribution: Contribution) -> Contribution:
        """Sauvegarde ou met à jour une contribution."""
        db.session.add(contribution)
        db.session.commit()
        return contribution
