"""Gift Repository - Persistence de la liste de cadeaux.

Responsabilité (SRP) : Accès aux données des cadeaux uniquement.
"""
from typing import Optional, List, Dict, Any
from sqlalchemy import func
from models import db, Gift


class GiftRepository:
    """Repository pour la persistence des cadeaux.

    Pattern: Repository Pattern
    """

    @staticmethod
    def find_by_id(gift_id: int) -> Optional[Gift]:
        """Trouve un cadeau par son ID."""
        return db.session.get(Gift, gift_id)

    @staticmethod
    def find_by_couple(couple_id: int, active_only: bool = True) -> List[Gift]:
        """Récupère les cadeaux d'un couple dans l'ordre d'affichage."""
        query = Gift.query.filter_by(couple_id=couple_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return query.order_by(Gift.display_order.asc(), Gift.name.asc()).all()

    @staticmethod
    def find_pending(couple_id: int) -> List[Gift]:
        """Cadeaux actifs pas encore entièrement reçus."""
        return Gift.query.filter(
            Gift.couple_id == couple_id,
            Gift.is_active.is_(True),
            Gift.received_quantity < Gift.desired_quantity
        ).order_by(Gift.display_order.asc(), Gift.name.asc()).all()

    @staticmethod
    def find_completed(couple_id: int) -> List[Gift]:
        """Cadeaux dont la quantité reçue atteint la quantité souhaitée."""
        return Gift.query.filter(
            Gift.couple_id == couple_id,
            Gift.received_quantity >= Gift.desired_quantity
        ).order_by(Gift.display_order.asc(), Gift.name.asc()).all()

    @staticmethod
    def find_categories(couple_id: int) -> List[str]:
        rows = db.session.query(Gift.category)\
            .filter(Gift.couple_id == couple_id, Gift.category.isnot(None))\
            .distinct().order_by(Gift.category.asc()).all()
        return [row[0] for row in rows]

    @staticmethod
    def count_by_priority(couple_id: int) -> Dict[Any, int]:
        rows = db.session.query(Gift.priority, func.count(Gift.id))\
            .filter(Gift.couple_id == couple_id, Gift.is_active.is_(True))\
            .group_by(Gift.priority).all()
        return {priority: count for priority, count in rows}

    @staticmethod
    def save(gift: Gift) -> Gift:
        """Sauvegarde ou met à jour un cadeau."""
        db.session.add(gift)
        db.session.commit()
        return gift

    @staticmethod
    def update_display_order(gift_id: int, position: int) -> None:
        """Met à jour l'ordre d'un cadeau sans commit (utilisé en lot)."""
        Gift.query.filter_by(id=gift_id).update({'display_order': position})

    @staticmethod
    def commit() -> None:
        db.session.commit()
