"""Pot Repository - Persistence des cagnottes."""
from typing import Optional, List
from models import db, Pot


class PotRepository:

    @staticmethod
    def find_by_id(pot_id: int) -> Optional[Pot]:
        """Trouve une cagnotte par son ID."""
        return db.session.get(Pot, pot_id)

    @staticmethod
    def find_by_couple(couple_id: int, active_only: bool = True) -> List[Pot]:
        """Récupère les cagnottes d'un couple dans l'ordre d'affichage."""
        query = Pot.query.filter_by(couple_id=couple_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return query.order_by(Pot.display_order.asc(), Pot.name.asc()).all()

    @staticmethod
    def save(pot: Pot) -> Pot:
        db.session.add(pot)
        db.session.commit()
        return pot

    @staticmethod
    def update_display_order(pot_id: int, position: int) -> None:
        """Met à jour l'ordre d'une cagnotte sans commit (utilisé en lot)."""
        Pot.query.filter_by(id=pot_id).update({'display_order': position})

    @staticmethod
    def commit() -> None:
        db.session.commit()
