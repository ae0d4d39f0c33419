"""Programme Repository - Persistence du programme de la journée."""
from typing import Optional, List
from sqlalchemy import func
from models import db, ProgrammeItem


class ProgrammeRepository:

    @staticmethod
    def find_by_id(item_id: int) -> Optional[ProgrammeItem]:
        return db.session.get(ProgrammeItem, item_id)

    @staticmethod
    def find_by_couple(couple_id: int, active_only: bool = True) -> List[ProgrammeItem]:
        """Activités d'un couple: ordre d'affichage, puis heure de début."""
        query = ProgrammeItem.query.filter_by(couple_id=couple_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return query.order_by(
            ProgrammeItem.display_order.is_(None),
            ProgrammeItem.display_order.asc(),
            ProgrammeItem.starts_at.asc(),
            ProgrammeItem.id.asc()
        ).all()

    @staticmethod
    def next_display_order(couple_id: int) -> int:
        current = db.session.query(func.max(ProgrammeItem.display_order))\
            .filter(ProgrammeItem.couple_id == couple_id).scalar()
        return (current or 0) + 1

    @staticmethod
    def update_display_order(item_id: int, position: int) -> None:
        """Met à jour l'ordre d'une activité sans commit (utilisé en lot)."""
        ProgrammeItem.query.filter_by(id=item_id).update({'display_order': position})

    @staticmethod
    def save(item: ProgrammeItem) -> ProgrammeItem:
        db.session.add(item)
        db.session.commit()
        return item

    @staticmethod
    def delete(item: ProgrammeItem) -> None:
        db.session.delete(item)
        db.session.commit()

    @staticmethod
    def commit() -> None:
        db.session.commit()
