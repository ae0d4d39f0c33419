"""Presence Repository - Persistence des snapshots quotidiens de présence."""
from datetime import date, timedelta
from typing import Optional, List
from models import db, PresenceSnapshot


class PresenceRepository:

    @staticmethod
    def find_for_day(couple_id: int, day: date) -> Optional[PresenceSnapshot]:
        """Trouve le snapshot d'un couple pour une date donnée."""
        return PresenceSnapshot.query.filter_by(couple_id=couple_id, snapshot_date=day).first()

    @staticmethod
    def find_latest(couple_id: int) -> Optional[PresenceSnapshot]:
        return PresenceSnapshot.query.filter_by(couple_id=couple_id)\
            .order_by(PresenceSnapshot.snapshot_date.desc()).first()

    @staticmethod
    def find_recent(couple_id: int, until: date, days: int = 30, limit: int = 14) -> List[PresenceSnapshot]:
        """Derniers snapshots ayant un taux, sur une fenêtre de `days` jours."""
        return PresenceSnapshot.query.filter(
            PresenceSnapshot.couple_id == couple_id,
            PresenceSnapshot.presence_rate.isnot(None),
            PresenceSnapshot.snapshot_date >= until - timedelta(days=days),
            PresenceSnapshot.snapshot_date <= until
        ).order_by(PresenceSnapshot.snapshot_date.desc()).limit(limit).all()

    @staticmethod
    def add(snapshot: PresenceSnapshot) -> PresenceSnapshot:
        """Ajoute à la session sans commit (les lots appellent flush/commit)."""
        db.session.add(snapshot)
        return snapshot

    @staticmethod
    def flush() -> None:
        db.session.flush()

    @staticmethod
    def commit() -> None:
        db.session.commit()
