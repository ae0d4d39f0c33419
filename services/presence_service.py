"""Presence Service - Statistiques de présence et snapshots quotidiens.

Responsabilité (SRP) : présence / RSVP.
- Les valeurs calculées en direct font toujours foi
- Le snapshot du jour n'est qu'un mémo, signalé périmé s'il diverge
"""
import logging
from datetime import date, datetime, timedelta
from typing import Optional, Dict, Any, List, Iterable
from models import PresenceSnapshot, to_money
from presence import compute_live_stats, arrivals_by_hour, predict_rate
from repositories.invite_repository import InviteRepository
from repositories.presence_repository import PresenceRepository

DEFAULT_BATCH_SIZE = 50

# Champs comparés entre snapshot et calcul en direct
SNAPSHOT_FIELDS = ('total_invites', 'confirmed_rsvp', 'present_ceremony',
                   'present_reception', 'presence_rate', 'peak_arrival_hour')


class PresenceService:
    """Service de statistiques de présence.

    Pattern: Service Layer
    """

    def __init__(self, invite_repository: InviteRepository = None,
                 presence_repository: PresenceRepository = None,
                 batch_size: int = DEFAULT_BATCH_SIZE):
        self.invite_repo = invite_repository or InviteRepository()
        self.presence_repo = presence_repository or PresenceRepository()
        self.batch_size = batch_size
        self.logger = logging.getLogger(__name__)

    def get_live_stats(self, couple_id: int) -> Dict[str, Any]:
        """Recalcule les statistiques RSVP / présence depuis les invités."""
        stats = compute_live_stats(self.invite_repo.find_by_couple(couple_id))
        stats['couple_id'] = couple_id
        stats['source'] = 'live'
        return stats

    def _refresh(self, couple_id: int, day: date) -> PresenceSnapshot:
        live = self.get_live_stats(couple_id)
        snapshot = self.presence_repo.find_for_day(couple_id, day)
        if snapshot is None:
            snapshot = PresenceSnapshot(couple_id=couple_id, snapshot_date=day)
        for field in SNAPSHOT_FIELDS:
            setattr(snapshot, field, live[field])
        snapshot.refreshed_at = datetime.utcnow()
        return self.presence_repo.add(snapshot)

    def take_snapshot(self, couple_id: int, day: date = None) -> Dict[str, Any]:
        """Crée ou met à jour le snapshot du jour à partir des valeurs en direct."""
        day = day or date.today()
        snapshot = self._refresh(couple_id, day)
        self.presence_repo.commit()
        self.logger.info(f"Presence snapshot {day.isoformat()} refreshed for couple {couple_id}")
        return snapshot.to_dict()

    def get_presence_rate(self, couple_id: int, day: date = None) -> Dict[str, Any]:
        """Taux de présence en direct, avec le snapshot du jour s'il existe.

        `snapshot_stale` vaut True quand le snapshot diverge du calcul en
        direct; la valeur retournée dans `presence_rate` est toujours la
        valeur en direct.
        `latest_snapshot_date` donne la date du dernier snapshot connu.
        """
        day = day or date.today()
        live = self.get_live_stats(couple_id)
        snapshot = self.presence_repo.find_for_day(couple_id, day)

        stale = None
        if snapshot is not None:
            stale = any(self._normalize(getattr(snapshot, f)) != self._normalize(live[f])
                        for f in SNAPSHOT_FIELDS)
            if stale:
                self.logger.info(f"Presence snapshot {day.isoformat()} for couple {couple_id} is stale")

        latest = self.presence_repo.find_latest(couple_id)
        return {
            'couple_id': couple_id,
            'date': day.isoformat(),
            'presence_rate': live['presence_rate'],
            'attendance_rate': live['attendance_rate'],
            'source': 'live',
            'snapshot': snapshot.to_dict() if snapshot else None,
            'snapshot_stale': stale,
            'latest_snapshot_date': latest.snapshot_date.isoformat() if latest else None,
        }

    @staticmethod
    def _normalize(value):
        if value is None or isinstance(value, int):
            return value
        return to_money(value)

    def get_arrival_analysis(self, couple_id: int) -> Dict[str, Any]:
        invites = self.invite_repo.find_by_couple(couple_id)
        arrivals = [i.arrived_at for i in invites if i.arrived_at is not None]
        live = compute_live_stats(invites)
        return {
            'couple_id': couple_id,
            'total_arrivals': len(arrivals),
            'peak_arrival_hour': live['peak_arrival_hour'],
            'first_arrival': min(arrivals).isoformat() if arrivals else None,
            'last_arrival': max(arrivals).isoformat() if arrivals else None,
            'by_hour': arrivals_by_hour(arrivals),
        }

    def predict_presence_rate(self, couple_id: int, days_ahead: int = 7,
                              today: date = None) -> Optional[Dict[str, Any]]:
        """Prévision du taux de présence par tendance linéaire.

        Utilise les 14 derniers snapshots des 30 derniers jours; None sans
        snapshot exploitable.
        """
        if days_ahead < 0:
            raise ValueError("days_ahead cannot be negative")
        today = today or date.today()
        snapshots = self.presence_repo.find_recent(couple_id, until=today)
        points = [(s.snapshot_date, s.presence_rate) for s in snapshots]
        target_day = today + timedelta(days=days_ahead)
        prediction = predict_rate(points, target_day)
        if prediction is None:
            return None
        return {
            'couple_id': couple_id,
            'target_date': target_day.isoformat(),
            'predicted_presence_rate': prediction,
            'snapshots_used': len(points),
        }

    def batch_refresh_snapshots(self, couple_ids: Iterable[int], day: date = None) -> int:
        """Rafraîchit le snapshot du jour pour plusieurs couples.

        Suite de mises à jour avec flush tous les `batch_size` couples et
        commit final: pas atomique dans son ensemble.
        """
        day = day or date.today()
        refreshed = 0
        for couple_id in couple_ids:
            self._refresh(couple_id, day)
            refreshed += 1
            if refreshed % self.batch_size == 0:
                self.presence_repo.flush()
        self.presence_repo.commit()
        self.logger.info(f"Refreshed {refreshed} presence snapshot(s) for {day.isoformat()}")
        return refreshed

    def list_snapshots(self, couple_id: int, until: date = None) -> List[Dict[str, Any]]:
        until = until or date.today()
        return [s.to_dict() for s in self.presence_repo.find_recent(couple_id, until=until)]
