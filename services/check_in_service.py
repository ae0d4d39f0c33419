"""Check-in Service - Scan des QR codes invités le jour J."""
import logging
from datetime import datetime
from typing import Dict, Any
from models import Organizer, QrScan, ScanType, NotFoundError
from repositories.invite_repository import InviteRepository
from repositories.qr_scan_repository import QrScanRepository
from services.activity_log_service import ActivityLogService, ACTION_QR_SCAN


class CheckInService:
    """Enregistre les arrivées des invités scannées par l'équipe."""

    def __init__(self, invite_repository: InviteRepository = None,
                 qr_scan_repository: QrScanRepository = None,
                 activity_log_service: ActivityLogService = None):
        self.invite_repo = invite_repository or InviteRepository()
        self.scan_repo = qr_scan_repository or QrScanRepository()
        self.activity_log = activity_log_service or ActivityLogService()
        self.logger = logging.getLogger(__name__)

    def scan(self, organizer: Organizer, token: str, scan_type: str,
             location: str = None, comment: str = None, now: datetime = None) -> Dict[str, Any]:
        """Scanne le QR code d'un invité.

        Marque la présence pour le type de scan et horodate l'arrivée au
        premier scan seulement.

        Raises:
            PermissionError: organisateur inactif, sans `scan_qr` ou d'un autre couple
            ValueError: token inconnu ou type de scan invalide
        """
        if not organizer.is_active or not organizer.has_permission('scan_qr'):
            raise PermissionError("This account is not allowed to scan QR codes")
        scan_type = ScanType(scan_type)

        invite = self.invite_repo.find_by_qr_token(token) if token else None
        if not invite:
            raise NotFoundError("Unknown QR code")
        if invite.couple_id != organizer.couple_id:
            raise PermissionError("This guest belongs to another wedding")

        now = now or datetime.utcnow()
        first_arrival = invite.arrived_at is None
        if first_arrival:
            invite.arrived_at = now
        if scan_type == ScanType.CEREMONY:
            invite.present_ceremony = True
        else:
            invite.present_reception = True

        scan = QrScan(
            invite_id=invite.id,
            organizer_id=organizer.id,
            scan_type=scan_type.value,
            scanned_at=now,
            location=location,
            comment=comment
        )
        self.scan_repo.add(scan)
        self.invite_repo.save(invite)

        self.logger.info(f"Invite {invite.id} scanned ({scan_type.value}) by organizer {organizer.id}")
        self.activity_log.log(
            invite.couple_id, ACTION_QR_SCAN,
            actor_id=organizer.id, actor_kind='organizer',
            details={'invite_id': invite.id, 'scan_type': scan_type.value, 'first_arrival': first_arrival}
        )
        return {
            'invite': invite.to_dict(),
            'scan': scan.to_dict(),
            'first_arrival': first_arrival,
        }

    def history(self, couple_id: int, scan_type: str = None):
        if scan_type:
            scan_type = ScanType(scan_type).value
        return [s.to_dict() for s in self.scan_repo.find_by_couple(couple_id, scan_type=scan_type)]

    def history_for_invite(self, invite_id: int):
        """Scans d'un invité, plus anciens d'abord."""
        return [s.to_dict() for s in self.scan_repo.find_by_invite(invite_id)]
