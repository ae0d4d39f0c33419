"""QrScan Repository - Persistence des scans de QR codes."""
from typing import List
from models import db, QrScan, Invite


class QrScanRepository:

    @staticmethod
    def find_by_invite(invite_id: int) -> List[QrScan]:
        """Historique des scans d'un invité, plus anciens d'abord."""
        return QrScan.query.filter_by(invite_id=invite_id)\
            .order_by(QrScan.scanned_at.asc()).all()

    @staticmethod
    def find_by_couple(couple_id: int, scan_type: str = None) -> List[QrScan]:
        query = QrScan.query.join(Invite, QrScan.invite_id == Invite.id)\
            .filter(Invite.couple_id == couple_id)
        if scan_type:
            query = query.filter(QrScan.scan_type == scan_type)
        return query.order_by(QrScan.scanned_at.desc()).all()

    @staticmethod
    def add(scan: QrScan) -> QrScan:
        db.session.add(scan)
        return scan
