"""Platform Service - Administration de la plateforme par les super admins."""
import logging
from typing import Dict, Any, List
from models import SuperAdmin, CoupleStatus, SuperAdminStatus, NotFoundError, ValidationError
from repositories.couple_repository import CoupleRepository
from repositories.super_admin_repository import SuperAdminRepository


class PlatformService:

    def __init__(self, couple_repository: CoupleRepository = None,
                 super_admin_repository: SuperAdminRepository = None):
        self.couple_repo = couple_repository or CoupleRepository()
        self.admin_repo = super_admin_repository or SuperAdminRepository()
        self.logger = logging.getLogger(__name__)

    def list_active_admins(self) -> List[Dict[str, Any]]:
        return [admin.to_dict() for admin in self.admin_repo.find_active()]

    def set_admin_status(self, admin_id: int, status: str, actor: SuperAdmin) -> Dict[str, Any]:
        """Active ou suspend un super admin.

        Raises:
            ValidationError: statut inconnu
            ValueError: un admin ne peut pas se suspendre lui-même
        """
        try:
            status = SuperAdminStatus(status)
        except ValueError:
            raise ValidationError('status', f"Unknown status: {status}")
        admin = self.admin_repo.find_by_id(admin_id)
        if not admin:
            raise NotFoundError(f"Super admin {admin_id} not found")
        if status == SuperAdminStatus.SUSPENDED and admin.id == actor.id:
            raise ValueError("A super admin cannot suspend their own account")

        if status == SuperAdminStatus.ACTIVE:
            admin.activate()
        else:
            admin.suspend()
        self.admin_repo.save(admin)
        self.logger.info(f"Super admin {admin.id} set to {admin.status} by super admin {actor.id}")
        return admin.to_dict()

    def set_couple_status(self, couple_id: int, status: str) -> Dict[str, Any]:
        """Suspend, archive ou réactive un mariage (ses comptes suivent)."""
        try:
            status = CoupleStatus(status)
        except ValueError:
            raise ValidationError('status', f"Unknown status: {status}")
        couple = self.couple_repo.find_by_id(couple_id)
        if not couple:
            raise NotFoundError(f"Couple {couple_id} not found")
        couple.status = status.value
        self.couple_repo.save(couple)
        self.logger.info(f"Couple {couple.id} set to {couple.status}")
        return couple.to_dict()
