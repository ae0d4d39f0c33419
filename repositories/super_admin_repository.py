"""SuperAdmin Repository - Persistence des administrateurs de la plateforme."""
from typing import Optional, List
from models import db, SuperAdmin, SuperAdminStatus


class SuperAdminRepository:

    @staticmethod
    def find_by_id(admin_id: int) -> Optional[SuperAdmin]:
        return db.session.get(SuperAdmin, admin_id)

    @staticmethod
    def find_by_email(email: str) -> Optional[SuperAdmin]:
        """Trouve un super admin par son email."""
        return SuperAdmin.query.filter_by(email=email).first()

    @staticmethod
    def find_active() -> List[SuperAdmin]:
        return SuperAdmin.query.filter_by(status=SuperAdminStatus.ACTIVE.value)\
            .order_by(SuperAdmin.email.asc()).all()

    @staticmethod
    def save(admin: SuperAdmin) -> SuperAdmin:
        db.session.add(admin)
        db.session.commit()
        return admin
