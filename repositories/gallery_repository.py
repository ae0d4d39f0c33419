"""Gallery Repository - Galeries et métadonnées des médias."""
from typing import Optional, List, Dict, Any
from sqlalchemy import func, case
from models import db, Gallery, Media, MediaType


class GalleryRepository:

    @staticmethod
    def find_by_id(gallery_id: int) -> Optional[Gallery]:
        return db.session.get(Gallery, gallery_id)

    @staticmethod
    def find_by_couple(couple_id: int, active_only: bool = True) -> List[Gallery]:
        query = Gallery.query.filter_by(couple_id=couple_id)
        if active_only:
            query = query.filter_by(is_active=True)
        return query.order_by(Gallery.display_order.asc(), Gallery.name.asc()).all()

    @staticmethod
    def find_media_by_id(media_id: int) -> Optional[Media]:
        return db.session.get(Media, media_id)

    @staticmethod
    def find_media(gallery_id: int, approved: bool = None) -> List[Media]:
        """Médias d'une galerie; approved=None pour tous."""
        query = Media.query.filter_by(gallery_id=gallery_id)
        if approved is not None:
            query = query.filter_by(is_approved=approved)
        return query.order_by(Media.display_order.asc(), Media.created_at.asc(), Media.id.asc()).all()

    @staticmethod
    def get_stats(gallery_id: int) -> Dict[str, Any]:
        """Agrégats d'une galerie en une seule requête."""
        row = db.session.query(
            func.count(Media.id),
            func.sum(case((Media.media_type == MediaType.PHOTO.value, 1), else_=0)),
            func.sum(case((Media.media_type == MediaType.VIDEO.value, 1), else_=0)),
            func.sum(case((Media.is_approved.is_(True), 1), else_=0)),
            func.sum(Media.file_size),
        ).filter(Media.gallery_id == gallery_id).one()
        total = row[0] or 0
        approved = row[3] or 0
        return {
            'total_media': total,
            'photos': row[1] or 0,
            'videos': row[2] or 0,
            'approved': approved,
            'pending': total - approved,
            'total_size': row[4] or 0,
        }

    @staticmethod
    def save(gallery: Gallery) -> Gallery:
        db.session.add(gallery)
        db.session.commit()
        return gallery

    @staticmethod
    def save_media(media: Media) -> Media:
        db.session.add(media)
        db.session.commit()
        return media
