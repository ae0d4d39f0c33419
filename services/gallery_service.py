"""Gallery Service - Galeries et métadonnées des photos / vidéos.

Les fichiers eux-mêmes sont hébergés ailleurs: on ne stocke que leur URL et
leurs métadonnées. Les dépôts d'invités ne sont possibles que dans une
galerie de type `guests` et attendent l'approbation du couple.
"""
import logging
from typing import Dict, Any, List, Optional
from models import Gallery, Media, GalleryType, MediaType, NotFoundError, ValidationError
from repositories.gallery_repository import GalleryRepository
from services.activity_log_service import ActivityLogService, ACTION_PHOTO_UPLOAD

GALLERY_FIELDS = ('name', 'description', 'gallery_type', 'cover_url', 'display_order', 'is_active')
MEDIA_FIELDS = ('file_name', 'file_url', 'thumbnail_url', 'format', 'file_size', 'width', 'height',
                'duration_seconds', 'description', 'tags')


class GalleryService:

    def __init__(self, gallery_repository: GalleryRepository = None,
                 activity_log_service: ActivityLogService = None):
        self.gallery_repo = gallery_repository or GalleryRepository()
        self.activity_log = activity_log_service or ActivityLogService()
        self.logger = logging.getLogger(__name__)

    # ---------- Galeries ----------

    def _apply_gallery_fields(self, gallery: Gallery, data: Dict[str, Any]) -> None:
        values = {field: data.get(field, getattr(gallery, field)) for field in GALLERY_FIELDS}
        values['name'] = (values['name'] or '').strip()
        if not values['name']:
            raise ValidationError('name', 'The gallery name is required')
        try:
            values['gallery_type'] = GalleryType(values['gallery_type'] or GalleryType.OFFICIAL).value
        except ValueError:
            raise ValidationError('gallery_type', f"Unknown gallery type: {values['gallery_type']}")
        values['is_active'] = bool(values['is_active'])
        for field, value in values.items():
            setattr(gallery, field, value)

    def create_gallery(self, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        gallery = Gallery(couple_id=couple_id, is_active=True)
        self._apply_gallery_fields(gallery, data)
        self.gallery_repo.save(gallery)
        self.logger.info(f"Gallery {gallery.id} '{gallery.name}' created for couple {couple_id}")
        return gallery.to_dict()

    def update_gallery(self, gallery_id: int, couple_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        gallery = self.get_gallery(gallery_id, couple_id)
        self._apply_gallery_fields(gallery, data)
        self.gallery_repo.save(gallery)
        self.logger.info(f"Gallery {gallery.id} updated")
        return gallery.to_dict()

    def get_gallery(self, gallery_id: int, couple_id: int = None) -> Gallery:
        gallery = self.gallery_repo.find_by_id(gallery_id)
        if not gallery:
            raise NotFoundError(f"Gallery {gallery_id} not found")
        if couple_id is not None and gallery.couple_id != couple_id:
            raise PermissionError("Access denied to this gallery")
        return gallery

    def list_galleries(self, couple_id: int, active_only: bool = True) -> List[Dict[str, Any]]:
        galleries = []
        for gallery in self.gallery_repo.find_by_couple(couple_id, active_only):
            entry = gallery.to_dict()
            entry['stats'] = self.gallery_repo.get_stats(gallery.id)
            galleries.append(entry)
        return galleries

    def get_stats(self, gallery_id: int, couple_id: int = None) -> Dict[str, Any]:
        self.get_gallery(gallery_id, couple_id)
        stats = self.gallery_repo.get_stats(gallery_id)
        stats['gallery_id'] = gallery_id
        return stats

    # ---------- Médias ----------

    def _build_media(self, gallery: Gallery, data: Dict[str, Any]) -> Media:
        values = {field: data.get(field) for field in MEDIA_FIELDS}
        try:
            values['media_type'] = MediaType(data.get('type') or MediaType.PHOTO).value
        except ValueError:
            raise ValidationError('type', f"Unknown media type: {data.get('type')}")
        for field in ('file_size', 'width', 'height', 'duration_seconds'):
            if values[field] is not None:
                try:
                    values[field] = int(values[field])
                except (TypeError, ValueError):
                    raise ValidationError(field, f"Invalid {field}: {values[field]!r}")
        if values['tags'] is not None and not isinstance(values['tags'], list):
            raise ValidationError('tags', 'Tags must be a list')
        media = Media(gallery_id=gallery.id, **values)
        media.validate()
        return media

    def add_media(self, gallery_id: int, couple_id: int, data: Dict[str, Any],
                  organizer_id: Optional[int] = None, actor_kind: str = None,
                  actor_id: int = None) -> Dict[str, Any]:
        """Ajoute un média par l'équipe du couple (approuvé d'office)."""
        gallery = self.get_gallery(gallery_id, couple_id)
        media = self._build_media(gallery, data)
        media.organizer_id = organizer_id
        media.is_approved = True
        return self._store(gallery, media, actor_kind, actor_id)

    def add_guest_media(self, gallery_id: int, invite, data: Dict[str, Any]) -> Dict[str, Any]:
        """Dépôt d'un invité: galerie `guests` active uniquement, en attente d'approbation.

        Raises:
            PermissionError: galerie d'un autre couple, inactive ou réservée au couple
        """
        gallery = self.get_gallery(gallery_id, invite.couple_id)
        if not gallery.is_active or gallery.gallery_type != GalleryType.GUESTS:
            raise PermissionError("Guests cannot upload to this gallery")
        media = self._build_media(gallery, data)
        media.invite_id = invite.id
        media.is_approved = False
        return self._store(gallery, media, 'invite', invite.id)

    def _store(self, gallery: Gallery, media: Media, actor_kind: Optional[str], actor_id: Optional[int]) -> Dict[str, Any]:
        self.gallery_repo.save_media(media)
        self.logger.info(f"Media {media.id} ({media.media_type}) added to gallery {gallery.id}")
        self.activity_log.log(
            gallery.couple_id, ACTION_PHOTO_UPLOAD,
            actor_id=actor_id, actor_kind=actor_kind,
            details={'gallery_id': gallery.id, 'media_id': media.id, 'type': media.media_type,
                     'approved': media.is_approved}
        )
        return media.to_dict()

    def approve_media(self, media_id: int, couple_id: int) -> Dict[str, Any]:
        media = self.gallery_repo.find_media_by_id(media_id)
        if not media:
            raise NotFoundError(f"Media {media_id} not found")
        if media.gallery.couple_id != couple_id:
            raise PermissionError("Access denied to this media")
        if not media.is_approved:
            media.is_approved = True
            self.gallery_repo.save_media(media)
            self.logger.info(f"Media {media.id} approved")
        return media.to_dict()

    def list_media(self, gallery_id: int, couple_id: int = None, approved: bool = None) -> List[Dict[str, Any]]:
        self.get_gallery(gallery_id, couple_id)
        return [m.to_dict() for m in self.gallery_repo.find_media(gallery_id, approved=approved)]

    def list_public_media(self, gallery_id: int, couple_id: int) -> List[Dict[str, Any]]:
        """Médias approuvés d'une galerie active, pour les invités."""
        gallery = self.get_gallery(gallery_id, couple_id)
        if not gallery.is_active:
            raise NotFoundError(f"Gallery {gallery_id} not found")
        return [m.to_dict() for m in self.gallery_repo.find_media(gallery_id, approved=True)]
