"""Authentication utilities for the wedding platform.

Trois types de comptes peuvent se connecter: couple, organisateur et super
admin. L'identité JWT est `"<kind>:<id>"`; les claims additionnels portent le
couple de rattachement, les rôles et les permissions.
"""
import logging
from datetime import timedelta
from functools import wraps
from flask import jsonify
from flask_jwt_extended import create_access_token, create_refresh_token, get_jwt_identity, verify_jwt_in_request
from models import ActorKind, CoupleStatus, SuperAdminStatus, normalize_email
from repositories.couple_repository import CoupleRepository
from repositories.organizer_repository import OrganizerRepository
from repositories.super_admin_repository import SuperAdminRepository
from services.activity_log_service import ActivityLogService, ACTION_LOGIN

logger = logging.getLogger(__name__)

# Recherche d'un compte par type et identifiant (organisateurs: voir authenticate)
FINDERS_BY_EMAIL = {
    ActorKind.COUPLE.value: CoupleRepository.find_by_email,
    ActorKind.SUPER_ADMIN.value: SuperAdminRepository.find_by_email,
}
FINDERS_BY_ID = {
    ActorKind.COUPLE.value: CoupleRepository.find_by_id,
    ActorKind.ORGANIZER.value: OrganizerRepository.find_by_id,
    ActorKind.SUPER_ADMIN.value: SuperAdminRepository.find_by_id,
}


def can_log_in(principal):
    """Un compte suspendu, archivé ou désactivé ne peut pas se connecter."""
    kind = principal.principal_kind
    if kind == ActorKind.COUPLE.value:
        return principal.status == CoupleStatus.ACTIVE
    if kind == ActorKind.ORGANIZER.value:
        return bool(principal.is_active) and principal.couple.status == CoupleStatus.ACTIVE
    return principal.status == SuperAdminStatus.ACTIVE


AMBIGUOUS_ORGANIZER = "This email belongs to several weddings; specify the wedding subdomain"


def authenticate(kind, email, password, subdomain=None):
    """Retrouve le compte et vérifie le mot de passe.

    Un même email d'organisateur peut exister dans plusieurs mariages. Le
    sous-domaine du couple, s'il est fourni, restreint la recherche; sinon
    seuls les comptes dont le mot de passe correspond sont retenus, et il ne
    doit en rester qu'un.

    Returns:
        tuple: (principal, error_message)
    """
    if kind != ActorKind.ORGANIZER.value:
        principal = FINDERS_BY_EMAIL[kind](email)
        if not principal or not principal.check_password(password):
            return None, "Invalid email or password"
        return principal, None

    if subdomain:
        couple = CoupleRepository.find_by_subdomain(subdomain.strip())
        candidates = [OrganizerRepository.find_by_email_in_couple(email, couple.id)] if couple else []
    else:
        candidates = OrganizerRepository.find_all_by_email(email)
    matches = [o for o in candidates if o is not None and o.check_password(password)]
    if not matches:
        return None, "Invalid email or password"
    if len(matches) > 1:
        return None, AMBIGUOUS_ORGANIZER
    return matches[0], None


def login(kind, email, password, subdomain=None):
    """Authenticate a principal and generate tokens.

    Returns:
        tuple: (tokens_dict, error_message)
    """
    if kind != ActorKind.ORGANIZER.value and kind not in FINDERS_BY_EMAIL:
        return None, f"Unknown account type: {kind}"
    if not email or not password:
        return None, "Email and password are required"

    principal, error = authenticate(kind, normalize_email(email), password, subdomain)
    if error:
        logger.info(f"Failed {kind} login for {email}: {error}")
        return None, error
    if not can_log_in(principal):
        logger.info(f"Refused {kind} login for inactive account {principal.id}")
        return None, "This account is disabled"

    if kind == ActorKind.SUPER_ADMIN.value:
        principal.touch_last_login()
        SuperAdminRepository.save(principal)
    else:
        ActivityLogService().log(
            principal.tenant_id, ACTION_LOGIN,
            actor_id=principal.id, actor_kind=kind
        )

    identity = f"{kind}:{principal.id}"
    claims = {
        'kind': kind,
        'couple_id': principal.tenant_id,
        'roles': principal.get_roles(),
        'permissions': principal.get_permissions(),
    }
    access_token = create_access_token(
        identity=identity,
        additional_claims=claims,
        expires_delta=timedelta(hours=24)
    )
    refresh_token = create_refresh_token(
        identity=identity,
        expires_delta=timedelta(days=30)
    )

    logger.info(f"{kind} {principal.id} logged in")
    return {
        'access_token': access_token,
        'refresh_token': refresh_token,
        'principal': principal.to_dict(),
        'kind': kind,
        'roles': principal.get_roles(),
        'permissions': principal.get_permissions(),
    }, None


def get_current_principal():
    """Get the current authenticated principal from the JWT identity.

    Returns:
        Couple, Organizer, SuperAdmin or None
    """
    identity = get_jwt_identity()
    if not identity or ':' not in identity:
        return None
    kind, _, raw_id = identity.partition(':')
    finder = FINDERS_BY_ID.get(kind)
    if finder is None or not raw_id.isdigit():
        return None
    principal = finder(int(raw_id))
    if principal is None or not can_log_in(principal):
        return None
    return principal


def check_tenant_access(principal, couple_id):
    """Raises PermissionError si le compte n'appartient pas au couple."""
    if principal.principal_kind == ActorKind.SUPER_ADMIN.value:
        return
    if principal.tenant_id != couple_id:
        raise PermissionError("Access denied to this wedding")


def require_permission(permission=None):
    """Décorateur de route: JWT valide + permission (optionnelle).

    Le compte authentifié est passé à la vue en argument nommé `principal`.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            principal = get_current_principal()
            if principal is None:
                return jsonify({'error': 'Account not found or disabled'}), 401
            if permission and not principal.has_permission(permission):
                return jsonify({'error': f'Missing permission: {permission}'}), 403
            return f(*args, principal=principal, **kwargs)
        return decorated_function
    return decorator
