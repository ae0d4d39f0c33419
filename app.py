"""Flask backend for the wedding planning platform.

Architecture:
- API Layer (app.py): Routes HTTP, validation des entrées, codes d'erreur
- Service Layer (services/): Logique métier
- Repository Layer (repositories/): Accès données
- Domain Layer (models, contribution_stats, presence): Entités et calculs

Erreurs: ValidationError -> 400 {error, field}, NotFoundError -> 404,
ValueError -> 400, PermissionError -> 403, autre -> 500.
"""
from datetime import date
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager, jwt_required, create_access_token, get_jwt
from flask_wtf.csrf import generate_csrf
from werkzeug.exceptions import HTTPException
import os
import logging

from models import db, ValidationError, NotFoundError, ActorKind
from auth import login, get_current_principal, check_tenant_access, require_permission
from csrf_decorator import csrf_protected

# Import des services et repositories (DIP)
from services.activity_log_service import ActivityLogService
from services.notification_service import NotificationService
from services.contribution_service import ContributionService
from services.statistics_service import StatisticsService
from services.registry_service import RegistryService
from services.invite_service import InviteService
from services.check_in_service import CheckInService
from services.presence_service import PresenceService
from services.quiz_service import QuizService
from services.poll_service import PollService
from services.programme_service import ProgrammeService
from services.message_service import MessageService
from services.gallery_service import GalleryService
from services.organizer_service import OrganizerService
from services.platform_service import PlatformService
from repositories.couple_repository import CoupleRepository


def env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Configure basic logging so INFO logs appear in the Flask console by default
logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logging.getLogger('werkzeug').setLevel(logging.INFO)

app = Flask(__name__, static_folder=None)

# Configuration
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['JWT_SECRET_KEY'] = os.environ.get('JWT_SECRET_KEY', 'jwt-secret-key-change-in-production')
app.config['JWT_TOKEN_LOCATION'] = ['headers']
app.config['JWT_HEADER_NAME'] = 'Authorization'
app.config['JWT_HEADER_TYPE'] = 'Bearer'
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///wedding.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['WTF_CSRF_ENABLED'] = env_flag('WTF_CSRF_ENABLED', True)
app.config['PRESENCE_SNAPSHOT_BATCH_SIZE'] = int(os.environ.get('PRESENCE_SNAPSHOT_BATCH_SIZE', '50'))
app.config['NOTIFICATION_BATCH_SIZE'] = int(os.environ.get('NOTIFICATION_BATCH_SIZE', '50'))

# Initialize extensions
CORS(app,
     supports_credentials=True,
     origins=os.environ.get('CORS_ORIGINS', '*'),
     allow_headers=['Content-Type', 'Authorization', 'X-CSRF-Token'])
db.init_app(app)
jwt = JWTManager(app)


# JWT error handlers
@jwt.invalid_token_loader
def invalid_token_callback(error):
    return jsonify({'error': 'Invalid token', 'message': str(error)}), 422


@jwt.unauthorized_loader
def missing_token_callback(error):
    return jsonify({'error': 'Authorization required', 'message': str(error)}), 401


@jwt.expired_token_loader
def expired_token_callback(jwt_header, jwt_payload):
    return jsonify({'error': 'Token has expired'}), 401


# Create tables
with app.app_context():
    db.create_all()

# -------------------- Service Layer Initialization (DIP) --------------------

activity_log_service = ActivityLogService()
notification_service = NotificationService(batch_size=app.config['NOTIFICATION_BATCH_SIZE'])
contribution_service = ContributionService(
    activity_log_service=activity_log_service,
    notification_service=notification_service
)
statistics_service = StatisticsService()
registry_service = RegistryService()
invite_service = InviteService(
    activity_log_service=activity_log_service,
    notification_service=notification_service
)
check_in_service = CheckInService(activity_log_service=activity_log_service)
presence_service = PresenceService(batch_size=app.config['PRESENCE_SNAPSHOT_BATCH_SIZE'])
quiz_service = QuizService()
poll_service = PollService()
programme_service = ProgrammeService(notification_service=notification_service)
message_service = MessageService(notification_service=notification_service)
gallery_service = GalleryService(activity_log_service=activity_log_service)
organizer_service = OrganizerService()
platform_service = PlatformService()
couple_repository = CoupleRepository()


# -------------------- error handlers --------------------

@app.errorhandler(ValidationError)
def _handle_validation_error(e):
    db.session.rollback()
    return jsonify(e.to_dict()), 400


@app.errorhandler(NotFoundError)
def _handle_not_found(e):
    db.session.rollback()
    return jsonify({'error': str(e)}), 404


@app.errorhandler(ValueError)
def _handle_value_error(e):
    db.session.rollback()
    return jsonify({'error': str(e)}), 400


@app.errorhandler(PermissionError)
def _handle_permission_error(e):
    db.session.rollback()
    return jsonify({'error': str(e) or 'Forbidden'}), 403


@app.errorhandler(Exception)
def _handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return jsonify({'error': e.description}), e.code
    logging.getLogger(__name__).exception('Unhandled exception in request')
    db.session.rollback()
    return jsonify({'error': 'Internal server error'}), 500


# -------------------- helpers --------------------

def couple_scope(principal, couple_id):
    """Vérifie l'accès du compte au couple puis son existence."""
    check_tenant_access(principal, couple_id)
    couple = couple_repository.find_by_id(couple_id)
    if not couple:
        raise NotFoundError(f"Couple {couple_id} not found")
    return couple


def json_body():
    return request.get_json(silent=True) or {}


def actor_of(principal):
    return {'actor_id': principal.id, 'actor_kind': principal.principal_kind}


def day_arg():
    raw = request.args.get('date')
    return date.fromisoformat(raw) if raw else None


def guest_invite(token, module=None):
    """Invité du lien d'invitation; le module doit être activé pour son mariage."""
    invite = invite_service.get_by_token(token)
    if module and not invite.couple.has_module(module):
        raise PermissionError(f"The '{module}' module is disabled for this wedding")
    return invite


def flag_arg(name):
    return request.args.get(name, 'false').lower() == 'true'


# ==================== AUTHENTICATION ENDPOINTS ====================

@app.route('/api/auth/login', methods=['POST'])
def api_login():
    """Login as a couple, an organizer or a super admin."""
    data = json_body()
    tokens, error = login(data.get('kind', ActorKind.COUPLE.value), data.get('email'), data.get('password'),
                          subdomain=data.get('subdomain'))
    if error:
        return jsonify({'error': error}), 401
    return jsonify(tokens), 200


@app.route('/api/auth/refresh', methods=['POST'])
@jwt_required(refresh=True)
def api_refresh():
    """Issue a new access token with up-to-date permissions."""
    principal = get_current_principal()
    if not principal:
        return jsonify({'error': 'Account not found or disabled'}), 401
    access_token = create_access_token(
        identity=f"{principal.principal_kind}:{principal.id}",
        additional_claims={
            'kind': principal.principal_kind,
            'couple_id': principal.tenant_id,
            'roles': principal.get_roles(),
            'permissions': principal.get_permissions(),
        }
    )
    return jsonify({'access_token': access_token}), 200


@app.route('/api/auth/me', methods=['GET'])
@require_permission()
def api_me(principal):
    return jsonify({
        'kind': principal.principal_kind,
        'principal': principal.to_dict(),
        'roles': principal.get_roles(),
        'permissions': principal.get_permissions(),
        'token_claims': {k: get_jwt().get(k) for k in ('kind', 'couple_id')},
    }), 200


@app.route('/api/csrf-token', methods=['GET'])
def api_csrf_token():
    """Token CSRF pour les formulaires publics des invités."""
    return jsonify({'csrf_token': generate_csrf()}), 200


# ==================== REGISTRY (GIFTS & POTS) ====================

@app.route('/api/couples/<int:couple_id>/gifts', methods=['GET'])
@require_permission()
def api_list_gifts(couple_id, principal):
    couple_scope(principal, couple_id)
    status = request.args.get('status')
    if status == 'pending':
        gifts = registry_service.list_pending_gifts(couple_id)
    elif status == 'completed':
        gifts = registry_service.list_completed_gifts(couple_id)
    else:
        include_inactive = request.args.get('all', 'false').lower() == 'true'
        gifts = registry_service.list_gifts(couple_id, active_only=not include_inactive)
    return jsonify({'gifts': gifts}), 200


@app.route('/api/couples/<int:couple_id>/gifts', methods=['POST'])
@require_permission('manage_registry')
def api_create_gift(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(registry_service.create_gift(couple_id, json_body())), 201


@app.route('/api/couples/<int:couple_id>/gifts/<int:gift_id>', methods=['PUT'])
@require_permission('manage_registry')
def api_update_gift(couple_id, gift_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(registry_service.update_gift(gift_id, couple_id, json_body())), 200


@app.route('/api/couples/<int:couple_id>/gifts/reorder', methods=['POST'])
@require_permission('manage_registry')
def api_reorder_gifts(couple_id, principal):
    couple_scope(principal, couple_id)
    count = registry_service.reorder_gifts(couple_id, json_body().get('ids', []))
    return jsonify({'reordered': count}), 200


@app.route('/api/couples/<int:couple_id>/pots', methods=['GET'])
@require_permission()
def api_list_pots(couple_id, principal):
    couple_scope(principal, couple_id)
    include_inactive = request.args.get('all', 'false').lower() == 'true'
    return jsonify({'pots': registry_service.list_pots(couple_id, active_only=not include_inactive)}), 200


@app.route('/api/couples/<int:couple_id>/pots', methods=['POST'])
@require_permission('manage_registry')
def api_create_pot(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(registry_service.create_pot(couple_id, json_body())), 201


@app.route('/api/couples/<int:couple_id>/pots/<int:pot_id>', methods=['PUT'])
@require_permission('manage_registry')
def api_update_pot(couple_id, pot_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(registry_service.update_pot(pot_id, couple_id, json_body())), 200


@app.route('/api/couples/<int:couple_id>/pots/reorder', methods=['POST'])
@require_permission('manage_registry')
def api_reorder_pots(couple_id, principal):
    couple_scope(principal, couple_id)
    count = registry_service.reorder_pots(couple_id, json_body().get('ids', []))
    return jsonify({'reordered': count}), 200


@app.route('/api/couples/<int:couple_id>/pots/closest-to-goal', methods=['GET'])
@require_permission('view_stats')
def api_pots_closest_to_goal(couple_id, principal):
    couple_scope(principal, couple_id)
    limit = request.args.get('limit', 3, type=int)
    return jsonify({'pots': registry_service.list_pots_closest_to_goal(couple_id, limit=limit)}), 200


@app.route('/api/couples/<int:couple_id>/pots/below-goal', methods=['GET'])
@require_permission('view_stats')
def api_pots_below_goal(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'pots': registry_service.list_pots_below_goal(couple_id)}), 200


@app.route('/api/couples/<int:couple_id>/registry/summary', methods=['GET'])
@require_permission('view_stats')
def api_registry_summary(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(registry_service.get_registry_summary(couple_id)), 200


# ==================== CONTRIBUTIONS ====================

@app.route('/api/couples/<int:couple_id>/contributions', methods=['GET'])
@require_permission('view_stats')
def api_list_contributions(couple_id, principal):
    couple_scope(principal, couple_id)
    gift_id = request.args.get('gift_id', type=int)
    pot_id = request.args.get('pot_id', type=int)
    if gift_id is not None:
        registry_service.get_gift(gift_id, couple_id)
        return jsonify({'contributions': contribution_service.list_for_gift(gift_id)}), 200
    if pot_id is not None:
        registry_service.get_pot(pot_id, couple_id)
        return jsonify({'contributions': contribution_service.list_for_pot(pot_id)}), 200
    status = request.args.get('status')
    return jsonify({'contributions': contribution_service.list_for_couple(couple_id, status=status)}), 200


@app.route('/api/couples/<int:couple_id>/contributions', methods=['POST'])
@require_permission('manage_registry')
def api_record_contribution(couple_id, principal):
    """Enregistre une contribution pour le compte d'un invité (saisie par le couple)."""
    couple_scope(principal, couple_id)
    data = json_body()
    invite = invite_service.get_invite(data.get('invite_id'), couple_id)
    contribution = contribution_service.create_contribution(
        invite.id,
        gift_id=data.get('gift_id'),
        pot_id=data.get('pot_id'),
        amount=data.get('amount'),
        message=data.get('message')
    )
    return jsonify(contribution), 201


@app.route('/api/couples/<int:couple_id>/contributions/<int:contribution_id>/<action>', methods=['POST'])
@require_permission('manage_registry')
def api_contribution_transition(couple_id, contribution_id, action, principal):
    """Transition de statut: confirm, deliver ou cancel."""
    couple_scope(principal, couple_id)
    transitions = {
        'confirm': contribution_service.confirm,
        'deliver': contribution_service.deliver,
        'cancel': contribution_service.cancel,
    }
    handler = transitions.get(action)
    if handler is None:
        return jsonify({'error': f'Unknown action: {action}'}), 404
    return jsonify(handler(contribution_id, couple_id=couple_id, **actor_of(principal))), 200


# ==================== STATISTICS ====================

@app.route('/api/couples/<int:couple_id>/gifts/<int:gift_id>/stats', methods=['GET'])
@require_permission('view_stats')
def api_gift_stats(couple_id, gift_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(statistics_service.get_gift_stats(gift_id, couple_id=couple_id)), 200


@app.route('/api/couples/<int:couple_id>/pots/<int:pot_id>/stats', methods=['GET'])
@require_permission('view_stats')
def api_pot_stats(couple_id, pot_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(statistics_service.get_pot_stats(pot_id, couple_id=couple_id)), 200


@app.route('/api/couples/<int:couple_id>/gifts/<int:gift_id>/leaderboard', methods=['GET'])
@require_permission('view_stats')
def api_gift_leaderboard(couple_id, gift_id, principal):
    couple_scope(principal, couple_id)
    limit = request.args.get('limit', type=int)
    return jsonify({'leaderboard': statistics_service.get_leaderboard(
        gift_id=gift_id, couple_id=couple_id, limit=limit)}), 200


@app.route('/api/couples/<int:couple_id>/pots/<int:pot_id>/leaderboard', methods=['GET'])
@require_permission('view_stats')
def api_pot_leaderboard(couple_id, pot_id, principal):
    couple_scope(principal, couple_id)
    limit = request.args.get('limit', type=int)
    return jsonify({'leaderboard': statistics_service.get_leaderboard(
        pot_id=pot_id, couple_id=couple_id, limit=limit)}), 200


@app.route('/api/couples/<int:couple_id>/leaderboard', methods=['GET'])
@require_permission('view_stats')
def api_couple_leaderboard(couple_id, principal):
    couple_scope(principal, couple_id)
    limit = request.args.get('limit', type=int)
    return jsonify({'leaderboard': statistics_service.get_couple_leaderboard(couple_id, limit=limit)}), 200


@app.route('/api/couples/<int:couple_id>/gifts/<int:gift_id>/distribution', methods=['GET'])
@require_permission('view_stats')
def api_gift_distribution(couple_id, gift_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'distribution': statistics_service.get_distribution(
        gift_id=gift_id, couple_id=couple_id)}), 200


@app.route('/api/couples/<int:couple_id>/pots/<int:pot_id>/distribution', methods=['GET'])
@require_permission('view_stats')
def api_pot_distribution(couple_id, pot_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'distribution': statistics_service.get_distribution(
        pot_id=pot_id, couple_id=couple_id)}), 200


@app.route('/api/couples/<int:couple_id>/distribution', methods=['GET'])
@require_permission('view_stats')
def api_couple_distribution(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'distribution': statistics_service.get_distribution(couple_id=couple_id)}), 200


@app.route('/api/couples/<int:couple_id>/contributions/stats', methods=['GET'])
@require_permission('view_stats')
def api_contribution_overview(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(statistics_service.get_couple_overview(couple_id)), 200


# ==================== PRESENCE ====================

@app.route('/api/couples/<int:couple_id>/presence', methods=['GET'])
@require_permission('view_stats')
def api_presence(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(presence_service.get_live_stats(couple_id)), 200


@app.route('/api/couples/<int:couple_id>/presence/rate', methods=['GET'])
@require_permission('view_stats')
def api_presence_rate(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(presence_service.get_presence_rate(couple_id, day_arg())), 200


@app.route('/api/couples/<int:couple_id>/presence/snapshot', methods=['POST'])
@require_permission('view_stats')
def api_presence_snapshot(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(presence_service.take_snapshot(couple_id, day_arg())), 201


@app.route('/api/couples/<int:couple_id>/presence/snapshots', methods=['GET'])
@require_permission('view_stats')
def api_presence_snapshots(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'snapshots': presence_service.list_snapshots(couple_id, day_arg())}), 200


@app.route('/api/couples/<int:couple_id>/presence/prediction', methods=['GET'])
@require_permission('view_stats')
def api_presence_prediction(couple_id, principal):
    couple_scope(principal, couple_id)
    days = request.args.get('days', 7, type=int)
    prediction = presence_service.predict_presence_rate(couple_id, days_ahead=days)
    if prediction is None:
        return jsonify({'prediction': None, 'reason': 'No presence snapshot available'}), 200
    return jsonify({'prediction': prediction}), 200


@app.route('/api/couples/<int:couple_id>/presence/arrivals', methods=['GET'])
@require_permission('view_stats')
def api_presence_arrivals(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(presence_service.get_arrival_analysis(couple_id)), 200


# ==================== GUESTS & CHECK-IN ====================

@app.route('/api/couples/<int:couple_id>/invites', methods=['GET'])
@require_permission('view_guests')
def api_list_invites(couple_id, principal):
    couple_scope(principal, couple_id)
    term = request.args.get('search')
    if term:
        return jsonify({'invites': invite_service.search(couple_id, term)}), 200
    return jsonify({'invites': invite_service.list_invites(couple_id, request.args.get('rsvp_status'))}), 200


@app.route('/api/couples/<int:couple_id>/invites', methods=['POST'])
@require_permission('edit_guests')
def api_create_invite(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(invite_service.create_invite(couple_id, json_body())), 201


@app.route('/api/couples/<int:couple_id>/invites/summary', methods=['GET'])
@require_permission('view_guests')
def api_invites_summary(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(invite_service.rsvp_summary(couple_id)), 200


@app.route('/api/couples/<int:couple_id>/checkin', methods=['POST'])
@require_permission('scan_qr')
def api_checkin(couple_id, principal):
    """Scan d'un QR code invité (organisateurs uniquement)."""
    couple_scope(principal, couple_id)
    if principal.principal_kind != ActorKind.ORGANIZER.value:
        return jsonify({'error': 'Only organizers can scan QR codes'}), 403
    data = json_body()
    result = check_in_service.scan(
        principal, data.get('token'), data.get('scan_type'),
        location=data.get('location'), comment=data.get('comment')
    )
    return jsonify(result), 200


@app.route('/api/couples/<int:couple_id>/checkin/history', methods=['GET'])
@require_permission('scan_qr')
def api_checkin_history(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'scans': check_in_service.history(couple_id, request.args.get('scan_type'))}), 200


@app.route('/api/couples/<int:couple_id>/invites/<int:invite_id>/scans', methods=['GET'])
@require_permission('view_guests')
def api_invite_scans(couple_id, invite_id, principal):
    couple_scope(principal, couple_id)
    invite = invite_service.get_invite(invite_id, couple_id)
    return jsonify({'scans': check_in_service.history_for_invite(invite.id)}), 200


# ==================== QUIZZES & POLLS ====================

@app.route('/api/couples/<int:couple_id>/quizzes/<int:quiz_id>/stats', methods=['GET'])
@require_permission('view_stats')
def api_quiz_stats(couple_id, quiz_id, principal):
    couple_scope(principal, couple_id)
    stats = quiz_service.get_statistics(quiz_id, couple_id)
    stats['distribution'] = quiz_service.get_score_distribution(quiz_id, couple_id)
    stats['ranking'] = quiz_service.get_ranking(quiz_id, couple_id, limit=request.args.get('limit', 10, type=int))
    return jsonify(stats), 200


@app.route('/api/couples/<int:couple_id>/polls/<int:poll_id>/results', methods=['GET'])
@require_permission('view_stats')
def api_poll_results(couple_id, poll_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(poll_service.get_results(poll_id, couple_id)), 200


@app.route('/api/couples/<int:couple_id>/quizzes/<int:quiz_id>/results', methods=['GET'])
@require_permission('view_stats')
def api_quiz_results(couple_id, quiz_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'results': quiz_service.list_results(quiz_id, couple_id)}), 200


# ==================== PROGRAMME ====================

@app.route('/api/couples/<int:couple_id>/programme', methods=['GET'])
@require_permission()
def api_list_programme(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'programme': programme_service.list_items(couple_id, active_only=not flag_arg('all'))}), 200


@app.route('/api/couples/<int:couple_id>/programme', methods=['POST'])
@require_permission('manage_programme')
def api_create_programme_item(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(programme_service.create_item(couple_id, json_body())), 201


@app.route('/api/couples/<int:couple_id>/programme/<int:item_id>', methods=['PUT'])
@require_permission('manage_programme')
def api_update_programme_item(couple_id, item_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(programme_service.update_item(item_id, couple_id, json_body())), 200


@app.route('/api/couples/<int:couple_id>/programme/<int:item_id>', methods=['DELETE'])
@require_permission('manage_programme')
def api_delete_programme_item(couple_id, item_id, principal):
    couple_scope(principal, couple_id)
    programme_service.delete_item(item_id, couple_id)
    return jsonify({'deleted': item_id}), 200


@app.route('/api/couples/<int:couple_id>/programme/reorder', methods=['POST'])
@require_permission('manage_programme')
def api_reorder_programme(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'reordered': programme_service.reorder(couple_id, json_body().get('ids', []))}), 200


@app.route('/api/couples/<int:couple_id>/programme/conflicts', methods=['GET'])
@require_permission('manage_programme')
def api_programme_conflicts(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'conflicts': programme_service.find_conflicts(couple_id)}), 200


@app.route('/api/couples/<int:couple_id>/programme/notify', methods=['POST'])
@require_permission('send_notifications')
def api_notify_programme(couple_id, principal):
    """Prévient tous les invités que le programme a changé."""
    couple_scope(principal, couple_id)
    return jsonify({'created': programme_service.notify_guests(couple_id, json_body().get('message'))}), 201


# ==================== PRIVATE MESSAGES ====================

@app.route('/api/couples/<int:couple_id>/messages', methods=['GET'])
@require_permission('manage_messages')
def api_inbox(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({
        'messages': message_service.list_inbox(couple_id, unread_only=flag_arg('unread')),
        'unread_count': message_service.unread_count_for_couple(couple_id),
    }), 200


@app.route('/api/couples/<int:couple_id>/messages/<int:invite_id>', methods=['GET'])
@require_permission('manage_messages')
def api_message_thread(couple_id, invite_id, principal):
    couple_scope(principal, couple_id)
    invite = invite_service.get_invite(invite_id, couple_id)
    return jsonify({'invite': invite.to_dict(), 'messages': message_service.get_thread(invite)}), 200


@app.route('/api/couples/<int:couple_id>/messages/<int:invite_id>', methods=['POST'])
@require_permission('manage_messages')
def api_reply_message(couple_id, invite_id, principal):
    couple_scope(principal, couple_id)
    invite = invite_service.get_invite(invite_id, couple_id)
    data = json_body()
    return jsonify(message_service.send_from_couple(invite, data.get('content'), data.get('subject'))), 201


@app.route('/api/couples/<int:couple_id>/messages/<int:invite_id>/read', methods=['POST'])
@require_permission('manage_messages')
def api_read_thread(couple_id, invite_id, principal):
    couple_scope(principal, couple_id)
    invite = invite_service.get_invite(invite_id, couple_id)
    return jsonify({'updated': message_service.mark_read_by_couple(invite)}), 200


# ==================== GALLERIES ====================

@app.route('/api/couples/<int:couple_id>/galleries', methods=['GET'])
@require_permission('view_galleries')
def api_list_galleries(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'galleries': gallery_service.list_galleries(couple_id, active_only=not flag_arg('all'))}), 200


@app.route('/api/couples/<int:couple_id>/galleries', methods=['POST'])
@require_permission('edit_galleries')
def api_create_gallery(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(gallery_service.create_gallery(couple_id, json_body())), 201


@app.route('/api/couples/<int:couple_id>/galleries/<int:gallery_id>', methods=['PUT'])
@require_permission('edit_galleries')
def api_update_gallery(couple_id, gallery_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(gallery_service.update_gallery(gallery_id, couple_id, json_body())), 200


@app.route('/api/couples/<int:couple_id>/galleries/<int:gallery_id>/stats', methods=['GET'])
@require_permission('view_galleries')
def api_gallery_stats(couple_id, gallery_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(gallery_service.get_stats(gallery_id, couple_id)), 200


@app.route('/api/couples/<int:couple_id>/galleries/<int:gallery_id>/media', methods=['GET'])
@require_permission('view_galleries')
def api_list_media(couple_id, gallery_id, principal):
    """Médias d'une galerie; ?pending=true pour ceux en attente d'approbation."""
    couple_scope(principal, couple_id)
    approved = False if flag_arg('pending') else None
    return jsonify({'media': gallery_service.list_media(gallery_id, couple_id, approved=approved)}), 200


@app.route('/api/couples/<int:couple_id>/galleries/<int:gallery_id>/media', methods=['POST'])
@require_permission('upload_media')
def api_add_media(couple_id, gallery_id, principal):
    couple_scope(principal, couple_id)
    organizer_id = principal.id if principal.principal_kind == ActorKind.ORGANIZER.value else None
    media = gallery_service.add_media(gallery_id, couple_id, json_body(), organizer_id=organizer_id,
                                      **actor_of(principal))
    return jsonify(media), 201


@app.route('/api/couples/<int:couple_id>/media/<int:media_id>/approve', methods=['POST'])
@require_permission('edit_galleries')
def api_approve_media(couple_id, media_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(gallery_service.approve_media(media_id, couple_id)), 200


# ==================== TEAM ====================

@app.route('/api/couples/<int:couple_id>/organizers', methods=['GET'])
@require_permission('manage_organizers')
def api_list_organizers(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify({'organizers': organizer_service.list_team(couple_id, request.args.get('role'))}), 200


@app.route('/api/couples/<int:couple_id>/organizers', methods=['POST'])
@require_permission('manage_organizers')
def api_create_organizer(couple_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(organizer_service.create_organizer(couple_id, json_body())), 201


# ==================== NOTIFICATIONS & ACTIVITY ====================

@app.route('/api/couples/<int:couple_id>/notifications', methods=['GET'])
@require_permission()
def api_list_notifications(couple_id, principal):
    couple_scope(principal, couple_id)
    limit = request.args.get('limit', 50, type=int)
    return jsonify({'notifications': notification_service.list_for_couple(couple_id, limit=limit)}), 200


@app.route('/api/couples/<int:couple_id>/notifications', methods=['POST'])
@require_permission('send_notifications')
def api_send_notifications(couple_id, principal):
    """Envoie une notification à une liste d'invités (ou à tous)."""
    couple_scope(principal, couple_id)
    data = json_body()
    created = notification_service.create_bulk(
        couple_id, data.get('type'), data.get('title'),
        content=data.get('content'),
        invite_ids=data.get('invite_ids'),
        action_link=data.get('action_link')
    )
    return jsonify({'created': created}), 201


@app.route('/api/couples/<int:couple_id>/notifications/<int:notification_id>/read', methods=['POST'])
@require_permission()
def api_read_notification(couple_id, notification_id, principal):
    couple_scope(principal, couple_id)
    return jsonify(notification_service.mark_as_read(notification_id, couple_id)), 200


@app.route('/api/couples/<int:couple_id>/activity', methods=['GET'])
@require_permission('view_stats')
def api_activity(couple_id, principal):
    couple_scope(principal, couple_id)
    limit = request.args.get('limit', 100, type=int)
    return jsonify({
        'logs': activity_log_service.list_for_couple(couple_id, request.args.get('action'), limit=limit),
        'by_action': activity_log_service.count_by_action(couple_id),
    }), 200


@app.route('/api/couples/<int:couple_id>/activity/suspicious', methods=['GET'])
@require_permission('view_stats')
def api_suspicious_activity(couple_id, principal):
    couple_scope(principal, couple_id)
    minutes = request.args.get('minutes', 5, type=int)
    threshold = request.args.get('threshold', 20, type=int)
    return jsonify({'groups': activity_log_service.find_suspicious_activity(
        couple_id, minutes=minutes, threshold=threshold)}), 200


# ==================== PUBLIC GUEST ENDPOINTS ====================

@app.route('/api/rsvp/<token>', methods=['GET'])
def api_guest_invitation(token):
    invite = invite_service.get_by_token(token)
    return jsonify({
        'invite': invite.to_dict(),
        'couple': invite.couple.display_name,
        'wedding_date': invite.couple.wedding_date.isoformat(),
        'unread_notifications': notification_service.unread_count(invite.id),
    }), 200


@app.route('/api/rsvp/<token>', methods=['POST'])
@csrf_protected
def api_guest_rsvp(token):
    """Réponse RSVP d'un invité via le lien de son invitation."""
    invite = invite_service.get_by_token(token)
    data = json_body()
    result = invite_service.update_rsvp(
        invite, data.get('status'),
        companions=data.get('companions'),
        comment=data.get('comment'),
        dietary_restrictions=data.get('dietary_restrictions')
    )
    return jsonify(result), 200


@app.route('/api/rsvp/<token>/contributions', methods=['GET'])
def api_guest_contributions(token):
    invite = invite_service.get_by_token(token)
    return jsonify({'contributions': contribution_service.list_for_invite(invite.id)}), 200


@app.route('/api/rsvp/<token>/contributions', methods=['POST'])
@csrf_protected
def api_guest_contribute(token):
    invite = invite_service.get_by_token(token)
    data = json_body()
    contribution = contribution_service.create_contribution(
        invite.id,
        gift_id=data.get('gift_id'),
        pot_id=data.get('pot_id'),
        amount=data.get('amount'),
        message=data.get('message')
    )
    return jsonify(contribution), 201


@app.route('/api/rsvp/<token>/quizzes/<int:quiz_id>', methods=['POST'])
@csrf_protected
def api_guest_quiz(token, quiz_id):
    invite = guest_invite(token, 'quiz')
    data = json_body()
    result = quiz_service.submit_result(
        quiz_id, invite.id,
        score=data.get('score'),
        answers=data.get('answers'),
        completion_seconds=data.get('completion_seconds')
    )
    return jsonify(result), 201


@app.route('/api/rsvp/<token>/polls/<int:poll_id>', methods=['POST'])
@csrf_protected
def api_guest_poll(token, poll_id):
    invite = guest_invite(token, 'polls')
    return jsonify(poll_service.answer(poll_id, invite.id, json_body().get('answer'))), 201


@app.route('/api/rsvp/<token>/notifications', methods=['GET'])
def api_guest_notifications(token):
    invite = invite_service.get_by_token(token)
    return jsonify({'notifications': notification_service.list_unread_for_invite(invite.id)}), 200


@app.route('/api/rsvp/<token>/notifications/read', methods=['POST'])
@csrf_protected
def api_guest_read_notifications(token):
    invite = invite_service.get_by_token(token)
    return jsonify({'updated': notification_service.mark_all_read(invite.id)}), 200


@app.route('/api/rsvp/<token>/quizzes', methods=['GET'])
def api_guest_quizzes(token):
    invite = guest_invite(token, 'quiz')
    return jsonify({'quizzes': quiz_service.list_active(invite.couple_id)}), 200


@app.route('/api/rsvp/<token>/polls', methods=['GET'])
def api_guest_polls(token):
    invite = guest_invite(token, 'polls')
    return jsonify({'polls': poll_service.list_active(invite.couple_id, invite_id=invite.id)}), 200


@app.route('/api/rsvp/<token>/programme', methods=['GET'])
def api_guest_programme(token):
    invite = guest_invite(token, 'programme')
    return jsonify({'programme': programme_service.list_items(invite.couple_id)}), 200


@app.route('/api/rsvp/<token>/messages', methods=['GET'])
def api_guest_messages(token):
    invite = guest_invite(token, 'messages')
    return jsonify({
        'messages': message_service.get_thread(invite),
        'unread_count': message_service.unread_count_for_invite(invite),
    }), 200


@app.route('/api/rsvp/<token>/messages', methods=['POST'])
@csrf_protected
def api_guest_send_message(token):
    invite = guest_invite(token, 'messages')
    data = json_body()
    return jsonify(message_service.send_from_invite(invite, data.get('content'), data.get('subject'))), 201


@app.route('/api/rsvp/<token>/messages/read', methods=['POST'])
@csrf_protected
def api_guest_read_messages(token):
    invite = guest_invite(token, 'messages')
    return jsonify({'updated': message_service.mark_read_by_invite(invite)}), 200


@app.route('/api/rsvp/<token>/galleries', methods=['GET'])
def api_guest_galleries(token):
    invite = guest_invite(token, 'gallery')
    return jsonify({'galleries': gallery_service.list_galleries(invite.couple_id)}), 200


@app.route('/api/rsvp/<token>/galleries/<int:gallery_id>/media', methods=['GET'])
def api_guest_gallery_media(token, gallery_id):
    invite = guest_invite(token, 'gallery')
    return jsonify({'media': gallery_service.list_public_media(gallery_id, invite.couple_id)}), 200


@app.route('/api/rsvp/<token>/galleries/<int:gallery_id>/media', methods=['POST'])
@csrf_protected
def api_guest_upload_media(token, gallery_id):
    """Dépôt d'un invité, visible après approbation du couple."""
    invite = guest_invite(token, 'gallery')
    return jsonify(gallery_service.add_guest_media(gallery_id, invite, json_body())), 201


# ==================== PLATFORM ADMINISTRATION ====================

@app.route('/api/admin/presence/refresh', methods=['POST'])
@require_permission('manage_platform')
def api_admin_refresh_presence(principal):
    """Rafraîchit le snapshot du jour de tous les couples actifs."""
    couple_ids = [couple.id for couple in couple_repository.find_active()]
    refreshed = presence_service.batch_refresh_snapshots(couple_ids, day_arg())
    return jsonify({'refreshed': refreshed}), 200


@app.route('/api/admin/activity/purge', methods=['POST'])
@require_permission('manage_platform')
def api_admin_purge_activity(principal):
    months = json_body().get('months', 12)
    return jsonify({'deleted': activity_log_service.purge_old_logs(int(months))}), 200


@app.route('/api/admin/polls/deactivate-expired', methods=['POST'])
@require_permission('manage_platform')
def api_admin_deactivate_polls(principal):
    return jsonify({'deactivated': poll_service.deactivate_expired()}), 200


@app.route('/api/admin/super-admins', methods=['GET'])
@require_permission('manage_platform')
def api_admin_list_admins(principal):
    return jsonify({'super_admins': platform_service.list_active_admins()}), 200


@app.route('/api/admin/super-admins/<int:admin_id>/status', methods=['POST'])
@require_permission('manage_platform')
def api_admin_set_admin_status(admin_id, principal):
    return jsonify(platform_service.set_admin_status(admin_id, json_body().get('status'), principal)), 200


@app.route('/api/admin/couples/<int:couple_id>/status', methods=['POST'])
@require_permission('manage_platform')
def api_admin_set_couple_status(couple_id, principal):
    return jsonify(platform_service.set_couple_status(couple_id, json_body().get('status'))), 200


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', '5000')), debug=env_flag('FLASK_DEBUG', False))
