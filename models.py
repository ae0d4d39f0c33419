"""Database models for the wedding planning platform.

Couples are the tenants: every other record (guests, registry, pots,
quizzes, polls, programme, private messages, galleries, notifications,
activity logs) belongs to one couple and is deleted with it.
"""
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import validates
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
import bcrypt

db = SQLAlchemy()

CENT = Decimal('0.01')
MAX_CONTRIBUTION_AMOUNT = Decimal('10000')


class ValidationError(ValueError):
    """Erreur de validation rattachée à un champ précis."""

    def __init__(self, field, message):
        super().__init__(message)
        self.field = field
        self.message = message

    def to_dict(self):
        return {'error': self.message, 'field': self.field}


class NotFoundError(ValueError):
    """Entité demandée introuvable."""


def to_money(value):
    """Convertit une valeur (str, int, Decimal) en Decimal arrondi au centime.

    Les floats passent par leur représentation texte pour éviter la dérive
    binaire (30.5 -> '30.5' -> Decimal('30.50')).
    """
    if value is None or value == '':
        return None
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(value, field):
    """to_money pour les saisies utilisateur: ValidationError sur `field` si invalide."""
    try:
        amount = to_money(value)
    except (ArithmeticError, TypeError, ValueError):
        raise ValidationError(field, f"Invalid amount: {value!r}")
    if amount is not None and not amount.is_finite():
        raise ValidationError(field, f"Invalid amount: {value!r}")
    return amount


def normalize_email(value):
    """Emails stockés sans espaces et en minuscules (comparaison exacte en base)."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def format_money(value):
    """Formatte un montant à la française: 1 234,50 €"""
    if value is None:
        return 'N/A'
    amount = to_money(value)
    text = f"{amount:,.2f}".replace(',', ' ').replace('.', ',')
    return f"{text} €"


# ==================== ENUMERATIONS ====================

class CoupleStatus(str, Enum):
    ACTIVE = 'active'
    SUSPENDED = 'suspended'
    ARCHIVED = 'archived'


class RsvpStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    DECLINED = 'declined'
    MAYBE = 'maybe'


class GuestType(str, Enum):
    CEREMONY = 'ceremony'
    RECEPTION = 'reception'
    FULL = 'full'


class OrganizerRole(str, Enum):
    SCANNER = 'scanner'
    ORGANIZER = 'organizer'
    PHOTOGRAPHER = 'photographer'


class SuperAdminStatus(str, Enum):
    ACTIVE = 'active'
    SUSPENDED = 'suspended'


class GiftPriority(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class ContributionStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    DELIVERED = 'delivered'


class ScanType(str, Enum):
    CEREMONY = 'ceremony'
    RECEPTION = 'reception'


class NotificationType(str, Enum):
    RSVP_CONFIRMATION = 'rsvp_confirmation'
    NEW_MESSAGE = 'new_message'
    PROGRAMME_UPDATE = 'programme_update'
    EVENT_REMINDER = 'event_reminder'
    CONTRIBUTION_RECEIVED = 'contribution_received'


class ActorKind(str, Enum):
    COUPLE = 'couple'
    ORGANIZER = 'organizer'
    INVITE = 'invite'
    SUPER_ADMIN = 'super_admin'


class ActivityType(str, Enum):
    CEREMONY = 'ceremony'
    COCKTAIL = 'cocktail'
    DINNER = 'dinner'
    PARTY = 'party'
    OTHER = 'other'


class MessageSender(str, Enum):
    COUPLE = 'couple'
    INVITE = 'invite'


class GalleryType(str, Enum):
    OFFICIAL = 'official'
    GUESTS = 'guests'
    PHOTOBOOTH = 'photobooth'


class MediaType(str, Enum):
    PHOTO = 'photo'
    VIDEO = 'video'


# Modules activables par couple (enabled_modules None = tous)
MODULES = ('programme', 'messages', 'gallery', 'quiz', 'polls')


# ==================== PERMISSIONS ====================

# Permissions accordées par rôle d'organisateur
ROLE_PERMISSIONS = {
    OrganizerRole.SCANNER: ['scan_qr', 'view_guests'],
    OrganizerRole.PHOTOGRAPHER: ['scan_qr', 'upload_media', 'view_galleries', 'view_guests'],
    OrganizerRole.ORGANIZER: [
        'scan_qr',
        'upload_media',
        'view_galleries',
        'edit_galleries',
        'view_guests',
        'edit_guests',
        'view_stats',
        'export_data',
        'manage_organizers',
    ],
}

# Un couple a tous les droits sur son propre mariage
COUPLE_PERMISSIONS = sorted(
    set(ROLE_PERMISSIONS[OrganizerRole.ORGANIZER]) | {'manage_registry', 'manage_guests', 'manage_programme', 'manage_messages', 'send_notifications'}
)

SUPER_ADMIN_PERMISSIONS = COUPLE_PERMISSIONS + ['manage_platform']


class PrincipalMixin:
    """Capacité commune aux trois types de comptes authentifiables.

    Chaque sous-classe définit `principal_kind`, `identifier`, `get_roles()`
    et `get_permissions()`; le hash bcrypt est stocké dans `password_hash`.
    """
    principal_kind = None

    def set_password(self, password):
        """Hash and set password."""
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password):
        """Verify password against hash."""
        if not self.password_hash or not password:
            return False
        return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))

    def has_permission(self, permission):
        return permission in self.get_permissions()

    @property
    def tenant_id(self):
        """ID du couple auquel le compte est rattaché (None pour un super admin)."""
        return None


# ==================== TENANT & PRINCIPALS ====================

class Couple(PrincipalMixin, db.Model):
    """Couple = tenant propriétaire d'un mariage et compte administrateur."""
    __tablename__ = 'couples'
    principal_kind = ActorKind.COUPLE.value

    id = db.Column(db.Integer, primary_key=True)
    partner1_first_name = db.Column(db.String(255), nullable=False)
    partner1_last_name = db.Column(db.String(255), nullable=False)
    partner2_first_name = db.Column(db.String(255), nullable=False)
    partner2_last_name = db.Column(db.String(255), nullable=False)
    admin_email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False, default='')
    wedding_date = db.Column(db.Date, nullable=False)
    ceremony_venue = db.Column(db.Text)
    reception_venue = db.Column(db.Text)
    subdomain = db.Column(db.String(255), unique=True)
    custom_domain = db.Column(db.String(255), unique=True)
    status = db.Column(db.String(10), nullable=False, default=CoupleStatus.ACTIVE.value)
    enabled_modules = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships (cascade: un couple supprimé emporte toutes ses données)
    invites = db.relationship('Invite', backref='couple', lazy=True, cascade='all, delete-orphan')
    organizers = db.relationship('Organizer', backref='couple', lazy=True, cascade='all, delete-orphan')
    gifts = db.relationship('Gift', backref='couple', lazy=True, cascade='all, delete-orphan')
    pots = db.relationship('Pot', backref='couple', lazy=True, cascade='all, delete-orphan')
    presence_snapshots = db.relationship('PresenceSnapshot', backref='couple', lazy=True, cascade='all, delete-orphan')
    quizzes = db.relationship('Quiz', backref='couple', lazy=True, cascade='all, delete-orphan')
    polls = db.relationship('Poll', backref='couple', lazy=True, cascade='all, delete-orphan')
    notifications = db.relationship('Notification', backref='couple', lazy=True, cascade='all, delete-orphan')
    activity_logs = db.relationship('ActivityLog', backref='couple', lazy=True, cascade='all, delete-orphan')
    programme_items = db.relationship('ProgrammeItem', backref='couple', lazy=True, cascade='all, delete-orphan')
    messages = db.relationship('PrivateMessage', backref='couple', lazy=True, cascade='all, delete-orphan')
    galleries = db.relationship('Gallery', backref='couple', lazy=True, cascade='all, delete-orphan')

    @validates('admin_email')
    def _normalize_admin_email(self, key, value):
        return normalize_email(value)

    @property
    def identifier(self):
        return self.admin_email

    @property
    def tenant_id(self):
        return self.id

    @property
    def display_name(self):
        return f"{self.partner1_first_name} & {self.partner2_first_name}"

    def is_active(self):
        return self.status == CoupleStatus.ACTIVE

    def get_roles(self):
        return ['ROLE_COUPLE']

    def get_permissions(self):
        return list(COUPLE_PERMISSIONS)

    def has_module(self, module):
        if self.enabled_modules is None:
            return True
        return module in self.enabled_modules

    def to_dict(self):
        """Convert couple to dictionary (without sensitive data)."""
        return {
            'id': self.id,
            'display_name': self.display_name,
            'partner1': f"{self.partner1_first_name} {self.partner1_last_name}",
            'partner2': f"{self.partner2_first_name} {self.partner2_last_name}",
            'admin_email': self.admin_email,
            'wedding_date': self.wedding_date.isoformat() if self.wedding_date else None,
            'ceremony_venue': self.ceremony_venue,
            'reception_venue': self.reception_venue,
            'subdomain': self.subdomain,
            'custom_domain': self.custom_domain,
            'status': self.status,
            'enabled_modules': self.enabled_modules or [],
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Organizer(PrincipalMixin, db.Model):
    """Membre de l'équipe d'un couple (scanneur, photographe, organisateur).

    Les permissions effectives sont celles du rôle; si une liste explicite est
    stockée, elle ne fait que restreindre (intersection) celles du rôle.
    """
    __tablename__ = 'organizers'
    principal_kind = ActorKind.ORGANIZER.value

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False, default='')
    role = db.Column(db.String(20), nullable=False, default=OrganizerRole.SCANNER.value)
    permissions = db.Column(db.JSON)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    scans = db.relationship('QrScan', backref='organizer', lazy=True, cascade='all, delete-orphan')

    __table_args__ = (
        db.UniqueConstraint('couple_id', 'email', name='unique_organizer_email'),
    )

    @validates('email')
    def _normalize_email(self, key, value):
        return normalize_email(value)

    @property
    def identifier(self):
        return self.email

    @property
    def tenant_id(self):
        return self.couple_id

    def get_roles(self):
        roles = ['ROLE_ORGANIZER']
        if self.role == OrganizerRole.SCANNER:
            roles.append('ROLE_SCANNER')
        elif self.role == OrganizerRole.PHOTOGRAPHER:
            roles.append('ROLE_PHOTOGRAPHER')
        return roles

    def get_permissions(self):
        available = ROLE_PERMISSIONS[OrganizerRole(self.role)]
        if self.permissions is None:
            return list(available)
        return [p for p in available if p in self.permissions]

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'role': self.role,
            'permissions': self.get_permissions(),
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class SuperAdmin(PrincipalMixin, db.Model):
    """Administrateur de la plateforme, indépendant de tout couple."""
    __tablename__ = 'super_admins'
    principal_kind = ActorKind.SUPER_ADMIN.value

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False, default='')
    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(10), nullable=False, default=SuperAdminStatus.ACTIVE.value)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates('email')
    def _normalize_email(self, key, value):
        return normalize_email(value)

    @property
    def identifier(self):
        return self.email

    def is_active(self):
        return self.status == SuperAdminStatus.ACTIVE

    def activate(self):
        self.status = SuperAdminStatus.ACTIVE.value
        return self

    def suspend(self):
        self.status = SuperAdminStatus.SUSPENDED.value
        return self

    def touch_last_login(self):
        """Met à jour le dernier login avec la date/heure actuelle."""
        self.last_login = datetime.utcnow()
        return self

    def get_roles(self):
        return ['ROLE_SUPER_ADMIN']

    def get_permissions(self):
        return list(SUPER_ADMIN_PERMISSIONS)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'status': self.status,
            'last_login': self.last_login.isoformat() if self.last_login else None,
        }


# ==================== GUESTS ====================

class Invite(db.Model):
    """Invité d'un couple, avec son RSVP et sa présence le jour J."""
    __tablename__ = 'invites'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255))
    phone = db.Column(db.String(20))
    guest_type = db.Column(db.String(10))
    companions_allowed = db.Column(db.Boolean, default=False)
    companions_max = db.Column(db.Integer, default=0)
    companions_confirmed = db.Column(db.Integer, default=0)
    qr_token = db.Column(db.String(255), unique=True, index=True)
    rsvp_status = db.Column(db.String(10))  # None = pas encore de réponse
    rsvp_comment = db.Column(db.Text)
    rsvp_date = db.Column(db.DateTime)
    dietary_restrictions = db.Column(db.Text)
    present_ceremony = db.Column(db.Boolean, default=False)
    present_reception = db.Column(db.Boolean, default=False)
    arrived_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contributions = db.relationship('Contribution', backref='invite', lazy=True, cascade='all, delete-orphan')
    scans = db.relationship('QrScan', backref='invite', lazy=True, cascade='all, delete-orphan')
    quiz_results = db.relationship('QuizResult', backref='invite', lazy=True, cascade='all, delete-orphan')
    poll_responses = db.relationship('PollResponse', backref='invite', lazy=True, cascade='all, delete-orphan')
    messages = db.relationship('PrivateMessage', backref='invite', lazy=True, cascade='all, delete-orphan')
    media = db.relationship('Media', backref='invite', lazy=True)

    __table_args__ = (
        db.Index('idx_invites_couple_status', 'couple_id', 'rsvp_status'),
    )

    @validates('email')
    def _normalize_email(self, key, value):
        return normalize_email(value)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def validate(self):
        """Vérifie les contraintes croisées avant persistance."""
        if (self.companions_confirmed or 0) > (self.companions_max or 0):
            raise ValidationError(
                'companions_confirmed',
                'Confirmed companions cannot exceed the allowed maximum'
            )

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'email': self.email,
            'phone': self.phone,
            'guest_type': self.guest_type,
            'companions_allowed': self.companions_allowed,
            'companions_max': self.companions_max,
            'companions_confirmed': self.companions_confirmed,
            'rsvp_status': self.rsvp_status,
            'rsvp_comment': self.rsvp_comment,
            'rsvp_date': self.rsvp_date.isoformat() if self.rsvp_date else None,
            'dietary_restrictions': self.dietary_restrictions,
            'present_ceremony': self.present_ceremony,
            'present_reception': self.present_reception,
            'arrived_at': self.arrived_at.isoformat() if self.arrived_at else None,
        }


# ==================== REGISTRY ====================

class Gift(db.Model):
    """Cadeau de la liste de mariage (quantité souhaitée vs reçue)."""
    __tablename__ = 'gifts'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    estimated_price = db.Column(db.Numeric(10, 2))
    purchase_link = db.Column(db.Text)
    image_url = db.Column(db.Text)
    priority = db.Column(db.String(10))
    category = db.Column(db.String(100))
    desired_quantity = db.Column(db.Integer, nullable=False, default=1)
    received_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True)
    display_order = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contributions = db.relationship('Contribution', backref='gift', lazy=True, cascade='all, delete-orphan')

    def is_complete(self):
        return (self.received_quantity or 0) >= (self.desired_quantity or 0)

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'name': self.name,
            'description': self.description,
            'estimated_price': self.estimated_price,
            'purchase_link': self.purchase_link,
            'priority': self.priority,
            'category': self.category,
            'desired_quantity': self.desired_quantity,
            'received_quantity': self.received_quantity,
            'is_complete': self.is_complete(),
            'is_active': self.is_active,
            'display_order': self.display_order,
        }


class Pot(db.Model):
    """Cagnotte: objectif monétaire optionnel et montant collecté.

    `current_amount` est un cache rafraîchi à partir des contributions à
    chaque changement de statut; les statistiques le recalculent toujours.
    """
    __tablename__ = 'pots'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    target_amount = db.Column(db.Numeric(10, 2))
    current_amount = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal('0.00'))
    image_url = db.Column(db.Text)
    payment_link = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True)
    display_order = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contributions = db.relationship('Contribution', backref='pot', lazy=True, cascade='all, delete-orphan')

    def goal_reached(self):
        if self.target_amount is None:
            return False
        return to_money(self.current_amount) >= to_money(self.target_amount)

    def progress_percent(self):
        if not self.target_amount:
            return None
        ratio = to_money(self.current_amount) * 100 / to_money(self.target_amount)
        return ratio.quantize(CENT, rounding=ROUND_HALF_UP)

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'name': self.name,
            'description': self.description,
            'target_amount': self.target_amount,
            'current_amount': self.current_amount,
            'progress_percent': self.progress_percent(),
            'goal_reached': self.goal_reached(),
            'payment_link': self.payment_link,
            'is_active': self.is_active,
            'display_order': self.display_order,
        }


class Contribution(db.Model):
    """Participation d'un invité à un cadeau OU à une cagnotte.

    Statuts: pending -> confirmed -> delivered (cadeaux), cancelled à tout
    moment. Les dates de confirmation et de livraison sont posées une seule
    fois et ne sont jamais écrasées.
    """
    __tablename__ = 'contributions'

    id = db.Column(db.Integer, primary_key=True)
    invite_id = db.Column(db.Integer, db.ForeignKey('invites.id', ondelete='CASCADE'), nullable=False, index=True)
    gift_id = db.Column(db.Integer, db.ForeignKey('gifts.id', ondelete='CASCADE'), index=True)
    pot_id = db.Column(db.Integer, db.ForeignKey('pots.id', ondelete='CASCADE'), index=True)
    amount = db.Column(db.Numeric(10, 2))
    message = db.Column(db.Text)
    status = db.Column(db.String(10), nullable=False, default=ContributionStatus.PENDING.value)
    contributed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    confirmed_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    admin_notes = db.Column(db.Text)

    def __init__(self, **kwargs):
        if 'amount' in kwargs:
            kwargs['amount'] = to_money(kwargs['amount'])
        super().__init__(**kwargs)
        if self.status is None:
            self.status = ContributionStatus.PENDING.value
        if self.contributed_at is None:
            self.contributed_at = datetime.utcnow()

    def set_status(self, status, when=None):
        """Change le statut et horodate confirmation / livraison une seule fois."""
        status = ContributionStatus(status)
        self.status = status.value
        when = when or datetime.utcnow()
        if status == ContributionStatus.CONFIRMED and self.confirmed_at is None:
            self.confirmed_at = when
        elif status == ContributionStatus.DELIVERED and self.delivered_at is None:
            self.delivered_at = when
        return self

    def validate(self):
        """Contraintes croisées: exactement une cible, montant borné."""
        has_gift = self.gift_id is not None or self.gift is not None
        has_pot = self.pot_id is not None or self.pot is not None
        if not has_gift and not has_pot:
            raise ValidationError('gift', 'A contribution must target either a gift or a pot')
        if has_gift and has_pot:
            raise ValidationError('pot', 'A contribution cannot target both a gift and a pot')
        if has_pot and self.amount is None:
            raise ValidationError('amount', 'An amount is required for a pot contribution')
        if self.amount is not None:
            amount = to_money(self.amount)
            if amount <= 0:
                raise ValidationError('amount', 'The amount must be positive')
            if amount >= MAX_CONTRIBUTION_AMOUNT:
                raise ValidationError('amount', f'The amount cannot exceed {MAX_CONTRIBUTION_AMOUNT}€')
        if self.message is not None and len(self.message) > 1000:
            raise ValidationError('message', 'The message cannot exceed 1000 characters')
        if self.admin_notes is not None and len(self.admin_notes) > 500:
            raise ValidationError('admin_notes', 'Admin notes cannot exceed 500 characters')

    def is_gift_contribution(self):
        return self.gift_id is not None or self.gift is not None

    def is_pot_contribution(self):
        return self.pot_id is not None or self.pot is not None

    @property
    def contribution_type(self):
        if self.is_gift_contribution():
            return 'gift'
        if self.is_pot_contribution():
            return 'pot'
        return 'unknown'

    @property
    def target_name(self):
        if self.gift is not None:
            return self.gift.name
        if self.pot is not None:
            return self.pot.name
        return 'Unknown contribution'

    @property
    def contributor_name(self):
        if self.invite is None:
            return 'Unknown guest'
        return self.invite.full_name

    @property
    def formatted_amount(self):
        return format_money(self.amount)

    def can_be_confirmed(self):
        return self.status == ContributionStatus.PENDING

    def can_be_delivered(self):
        return self.status == ContributionStatus.CONFIRMED and self.is_gift_contribution()

    def __str__(self):
        amount = f" - {self.formatted_amount}" if self.amount is not None else ''
        return f"{self.contribution_type.capitalize()}: {self.target_name}{amount}"

    def to_dict(self):
        return {
            'id': self.id,
            'invite_id': self.invite_id,
            'contributor_name': self.contributor_name,
            'gift_id': self.gift_id,
            'pot_id': self.pot_id,
            'type': self.contribution_type,
            'amount': self.amount,
            'formatted_amount': self.formatted_amount,
            'message': self.message,
            'status': self.status,
            'contributed_at': self.contributed_at.isoformat() if self.contributed_at else None,
            'confirmed_at': self.confirmed_at.isoformat() if self.confirmed_at else None,
            'delivered_at': self.delivered_at.isoformat() if self.delivered_at else None,
        }


# ==================== PRESENCE ====================

class PresenceSnapshot(db.Model):
    """Photo quotidienne des statistiques de présence d'un couple.

    Simple mémo: les valeurs calculées en direct font foi en cas d'écart.
    """
    __tablename__ = 'presence_snapshots'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    snapshot_date = db.Column(db.Date, nullable=False)
    total_invites = db.Column(db.Integer)
    confirmed_rsvp = db.Column(db.Integer)
    present_ceremony = db.Column(db.Integer)
    present_reception = db.Column(db.Integer)
    presence_rate = db.Column(db.Numeric(5, 2))
    peak_arrival_hour = db.Column(db.Integer)
    refreshed_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('couple_id', 'snapshot_date', name='unique_couple_snapshot_date'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'snapshot_date': self.snapshot_date.isoformat(),
            'total_invites': self.total_invites,
            'confirmed_rsvp': self.confirmed_rsvp,
            'present_ceremony': self.present_ceremony,
            'present_reception': self.present_reception,
            'presence_rate': self.presence_rate,
            'peak_arrival_hour': self.peak_arrival_hour,
            'refreshed_at': self.refreshed_at.isoformat() if self.refreshed_at else None,
        }


class QrScan(db.Model):
    """Scan d'un QR code invité par un organisateur."""
    __tablename__ = 'qr_scans'

    id = db.Column(db.Integer, primary_key=True)
    invite_id = db.Column(db.Integer, db.ForeignKey('invites.id', ondelete='CASCADE'), nullable=False, index=True)
    organizer_id = db.Column(db.Integer, db.ForeignKey('organizers.id', ondelete='CASCADE'), nullable=False, index=True)
    scan_type = db.Column(db.String(15), nullable=False)
    scanned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    location = db.Column(db.String(255))
    comment = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'invite_id': self.invite_id,
            'organizer_id': self.organizer_id,
            'scan_type': self.scan_type,
            'scanned_at': self.scanned_at.isoformat(),
            'location': self.location,
        }


# ==================== QUIZ & POLLS ====================

class Quiz(db.Model):
    __tablename__ = 'quizzes'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    questions = db.Column(db.JSON)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    results = db.relationship('QuizResult', backref='quiz', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'title': self.title,
            'description': self.description,
            'question_count': len(self.questions or []),
            'is_active': self.is_active,
        }


class QuizResult(db.Model):
    __tablename__ = 'quiz_results'

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True)
    invite_id = db.Column(db.Integer, db.ForeignKey('invites.id', ondelete='CASCADE'), nullable=False, index=True)
    score = db.Column(db.Integer)  # None = quiz commencé mais pas terminé
    answers = db.Column(db.JSON)
    completion_seconds = db.Column(db.Integer)
    completed_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('quiz_id', 'invite_id', name='unique_quiz_invite'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'quiz_id': self.quiz_id,
            'invite_id': self.invite_id,
            'score': self.score,
            'completion_seconds': self.completion_seconds,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class Poll(db.Model):
    __tablename__ = 'polls'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    options = db.Column(db.JSON)
    starts_at = db.Column(db.DateTime)
    ends_at = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, default=True)
    display_order = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    responses = db.relationship('PollResponse', backref='poll', lazy=True, cascade='all, delete-orphan')

    def is_open(self, now=None):
        now = now or datetime.utcnow()
        if not self.is_active:
            return False
        if self.starts_at and now < self.starts_at:
            return False
        if self.ends_at and now > self.ends_at:
            return False
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'title': self.title,
            'description': self.description,
            'options': self.options or [],
            'starts_at': self.starts_at.isoformat() if self.starts_at else None,
            'ends_at': self.ends_at.isoformat() if self.ends_at else None,
            'is_active': self.is_active,
            'is_open': self.is_open(),
        }


class PollResponse(db.Model):
    __tablename__ = 'poll_responses'

    id = db.Column(db.Integer, primary_key=True)
    poll_id = db.Column(db.Integer, db.ForeignKey('polls.id', ondelete='CASCADE'), nullable=False, index=True)
    invite_id = db.Column(db.Integer, db.ForeignKey('invites.id', ondelete='CASCADE'), nullable=False, index=True)
    answer = db.Column(db.Text)
    answered_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('poll_id', 'invite_id', name='unique_poll_invite'),
    )


# ==================== PROGRAMME ====================

class ProgrammeItem(db.Model):
    """Activité du programme de la journée (cérémonie, cocktail, dîner...)."""
    __tablename__ = 'programme_items'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    starts_at = db.Column(db.Time, nullable=False)
    ends_at = db.Column(db.Time)
    location = db.Column(db.String(255))
    activity_type = db.Column(db.String(10))
    display_order = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def validate(self):
        if not self.title or not self.title.strip():
            raise ValidationError('title', 'The title is required')
        if len(self.title) > 255:
            raise ValidationError('title', 'The title cannot exceed 255 characters')
        if self.description is not None and len(self.description) > 2000:
            raise ValidationError('description', 'The description cannot exceed 2000 characters')
        if self.starts_at is None:
            raise ValidationError('starts_at', 'The start time is required')
        if self.ends_at is not None and self.ends_at <= self.starts_at:
            raise ValidationError('ends_at', 'The end time must be after the start time')
        if self.display_order is not None and self.display_order < 0:
            raise ValidationError('display_order', 'The display order cannot be negative')

    def overlaps(self, other):
        """Chevauchement horaire; une activité sans fin est ponctuelle."""
        end = self.ends_at or self.starts_at
        other_end = other.ends_at or other.starts_at
        return self.starts_at < other_end and other.starts_at < end

    @property
    def duration_minutes(self):
        if self.ends_at is None:
            return None
        start = self.starts_at.hour * 60 + self.starts_at.minute
        end = self.ends_at.hour * 60 + self.ends_at.minute
        return end - start

    @property
    def duration_label(self):
        minutes = self.duration_minutes
        if minutes is None:
            return None
        if minutes >= 60:
            return f"{minutes // 60}h{minutes % 60:02d}"
        return f"{minutes} min"

    def __str__(self):
        return f"{self.starts_at.strftime('%H:%M')} - {self.title}"

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'title': self.title,
            'description': self.description,
            'starts_at': self.starts_at.strftime('%H:%M') if self.starts_at else None,
            'ends_at': self.ends_at.strftime('%H:%M') if self.ends_at else None,
            'duration': self.duration_label,
            'location': self.location,
            'activity_type': self.activity_type,
            'display_order': self.display_order,
            'is_active': self.is_active,
        }


# ==================== PRIVATE MESSAGES ====================

class PrivateMessage(db.Model):
    """Message d'un fil privé entre un couple et un de ses invités."""
    __tablename__ = 'private_messages'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    invite_id = db.Column(db.Integer, db.ForeignKey('invites.id', ondelete='CASCADE'), nullable=False, index=True)
    sender = db.Column(db.String(10), nullable=False)
    subject = db.Column(db.String(255))
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, default=False)
    sent_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    read_at = db.Column(db.DateTime)

    __table_args__ = (
        db.Index('idx_messages_thread', 'couple_id', 'invite_id', 'sent_at'),
    )

    def validate(self):
        if not self.content or not self.content.strip():
            raise ValidationError('content', 'The message cannot be empty')
        if len(self.content) > 5000:
            raise ValidationError('content', 'The message cannot exceed 5000 characters')
        if self.subject is not None and len(self.subject) > 255:
            raise ValidationError('subject', 'The subject cannot exceed 255 characters')

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = datetime.utcnow()
        return self

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'invite_id': self.invite_id,
            'sender': self.sender,
            'subject': self.subject,
            'content': self.content,
            'is_read': self.is_read,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
            'read_at': self.read_at.isoformat() if self.read_at else None,
        }


# ==================== GALLERIES ====================

class Gallery(db.Model):
    """Galerie photo/vidéo d'un couple (métadonnées seulement)."""
    __tablename__ = 'galleries'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    gallery_type = db.Column(db.String(15), nullable=False, default=GalleryType.OFFICIAL.value)
    cover_url = db.Column(db.Text)
    display_order = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    media = db.relationship('Media', backref='gallery', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'name': self.name,
            'description': self.description,
            'type': self.gallery_type,
            'cover_url': self.cover_url,
            'display_order': self.display_order,
            'is_active': self.is_active,
        }


class Media(db.Model):
    """Photo ou vidéo référencée par URL; le fichier est stocké ailleurs.

    Un média déposé par un invité attend l'approbation du couple.
    """
    __tablename__ = 'media'

    id = db.Column(db.Integer, primary_key=True)
    gallery_id = db.Column(db.Integer, db.ForeignKey('galleries.id', ondelete='CASCADE'), nullable=False, index=True)
    invite_id = db.Column(db.Integer, db.ForeignKey('invites.id', ondelete='SET NULL'), index=True)
    organizer_id = db.Column(db.Integer, db.ForeignKey('organizers.id', ondelete='SET NULL'))
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.Text, nullable=False)
    thumbnail_url = db.Column(db.Text)
    media_type = db.Column(db.String(10), nullable=False)
    file_size = db.Column(db.BigInteger)
    format = db.Column(db.String(10))
    width = db.Column(db.Integer)
    height = db.Column(db.Integer)
    duration_seconds = db.Column(db.Integer)
    description = db.Column(db.Text)
    tags = db.Column(db.JSON)
    is_approved = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def validate(self):
        if not self.file_name or not self.file_name.strip():
            raise ValidationError('file_name', 'The file name is required')
        if not self.file_url or not self.file_url.startswith(('http://', 'https://')):
            raise ValidationError('file_url', 'The file URL must be an http(s) URL')
        if self.thumbnail_url and not self.thumbnail_url.startswith(('http://', 'https://')):
            raise ValidationError('thumbnail_url', 'The thumbnail URL must be an http(s) URL')
        if self.file_size is not None and self.file_size < 0:
            raise ValidationError('file_size', 'The file size cannot be negative')
        for field in ('width', 'height'):
            value = getattr(self, field)
            if value is not None and value <= 0:
                raise ValidationError(field, f'The {field} must be positive')
        if self.duration_seconds is not None and self.duration_seconds < 0:
            raise ValidationError('duration_seconds', 'The duration cannot be negative')

    def to_dict(self):
        return {
            'id': self.id,
            'gallery_id': self.gallery_id,
            'invite_id': self.invite_id,
            'organizer_id': self.organizer_id,
            'file_name': self.file_name,
            'file_url': self.file_url,
            'thumbnail_url': self.thumbnail_url,
            'type': self.media_type,
            'file_size': self.file_size,
            'format': self.format,
            'width': self.width,
            'height': self.height,
            'duration_seconds': self.duration_seconds,
            'description': self.description,
            'tags': self.tags or [],
            'is_approved': self.is_approved,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


# ==================== NOTIFICATIONS & ACTIVITY ====================

class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    invite_id = db.Column(db.Integer, db.ForeignKey('invites.id', ondelete='CASCADE'), index=True)
    notification_type = db.Column(db.String(25), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text)
    is_read = db.Column(db.Boolean, default=False)
    action_link = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    read_at = db.Column(db.DateTime)

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = datetime.utcnow()
        return self

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'invite_id': self.invite_id,
            'type': self.notification_type,
            'title': self.title,
            'content': self.content,
            'is_read': self.is_read,
            'action_link': self.action_link,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'read_at': self.read_at.isoformat() if self.read_at else None,
        }


class ActivityLog(db.Model):
    """Journal d'activité (append-only) d'un couple."""
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    couple_id = db.Column(db.Integer, db.ForeignKey('couples.id', ondelete='CASCADE'), nullable=False, index=True)
    actor_id = db.Column(db.Integer)
    actor_kind = db.Column(db.String(15))
    action = db.Column(db.String(100), nullable=False, index=True)
    details = db.Column(db.JSON)
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'couple_id': self.couple_id,
            'actor_id': self.actor_id,
            'actor_kind': self.actor_kind,
            'action': self.action,
            'details': self.details,
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
