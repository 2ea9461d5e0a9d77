from app import db, bcrypt
from app.permissions import parse_capabilities
from flask_login import UserMixin
from datetime import datetime, timezone
import json
import random
import string
import time

REACTION_KINDS = ('heart', 'thumbsup', 'fire', 'laugh')
CHALLENGE_TYPES = ('most_messages', 'most_reactions', 'speed')
GAME_STATUSES = ('not_started', 'active', 'paused', 'ended')
# Origin id used for administrative messages that are not broadcasts
ADMIN_TABLE_ID = 'ADMIN'


def utcnow():
    """Naive UTC timestamp, the form the DateTime columns round-trip."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value):
    return value.isoformat() + 'Z' if value else None


def generate_entity_id(prefix, length=9):
    """Opaque id like ``msg_1718000000000_k3j9x0a2b``."""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


class Admin(UserMixin, db.Model):
    __tablename__ = 'admin'
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    secret_table_code = db.Column(db.String(10), unique=True, nullable=False, default='001')
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    role = 'admin'
    capabilities = None

    def get_id(self):
        return f"admin:{self.id}"

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'secret_table_code': self.secret_table_code,
            'created_at': _isoformat(self.created_at),
        }


class Staff(UserMixin, db.Model):
    __tablename__ = 'staff'
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    table_code = db.Column(db.String(10), unique=True, nullable=False, index=True)
    permissions = db.Column(db.Text, nullable=False, default='{}')  # JSON-encoded capability map
    # Shadows UserMixin.is_active, so Flask-Login refuses disabled members
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    role = 'staff'

    @property
    def capabilities(self):
        return parse_capabilities(self.permissions)

    def get_id(self):
        return f"staff:{self.id}"

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'table_code': self.table_code,
            'permissions': self.capabilities,
            'is_active': self.is_active,
            'created_at': _isoformat(self.created_at),
        }


class Table(db.Model):
    __tablename__ = 'game_table'
    id = db.Column(db.String(10), primary_key=True)  # e.g. "A1"
    code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    users = db.relationship('User', back_populates='table', cascade='all, delete-orphan',
                            order_by='User.joined_at')

    def to_dict(self, include_users=False):
        data = {
            'table_id': self.id,
            'code': self.code,
        }
        if include_users:
            data['users'] = [u.to_dict() for u in self.users]
            data['user_count'] = len(self.users)
        return data


class User(db.Model):
    """A person currently sitting at a table."""
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    table_id = db.Column(db.String(10), db.ForeignKey('game_table.id', ondelete='CASCADE'), nullable=False, index=True)
    joined_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_active = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    table = db.relationship('Table', back_populates='users')

    def to_dict(self):
        return {
            'first_name': self.first_name,
            'last_name': self.last_name,
            'joined_at': _isoformat(self.joined_at),
            'last_active': _isoformat(self.last_active),
        }


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)  # singleton row, id 1
    status = db.Column(db.String(32), default='not_started', nullable=False)  # not_started, active, paused, ended
    started_at = db.Column(db.DateTime, nullable=True)
    paused_at = db.Column(db.DateTime, nullable=True)
    ended_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            'status': self.status,
            'started_at': _isoformat(self.started_at),
            'paused_at': _isoformat(self.paused_at),
            'ended_at': _isoformat(self.ended_at),
        }


class Countdown(db.Model):
    __tablename__ = 'countdown'
    id = db.Column(db.Integer, primary_key=True)  # singleton row, id 1
    active = db.Column(db.Boolean, default=False, nullable=False)
    message = db.Column(db.String(200), nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    ends_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            'active': self.active,
            'message': self.message,
            'started_at': _isoformat(self.started_at),
            'ends_at': _isoformat(self.ends_at),
        }


class Message(db.Model):
    __tablename__ = 'message'
    id = db.Column(db.String(64), primary_key=True)
    content = db.Column(db.Text, nullable=False)
    # Null origin marks an administrative broadcast
    from_table_id = db.Column(db.String(10), nullable=True, index=True)
    to_table_id = db.Column(db.String(10), nullable=False, index=True)
    sender_name = db.Column(db.String(100), nullable=False)
    public_sender_name = db.Column(db.String(100), nullable=True)
    is_anonymous = db.Column(db.Boolean, default=False, nullable=False)
    is_broadcast = db.Column(db.Boolean, default=False, nullable=False)
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    reactions_heart = db.Column(db.Integer, default=0, nullable=False)
    reactions_thumbsup = db.Column(db.Integer, default=0, nullable=False)
    reactions_fire = db.Column(db.Integer, default=0, nullable=False)
    reactions_laugh = db.Column(db.Integer, default=0, nullable=False)
    # Optimistic lock: concurrent writers of the same row fail instead of double counting
    version = db.Column(db.Integer, nullable=False)
    reacted = db.relationship('MessageReaction', back_populates='message',
                              cascade='all, delete-orphan', lazy='select')

    __mapper_args__ = {'version_id_col': version}

    def __init__(self, **kwargs):
        super(Message, self).__init__(**kwargs)
        if not self.id:
            self.id = generate_entity_id('msg')
        for kind in REACTION_KINDS:
            if getattr(self, f'reactions_{kind}') is None:
                setattr(self, f'reactions_{kind}', 0)

    def count_for(self, kind):
        return getattr(self, f'reactions_{kind}') or 0

    def set_count(self, kind, value):
        setattr(self, f'reactions_{kind}', max(0, value))

    @property
    def tally(self):
        return {kind: self.count_for(kind) for kind in REACTION_KINDS}

    @property
    def total_reactions(self):
        return sum(self.tally.values())

    def to_dict(self, viewer_table_id=None, include_sender=False):
        data = {
            'id': self.id,
            'content': self.content,
            'from_table': self.from_table_id,
            'to_table': self.to_table_id,
            'public_sender_name': self.public_sender_name,
            'timestamp': _isoformat(self.timestamp),
            'is_anonymous': self.is_anonymous,
            'is_broadcast': self.is_broadcast,
            'reactions': self.tally,
        }
        if include_sender:
            data['sender_name'] = self.sender_name
        if viewer_table_id is not None:
            data['user_reaction'] = next(
                (r.kind for r in self.reacted if r.table_id == viewer_table_id), None
            )
        return data


class MessageReaction(db.Model):
    """Marker recording which reaction a table currently holds on a message."""
    __tablename__ = 'message_reaction'
    __table_args__ = (
        db.UniqueConstraint('message_id', 'table_id', name='uq_message_reaction_table'),
    )
    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(db.String(64), db.ForeignKey('message.id', ondelete='CASCADE'), nullable=False, index=True)
    table_id = db.Column(db.String(10), nullable=False)
    kind = db.Column(db.String(16), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    message = db.relationship('Message', back_populates='reacted')

    def __repr__(self):
        return f'<MessageReaction msg={self.message_id} table={self.table_id} kind={self.kind}>'


class Challenge(db.Model):
    __tablename__ = 'challenge'
    id = db.Column(db.String(64), primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    scoring_type = db.Column(db.String(32), nullable=False)  # most_messages, most_reactions, speed
    started_at = db.Column(db.DateTime, nullable=False)
    ends_at = db.Column(db.DateTime, nullable=False)
    ended_at = db.Column(db.DateTime, nullable=True)
    active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    badge_name = db.Column(db.String(100), nullable=False)
    badge_emoji = db.Column(db.String(32), nullable=False)
    winner = db.Column(db.String(10), nullable=True)
    results = db.Column(db.Text, nullable=True)       # JSON-encoded {table_id: score}
    participants = db.Column(db.Text, nullable=True)  # JSON-encoded list of table ids

    def __init__(self, **kwargs):
        super(Challenge, self).__init__(**kwargs)
        if not self.id:
            self.id = generate_entity_id('challenge')

    @property
    def results_map(self):
        return json.loads(self.results) if self.results else {}

    @property
    def participant_list(self):
        return json.loads(self.participants) if self.participants else []

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'type': self.scoring_type,
            'started_at': _isoformat(self.started_at),
            'ends_at': _isoformat(self.ends_at),
            'ended_at': _isoformat(self.ended_at),
            'active': self.active,
            'badge_name': self.badge_name,
            'badge_emoji': self.badge_emoji,
            'winner': self.winner,
            'participants': self.participant_list,
            'results': self.results_map,
        }


class BadgeAward(db.Model):
    __tablename__ = 'badge_award'
    id = db.Column(db.Integer, primary_key=True)
    # Not a foreign key: badges outlive deleted tables
    table_id = db.Column(db.String(10), nullable=False, index=True)
    challenge_id = db.Column(db.String(64), db.ForeignKey('challenge.id'), nullable=False, unique=True)
    name = db.Column(db.String(100), nullable=False)
    emoji = db.Column(db.String(32), nullable=False)
    challenge_title = db.Column(db.String(200), nullable=False)
    awarded_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'challenge_id': self.challenge_id,
            'name': self.name,
            'emoji': self.emoji,
            'awarded_at': _isoformat(self.awarded_at),
            'challenge_title': self.challenge_title,
        }
