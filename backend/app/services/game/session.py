"""Game session and countdown singletons.

Both live in single-row tables (id 1) and are only reached through the
accessors below, so state transitions commit alongside everything else.
"""

from datetime import timedelta

from flask import current_app

from app import db
from app.errors import GameNotActiveError, StateConflictError, ValidationError
from app.models import Countdown, GameSession, Message, MessageReaction, User, utcnow
from .transaction import atomic

SINGLETON_ID = 1
DEFAULT_COUNTDOWN_MESSAGE = 'Time remaining'

_INACTIVE_MESSAGES = {
    'not_started': 'The game has not started yet',
    'paused': 'The game is paused',
    'ended': 'The game has ended',
}


def get_game_session() -> GameSession:
    session = GameSession.query.filter_by(id=SINGLETON_ID).first()
    if session is None:
        with atomic():
            session = GameSession(id=SINGLETON_ID, status='not_started')
            db.session.add(session)
    return session


def require_active_game() -> None:
    status = get_game_session().status
    if status != 'active':
        raise GameNotActiveError(_INACTIVE_MESSAGES.get(status, 'The game is not active'))


def start_game(now=None) -> GameSession:
    session = get_game_session()
    if session.status == 'active':
        raise StateConflictError('Game is already active')
    with atomic():
        session.status = 'active'
        session.started_at = now or utcnow()
        session.paused_at = None
        session.ended_at = None
    current_app.logger.info(f"[game] started at {session.started_at}")
    return session


def pause_game(now=None) -> GameSession:
    session = get_game_session()
    if session.status != 'active':
        raise StateConflictError('Game is not active')
    with atomic():
        session.status = 'paused'
        session.paused_at = now or utcnow()
    current_app.logger.info("[game] paused")
    return session


def resume_game() -> GameSession:
    session = get_game_session()
    if session.status != 'paused':
        raise StateConflictError('Game is not paused')
    with atomic():
        session.status = 'active'
        session.paused_at = None
    current_app.logger.info("[game] resumed")
    return session


def end_game(now=None) -> GameSession:
    session = get_game_session()
    with atomic():
        session.status = 'ended'
        session.ended_at = now or utcnow()
    current_app.logger.info("[game] ended")
    return session


def reset_game() -> GameSession:
    """Back to not_started; wipes messages and presence. Tables, challenges and badges stay."""
    session = get_game_session()
    with atomic():
        session.status = 'not_started'
        session.started_at = None
        session.paused_at = None
        session.ended_at = None
        MessageReaction.query.delete(synchronize_session=False)
        removed_messages = Message.query.delete(synchronize_session=False)
        removed_users = User.query.delete(synchronize_session=False)
    current_app.logger.warning(
        f"[game-reset] removed messages={removed_messages} users={removed_users}"
    )
    return session


def get_countdown() -> Countdown:
    countdown = Countdown.query.filter_by(id=SINGLETON_ID).first()
    if countdown is None:
        with atomic():
            countdown = Countdown(id=SINGLETON_ID, active=False)
            db.session.add(countdown)
    return countdown


def set_countdown(minutes, message=None, now=None) -> Countdown:
    max_minutes = int(current_app.config.get('CHALLENGE_MAX_MINUTES', 60))
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or not 1 <= minutes <= max_minutes:
        raise ValidationError(f'Invalid minutes (1-{max_minutes})')
    now = now or utcnow()
    countdown = get_countdown()
    with atomic():
        countdown.active = True
        countdown.started_at = now
        countdown.ends_at = now + timedelta(minutes=minutes)
        countdown.message = (message or '').strip()[:200] or DEFAULT_COUNTDOWN_MESSAGE
    current_app.logger.info(f"[countdown] set minutes={minutes} ends_at={countdown.ends_at}")
    return countdown


def stop_countdown() -> Countdown:
    countdown = get_countdown()
    with atomic():
        countdown.active = False
    current_app.logger.info("[countdown] stopped")
    return countdown
