"""Time-boxed challenges between tables.

A challenge is active until it is resolved, either by an admin ending it
or by the first read after ``ends_at``. There is no timer: every read
path re-checks the wall clock before trusting the ``active`` flag.

Resolution is claimed with a conditional UPDATE (active -> inactive) so
that only one caller computes the results and awards the badge, even if
several requests notice the expiry at the same time.

Scoring per type, over non-broadcast messages sent in
``[started_at, ends_at]``:

- most_messages: number of messages per table
- most_reactions: total reactions on those messages, read at resolution
- speed: epoch-ms timestamp of each table's Nth message (N =
  SPEED_MESSAGE_TARGET); tables below N do not score
"""

import json
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from flask import current_app

from app import db
from app.errors import NotFoundError, StateConflictError, ValidationError
from app.models import CHALLENGE_TYPES, BadgeAward, Challenge, Message, utcnow
from .scoring import scorable_messages
from .tables import normalize_table_id
from .transaction import atomic

_EPOCH = datetime(1970, 1, 1)


def _epoch_ms(value: datetime) -> int:
    return int((value - _EPOCH) / timedelta(milliseconds=1))


def _duration_minutes(value) -> float:
    max_minutes = int(current_app.config.get('CHALLENGE_MAX_MINUTES', 60))
    if isinstance(value, bool):
        raise ValidationError('Duration must be a number of minutes')
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        raise ValidationError('Duration must be a number of minutes')
    if not 1 <= minutes <= max_minutes:
        raise ValidationError(f'Invalid duration (1-{max_minutes} minutes)')
    return minutes


def create_challenge(title, description, scoring_type, duration_minutes, badge_name, badge_emoji,
                     now=None) -> Challenge:
    if not all([title, scoring_type, duration_minutes, badge_name, badge_emoji]):
        raise ValidationError('Missing required fields')
    if scoring_type not in CHALLENGE_TYPES:
        raise ValidationError('Invalid challenge type')
    minutes = _duration_minutes(duration_minutes)
    now = now or utcnow()
    with atomic():
        challenge = Challenge(
            title=str(title).strip()[:200],
            description=str(description or '').strip(),
            scoring_type=scoring_type,
            started_at=now,
            ends_at=now + timedelta(minutes=minutes),
            active=True,
            badge_name=str(badge_name).strip()[:100],
            badge_emoji=str(badge_emoji).strip()[:32],
            winner=None,
            results=json.dumps({}),
            participants=json.dumps([]),
        )
        db.session.add(challenge)
    current_app.logger.info(
        f"[challenge] created {challenge.id} '{challenge.title}' ({scoring_type}) ends_at={challenge.ends_at}"
    )
    return challenge


def window_messages(challenge: Challenge) -> List[Message]:
    return (
        scorable_messages()
        .filter(Message.timestamp >= challenge.started_at, Message.timestamp <= challenge.ends_at)
        .order_by(Message.timestamp, Message.id)
        .all()
    )


def score_messages(scoring_type: str, messages: List[Message], speed_target: int = 5) -> Dict[str, int]:
    results: Dict[str, int] = {}
    if scoring_type == 'most_messages':
        for message in messages:
            results[message.from_table_id] = results.get(message.from_table_id, 0) + 1
    elif scoring_type == 'most_reactions':
        for message in messages:
            results[message.from_table_id] = results.get(message.from_table_id, 0) + message.total_reactions
    elif scoring_type == 'speed':
        counts: Dict[str, int] = {}
        for message in messages:
            counts[message.from_table_id] = counts.get(message.from_table_id, 0) + 1
            if counts[message.from_table_id] == speed_target:
                results[message.from_table_id] = _epoch_ms(message.timestamp)
    else:
        raise ValidationError(f'Unknown challenge type {scoring_type}')
    return results


def pick_winner(scoring_type: str, results: Dict[str, int]) -> Optional[str]:
    """Highest positive score wins, or the earliest timestamp for speed; ties go to the lowest table id."""
    if not results:
        return None
    if scoring_type == 'speed':
        return min(results.items(), key=lambda item: (item[1], item[0]))[0]
    best = max(results.values())
    if best <= 0:
        return None
    return min(table_id for table_id, score in results.items() if score == best)


def _claim(challenge_id: str) -> bool:
    claimed = (
        Challenge.query
        .filter(Challenge.id == challenge_id, Challenge.active.is_(True))
        .update({Challenge.active: False}, synchronize_session=False)
    )
    return claimed == 1


def resolve_challenge(challenge_id: str, now=None) -> Optional[Challenge]:
    """Resolve a challenge once. Returns None when another caller already resolved it."""
    now = now or utcnow()
    speed_target = int(current_app.config.get('SPEED_MESSAGE_TARGET', 5))
    with atomic():
        if not _claim(challenge_id):
            return None
        challenge = Challenge.query.filter_by(id=challenge_id).first()
        challenge.active = False
        messages = window_messages(challenge)
        results = score_messages(challenge.scoring_type, messages, speed_target)
        winner = pick_winner(challenge.scoring_type, results)

        challenge.results = json.dumps(results)
        challenge.participants = json.dumps(sorted({m.from_table_id for m in messages}))
        challenge.winner = winner
        challenge.ended_at = now
        if winner:
            db.session.add(BadgeAward(
                table_id=winner,
                challenge_id=challenge.id,
                name=challenge.badge_name,
                emoji=challenge.badge_emoji,
                challenge_title=challenge.title,
                awarded_at=now,
            ))

    current_app.logger.info(
        f"[challenge-resolved] {challenge_id} type={challenge.scoring_type} winner={winner} results={results}"
    )
    if winner:
        current_app.logger.info(f"[badge] '{challenge.badge_name}' awarded to table {winner}")
    return challenge


def _is_expired(challenge: Challenge, now) -> bool:
    return challenge.active and now > challenge.ends_at


def get_challenge(challenge_id, now=None) -> Challenge:
    now = now or utcnow()
    challenge = Challenge.query.filter_by(id=challenge_id).first()
    if not challenge:
        raise NotFoundError('Challenge not found')
    if _is_expired(challenge, now):
        resolve_challenge(challenge.id, now)
        db.session.refresh(challenge)
    return challenge


def list_active_challenges(now=None) -> List[Challenge]:
    """Active challenges, oldest first. Expired ones are resolved on the way."""
    now = now or utcnow()
    candidates = Challenge.query.filter_by(active=True).order_by(Challenge.started_at, Challenge.id).all()
    active = []
    for challenge in candidates:
        if _is_expired(challenge, now):
            resolve_challenge(challenge.id, now)
        else:
            active.append(challenge)
    return active


def end_challenge_now(challenge_id, now=None) -> Tuple[Optional[str], Dict[str, int]]:
    challenge = Challenge.query.filter_by(id=challenge_id).first()
    if not challenge:
        raise NotFoundError('Challenge not found')
    if not challenge.active:
        raise StateConflictError('Challenge already ended')
    resolved = resolve_challenge(challenge.id, now)
    if resolved is None:
        raise StateConflictError('Challenge already ended')
    return resolved.winner, resolved.results_map


def get_table_badges(table_id) -> List[BadgeAward]:
    return (
        BadgeAward.query.filter_by(table_id=normalize_table_id(table_id))
        .order_by(BadgeAward.awarded_at, BadgeAward.id)
        .all()
    )
