"""Who is sitting at which table.

There is no background sweep: idle users are reaped whenever someone
joins, so the listing can be stale until the next join.
"""

from datetime import timedelta
from typing import List, Optional

from flask import current_app

from app import db
from app.errors import ValidationError
from app.models import Table, User, utcnow
from .tables import get_table, normalize_table_id
from .transaction import atomic


def _names(first_name, last_name):
    first = str(first_name or '').strip()
    last = str(last_name or '').strip()
    if not first or not last:
        raise ValidationError('Missing required fields')
    return first[:100], last[:100]


def _find_user(table_id: str, first: str, last: str) -> Optional[User]:
    return User.query.filter_by(table_id=table_id, first_name=first, last_name=last).first()


def reap_inactive_users(now=None) -> int:
    """Delete users idle longer than PRESENCE_TIMEOUT_MIN. Caller commits."""
    now = now or utcnow()
    timeout = int(current_app.config.get('PRESENCE_TIMEOUT_MIN', 10))
    cutoff = now - timedelta(minutes=timeout)
    removed = User.query.filter(User.last_active < cutoff).delete(synchronize_session=False)
    if removed:
        current_app.logger.info(f"[presence-reap] removed={removed} cutoff={cutoff}")
    return removed


def join_table(table_id, first_name, last_name, now=None) -> User:
    first, last = _names(first_name, last_name)
    table = get_table(table_id)
    now = now or utcnow()
    with atomic():
        reap_inactive_users(now)
        user = _find_user(table.id, first, last)
        if user:
            user.last_active = now
            current_app.logger.info(f"[presence] {first} {last} refreshed on table {table.id}")
        else:
            user = User(first_name=first, last_name=last, table_id=table.id, joined_at=now, last_active=now)
            db.session.add(user)
            current_app.logger.info(f"[presence] {first} {last} joined table {table.id}")
    return user


def heartbeat(table_id, first_name, last_name, now=None) -> bool:
    first, last = _names(first_name, last_name)
    table_id = normalize_table_id(table_id)
    user = _find_user(table_id, first, last)
    if not user:
        current_app.logger.info(f"[presence] heartbeat from unknown user {first} {last} on table {table_id}")
        return False
    with atomic():
        user.last_active = now or utcnow()
    return True


def leave_table(table_id, first_name, last_name) -> int:
    first, last = _names(first_name, last_name)
    table_id = normalize_table_id(table_id)
    with atomic():
        removed = User.query.filter_by(table_id=table_id, first_name=first, last_name=last).delete(
            synchronize_session=False
        )
    current_app.logger.info(f"[presence] {first} {last} left table {table_id}")
    return removed


def table_users(table_id) -> List[User]:
    return User.query.filter_by(table_id=normalize_table_id(table_id)).order_by(User.joined_at).all()


def tables_overview() -> List[dict]:
    return [t.to_dict(include_users=True) for t in Table.query.order_by(Table.id).all()]
