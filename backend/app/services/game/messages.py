import re
from typing import List

from flask import current_app
from sqlalchemy.orm import selectinload

from app import db
from app.errors import NotFoundError, ValidationError
from app.models import Message, Table
from .accounts import sanitize_input
from .session import require_active_game
from .tables import normalize_table_id
from .transaction import atomic

MIN_CONTENT_LENGTH = 2
ANONYMOUS_SENDER = 'Anonymous'
BROADCAST_SENDER = 'Administration'
BROADCAST_PUBLIC_SENDER = '📢 Administration'

_SCRIPT_RE = re.compile(r'<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>', re.IGNORECASE)
_TAG_RE = re.compile(r'<[^>]+>')


def sanitize_message_content(content: str) -> str:
    """Strip script blocks and any remaining HTML tags."""
    return _TAG_RE.sub('', _SCRIPT_RE.sub('', content)).strip()


def _validate_content(content) -> str:
    if not content or not isinstance(content, str):
        raise ValidationError('Message content is required')
    max_length = int(current_app.config.get('MESSAGE_MAX_LENGTH', 500))
    if len(content) > max_length:
        raise ValidationError(f'Message too long (max {max_length} characters)')
    if len(content.strip()) < MIN_CONTENT_LENGTH:
        raise ValidationError(f'Message too short (min {MIN_CONTENT_LENGTH} characters)')
    sanitized = sanitize_message_content(content)
    if len(sanitized) < MIN_CONTENT_LENGTH:
        raise ValidationError('Message has no readable content')
    return sanitized


def send_message(content, from_table, to_table, sender_name=None, is_anonymous=False) -> Message:
    if not content or not from_table or not to_table:
        raise ValidationError('Missing required fields')
    sanitized = _validate_content(content)
    from_table_id = normalize_table_id(from_table)
    to_table_id = normalize_table_id(to_table)
    if from_table_id == to_table_id:
        raise ValidationError('You cannot send a message to your own table')
    if not Table.query.filter_by(id=to_table_id).first():
        raise NotFoundError('Destination table does not exist')
    require_active_game()

    sender = sanitize_input(sender_name) if sender_name else ''
    anonymous = bool(is_anonymous)
    with atomic():
        message = Message(
            content=sanitized,
            from_table_id=from_table_id,
            to_table_id=to_table_id,
            # Real name is always kept for the admin audit view
            sender_name=sender or ANONYMOUS_SENDER,
            public_sender_name=None if anonymous else (sender or None),
            is_anonymous=anonymous,
            is_broadcast=False,
        )
        db.session.add(message)
    current_app.logger.info(
        f"[message] {from_table_id} -> {to_table_id} ({'anonymous' if anonymous else sender}) id={message.id}"
    )
    return message


def broadcast_message(content) -> List[Message]:
    """One broadcast copy per table; not gated by the game status."""
    sanitized = _validate_content(content)
    tables = Table.query.order_by(Table.id).all()
    sent = []
    with atomic():
        for table in tables:
            message = Message(
                content=sanitized,
                from_table_id=None,
                to_table_id=table.id,
                sender_name=BROADCAST_SENDER,
                public_sender_name=BROADCAST_PUBLIC_SENDER,
                is_anonymous=False,
                is_broadcast=True,
            )
            db.session.add(message)
            sent.append(message)
    current_app.logger.info(f"[broadcast] sent to {len(sent)} tables")
    return sent


def messages_for_table(table_id) -> List[Message]:
    """Messages addressed to a table, oldest first, with reaction markers preloaded."""
    return (
        Message.query.filter_by(to_table_id=normalize_table_id(table_id))
        .options(selectinload(Message.reacted))
        .order_by(Message.timestamp.asc())
        .all()
    )


def all_messages() -> List[Message]:
    return Message.query.order_by(Message.timestamp.desc()).all()
