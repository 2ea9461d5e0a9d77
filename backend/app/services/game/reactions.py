"""Exclusive per-table reactions on messages.

A table holds at most one reaction kind per message. Clicking the kind
it already holds removes it; clicking another kind moves the reaction.
The message row is locked for the read-modify-write and versioned, and
the (message, table) marker is unique in the database, so concurrent
toggles cannot double count.
"""

from flask import current_app
from sqlalchemy.orm.attributes import flag_modified

from app import db
from app.errors import NotFoundError, ValidationError
from app.models import REACTION_KINDS, Message, MessageReaction, utcnow
from .tables import MAX_CODE_LENGTH, normalize_table_id
from .transaction import atomic


def toggle_reaction(message_id, table_id, kind) -> dict:
    if not message_id or not table_id or not kind:
        raise ValidationError('Missing required fields')
    if kind not in REACTION_KINDS:
        raise ValidationError('Invalid reaction')
    table_id = normalize_table_id(table_id)
    if not table_id or len(table_id) > MAX_CODE_LENGTH:
        raise ValidationError(f'Invalid table id (max {MAX_CODE_LENGTH} characters)')

    with atomic():
        message = Message.query.filter_by(id=message_id).with_for_update().first()
        if not message:
            raise NotFoundError('Message not found')

        marker = MessageReaction.query.filter_by(message_id=message.id, table_id=table_id).first()
        if marker is None:
            message.set_count(kind, message.count_for(kind) + 1)
            db.session.add(MessageReaction(message_id=message.id, table_id=table_id, kind=kind))
            active = kind
        else:
            previous = marker.kind
            message.set_count(previous, message.count_for(previous) - 1)
            if previous == kind:
                db.session.delete(marker)
                active = None
            else:
                # Reuse the marker row so the unique (message, table) key never sees two rows
                marker.kind = kind
                marker.created_at = utcnow()
                message.set_count(kind, message.count_for(kind) + 1)
                active = kind
        # Always write the message row: a clamped counter that stays at 0 would
        # otherwise skip the UPDATE and with it the version check
        flag_modified(message, f'reactions_{kind}')
        tally = message.tally
        to_table = message.to_table_id

    current_app.logger.info(
        f"[reaction] message={message_id} table={table_id} kind={kind} active={active}"
    )
    return {
        'message_id': message_id,
        'to_table': to_table,
        'reactions': tally,
        'user_reaction': active,
    }
