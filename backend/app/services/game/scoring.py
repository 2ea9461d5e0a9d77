from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

from flask import current_app

from app.errors import ValidationError
from app.models import ADMIN_TABLE_ID, Message

POINTS_PER_MESSAGE = Decimal('0.5')
REACTION_POINTS = {
    'heart': Decimal('2.0'),
    'fire': Decimal('1.5'),
    'thumbsup': Decimal('1.0'),
    'laugh': Decimal('0.5'),
}
_ONE_DECIMAL = Decimal('0.1')


def scorable_messages():
    """Messages sent by a real table: no broadcasts, no administrative origin."""
    return Message.query.filter(
        Message.from_table_id.isnot(None),
        Message.from_table_id != ADMIN_TABLE_ID,
        Message.is_broadcast.is_(False),
    )


def message_points(message: Message) -> Decimal:
    points = POINTS_PER_MESSAGE
    for kind, value in REACTION_POINTS.items():
        points += value * message.count_for(kind)
    return points


def table_points(messages: Optional[Iterable[Message]] = None) -> Dict[str, Decimal]:
    """Sum points per origin table using the live reaction tallies."""
    if messages is None:
        messages = scorable_messages().order_by(Message.timestamp, Message.id).all()
    totals: Dict[str, Decimal] = OrderedDict()
    for message in messages:
        totals[message.from_table_id] = totals.get(message.from_table_id, Decimal('0')) + message_points(message)
    return totals


def round_points(points: Decimal) -> float:
    return float(points.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def compute_leaderboard(limit: Optional[int] = None) -> List[dict]:
    """Tables ranked by points, highest first; ties ordered by table id."""
    if limit is None:
        limit = int(current_app.config.get('LEADERBOARD_LIMIT', 10))
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError('Leaderboard limit must be a positive integer')
    ranked = sorted(
        ((table_id, round_points(points)) for table_id, points in table_points().items()),
        key=lambda entry: (-entry[1], entry[0]),
    )
    return [{'table_id': table_id, 'points': points} for table_id, points in ranked[:limit]]
