"""Staff capabilities and the role/capability lookup used by the routes."""

import json
from functools import wraps
from typing import Dict, Optional

from flask_login import current_user

from app.errors import PermissionDeniedError, ValidationError

CAPABILITIES = (
    'manage_tables',
    'view_users',
    'view_messages',
    'send_broadcast',
    'manage_countdown',
    'view_leaderboard',
    'manage_challenges',
    'manage_tv',
    'manage_game_state',
)

# New staff members can only look at things
DEFAULT_CAPABILITIES: Dict[str, bool] = {
    'manage_tables': False,
    'view_users': True,
    'view_messages': True,
    'send_broadcast': False,
    'manage_countdown': False,
    'view_leaderboard': True,
    'manage_challenges': False,
    'manage_tv': False,
    'manage_game_state': False,
}


def parse_capabilities(raw: Optional[str]) -> Dict[str, bool]:
    """Decode a stored capability map, filling gaps with the defaults."""
    merged = dict(DEFAULT_CAPABILITIES)
    if not raw:
        return merged
    try:
        stored = json.loads(raw)
    except ValueError:
        return merged
    if isinstance(stored, dict):
        merged.update({k: v is True for k, v in stored.items() if k in DEFAULT_CAPABILITIES})
    return merged


def validate_capabilities(capabilities) -> Dict[str, bool]:
    if not isinstance(capabilities, dict):
        raise ValidationError('Permissions must be an object')
    for key, value in capabilities.items():
        if key not in DEFAULT_CAPABILITIES:
            raise ValidationError(f'Unknown permission: {key}')
        if not isinstance(value, bool):
            raise ValidationError(f'Permission value must be boolean: {key}')
    return capabilities


def serialize_capabilities(capabilities: Optional[Dict[str, bool]]) -> str:
    merged = dict(DEFAULT_CAPABILITIES)
    merged.update(capabilities or {})
    return json.dumps(merged)


def has_capability(role: Optional[str], capability: str, granted: Optional[Dict[str, bool]] = None) -> bool:
    if capability not in DEFAULT_CAPABILITIES:
        raise ValueError(f'unknown capability {capability!r}')
    if role == 'admin':
        return True
    if role == 'staff':
        return bool((granted or {}).get(capability))
    return False


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if getattr(current_user, 'role', None) != 'admin':
            raise PermissionDeniedError('Admin access required')
        return view(*args, **kwargs)
    return wrapper


def capability_required(capability: str):
    """Route decorator: admins always pass, staff need the capability."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            role = getattr(current_user, 'role', None)
            granted = getattr(current_user, 'capabilities', None)
            if not has_capability(role, capability, granted):
                raise PermissionDeniedError(f'Permission denied: {capability} required')
            return view(*args, **kwargs)
        return wrapper
    return decorator
