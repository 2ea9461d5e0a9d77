"""Rate limit values for the anti-spam and login guards, read from config at request time."""

from flask import current_app


def message_limit() -> str:
    return current_app.config.get('MESSAGE_RATE_LIMIT', '20 per minute')


def login_limit() -> str:
    return current_app.config.get('LOGIN_RATE_LIMIT', '5 per 15 minutes')


def admin_limit() -> str:
    return current_app.config.get('ADMIN_RATE_LIMIT', '50 per 5 minutes')


def failed_login(response) -> bool:
    # Successful logins do not count against the login limit
    return response.status_code != 200
