"""
Access Token Authentication Middleware.

Verifies JWT access tokens issued to admin panel and storefront users.
Tokens arrive as "Authorization: Bearer <token>" or in the accessToken
cookie and carry:
- user_id: User primary key
- email: User email
- role: admin, supervisor or customer
- exp: Expiration time
"""
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

import jwt
from flask import current_app, g, request

from ..utils.errors import ErrorCode, forbidden, unauthorized


def create_access_token(user_id, email: str, role: str, expires_minutes: int = None) -> str:
    """Issue a signed access token (used by the CLI and tests)."""
    minutes = expires_minutes or current_app.config['JWT_ACCESS_TOKEN_MINUTES']
    payload = {
        'user_id': user_id,
        'email': email,
        'role': role,
        'exp': datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET'],
        algorithm=current_app.config['JWT_ALGORITHM']
    )


def get_token_from_request() -> Optional[str]:
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[7:].strip() or None
    return request.cookies.get('accessToken')


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Raises:
        jwt.ExpiredSignatureError: Token expired
        jwt.InvalidTokenError: Any other verification failure
    """
    return jwt.decode(
        token,
        current_app.config['JWT_SECRET'],
        algorithms=[current_app.config['JWT_ALGORITHM']]
    )


def get_current_actor_id():
    """Authenticated user id, or None outside an authenticated request."""
    user = getattr(g, 'user', None)
    if not user:
        return None
    return user.get('user_id')


def require_auth(f):
    """
    Decorator to require a valid access token.

    Sets g.user to the decoded token payload.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_token_from_request()
        if not token:
            return unauthorized('Access token required')

        try:
            g.user = decode_access_token(token)
        except jwt.ExpiredSignatureError:
            return unauthorized('Token expired', ErrorCode.TOKEN_EXPIRED)
        except jwt.InvalidTokenError:
            return forbidden('Invalid token', ErrorCode.INVALID_TOKEN)

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """
    Decorator factory restricting an endpoint to the given roles.
    Implies require_auth.

    Usage:
        @require_role('admin', 'supervisor')
        def my_endpoint():
            actor_id = g.user['user_id']
    """
    def decorator(f):
        @wraps(f)
        def role_checked(*args, **kwargs):
            if g.user.get('role') not in roles:
                return forbidden('Insufficient permissions')
            return f(*args, **kwargs)

        return require_auth(role_checked)

    return decorator


def require_admin(f):
    """Admin panel endpoints: admins and supervisors."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.user.get('role') not in current_app.config['ADMIN_ROLES']:
            return forbidden('Insufficient permissions')
        return f(*args, **kwargs)

    return require_auth(decorated_function)
