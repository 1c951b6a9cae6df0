"""
JWT Authentication and Authorization Middleware for the Reservation Service
"""

import logging
from functools import wraps

import jwt
from flask import request, g, current_app

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Authentication error"""
    def __init__(self, message, status_code=401):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


def get_token_from_request():
    """Extract JWT token from Authorization header"""
    auth_header = request.headers.get('Authorization', '')

    if not auth_header:
        return None

    if not auth_header.startswith('Bearer '):
        raise AuthError('Authorization header must start with Bearer')

    parts = auth_header.split(' ')
    if len(parts) != 2 or not parts[1]:
        raise AuthError('Invalid Authorization header format')

    return parts[1]


def decode_jwt(token):
    """Decode and validate JWT token"""
    try:
        return jwt.decode(
            token,
            current_app.config['JWT_SECRET'],
            algorithms=[current_app.config.get('JWT_ALGORITHM', 'HS256')]
        )
    except jwt.ExpiredSignatureError:
        raise AuthError('Token has expired')
    except jwt.InvalidTokenError as e:
        logger.warning(f'Invalid token: {str(e)}')
        raise AuthError('Invalid token')


def _unauthorized(error, message, status_code=401):
    return {
        'success': False,
        'error': error,
        'message': message
    }, status_code


def require_auth(f):
    """
    Decorator to require valid JWT authentication
    Attaches user info to g.current_user
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            token = get_token_from_request()
            if not token:
                logger.warning('Authentication required: No token provided')
                return _unauthorized('Authentication required', 'No authentication token provided')

            payload = decode_jwt(token)
        except AuthError as e:
            logger.warning(f'Authentication failed: {e.message}')
            return _unauthorized('Authentication failed', e.message, e.status_code)

        user_id = payload.get('sub') or payload.get('user_id') or payload.get('id')
        if not user_id:
            logger.warning('Invalid token: Missing user ID')
            return _unauthorized('Invalid token', 'Token missing user identifier')

        roles = payload.get('roles') or []
        if payload.get('role') and payload['role'] not in roles:
            roles = roles + [payload['role']]

        g.current_user = {
            'id': str(user_id),
            'email': payload.get('email'),
            'roles': roles
        }
        logger.debug(f'Authentication successful for user: {user_id}')

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*required_roles):
    """
    Decorator to require specific roles
    Usage: @require_roles('admin') or @require_roles('admin', 'manager')
    """
    def decorator(f):
        @wraps(f)
        @require_auth
        def decorated_function(*args, **kwargs):
            user = g.current_user
            user_roles = user.get('roles', [])

            if not any(role in user_roles for role in required_roles):
                logger.warning(
                    f'Authorization failed: User {user.get("id")} lacks required roles. '
                    f'Required: {required_roles}, Has: {user_roles}'
                )
                return _unauthorized('Forbidden', f'Required roles: {", ".join(required_roles)}', 403)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    """
    Decorator to require admin role
    """
    return require_roles('admin')(f)


def get_current_user():
    """
    Get current authenticated user from Flask g object
    Returns None if not authenticated
    """
    return getattr(g, 'current_user', None)
