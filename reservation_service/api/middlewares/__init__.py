"""
Middlewares package - request-scoped concerns shared by all controllers
"""

from .auth import AuthError, require_auth, require_admin, get_current_user
from .correlation_id import (
    CorrelationIdMiddleware,
    get_correlation_id,
    create_request_headers,
    init_correlation_id_logging
)

__all__ = [
    'AuthError',
    'require_auth',
    'require_admin',
    'get_current_user',
    'CorrelationIdMiddleware',
    'get_correlation_id',
    'create_request_headers',
    'init_correlation_id_logging'
]
