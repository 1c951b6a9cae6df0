"""
Correlation ID middleware for Flask application
Tags every request, log line and outgoing ERP call with one trace identifier
"""
import uuid
import logging
from contextvars import ContextVar
from typing import Optional, Dict

from flask import Response, g, request, has_app_context

logger = logging.getLogger(__name__)

CORRELATION_HEADER = 'X-Correlation-ID'

# Context variable for code running outside a request (worker sweeps)
correlation_id_context: ContextVar[str] = ContextVar('correlation_id', default='')


class CorrelationIdMiddleware:
    """
    Flask middleware for handling correlation IDs
    """

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize the middleware with Flask app"""
        app.before_request(self.before_request)
        app.after_request(self.after_request)

    def before_request(self):
        """Extract or generate correlation ID before request processing"""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        g.correlation_id = correlation_id
        correlation_id_context.set(correlation_id)
        logger.debug(f"{request.method} {request.path} - Processing request")

    def after_request(self, response: Response) -> Response:
        """Add correlation ID to response headers"""
        response.headers[CORRELATION_HEADER] = getattr(g, 'correlation_id', 'unknown')
        logger.info(f"{request.method} {request.path} - Response: {response.status_code}")
        return response


def get_correlation_id() -> str:
    """Get current correlation ID from Flask g object or context"""
    if has_app_context() and hasattr(g, 'correlation_id'):
        return g.correlation_id
    return correlation_id_context.get() or 'unknown'


def set_correlation_id(correlation_id: str = None) -> str:
    """Bind a correlation ID for work done outside a request"""
    correlation_id = correlation_id or str(uuid.uuid4())
    correlation_id_context.set(correlation_id)
    return correlation_id


def create_request_headers(additional_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Create headers with correlation ID for outgoing HTTP requests"""
    headers = {
        CORRELATION_HEADER: get_correlation_id(),
        'Content-Type': 'application/json',
    }
    if additional_headers:
        headers.update(additional_headers)
    return headers


class CorrelationIdFilter(logging.Filter):
    """Attach the current correlation ID to every log record"""

    def filter(self, record):
        record.correlation_id = get_correlation_id()
        return True


def init_correlation_id_logging(app, level: str = None):
    """
    Configure root logging so every line carries the correlation ID
    """
    level = (level or app.config.get('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s [%(correlation_id)s] %(levelname)s %(name)s: %(message)s'
    )
    correlation_filter = CorrelationIdFilter()
    for handler in logging.getLogger().handlers + app.logger.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(correlation_filter)
