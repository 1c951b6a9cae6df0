"""
Stock Reservation Service
Flask-based REST API for reserving stock against an optimistically-locked ledger.
"""

import logging

from flask import Flask
from flask_cors import CORS

logger = logging.getLogger(__name__)


def create_app(config_name='default'):
    """Application factory pattern for API"""
    # Load environment variables before config classes read them
    from dotenv import load_dotenv
    load_dotenv()

    app = Flask(__name__)

    from config import config, get_database_uri
    app.config.from_object(config[config_name])
    if not app.config.get('SQLALCHEMY_DATABASE_URI'):
        app.config['SQLALCHEMY_DATABASE_URI'] = get_database_uri()

    ttl = app.config.get('RESERVATION_TTL_MINUTES')
    if not isinstance(ttl, int) or ttl <= 0:
        raise ValueError('RESERVATION_TTL_MINUTES must be a positive integer')

    # Logging with correlation IDs
    from reservation_service.api.middlewares.correlation_id import (
        CorrelationIdMiddleware, init_correlation_id_logging
    )
    CorrelationIdMiddleware(app)
    init_correlation_id_logging(app)

    # Initialize database
    from reservation_service.database import init_db
    init_db(app)

    CORS(app, origins=app.config.get('CORS_ORIGINS', ['*']))

    # Register blueprints/controllers
    from reservation_service.api.controllers import api_bp
    from reservation_service.api.controllers.operational import operational_bp
    app.register_blueprint(api_bp, url_prefix='/api/v1')
    app.register_blueprint(operational_bp)

    from reservation_service.utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    app.logger.info(f"Stock reservation service created ({config_name})")
    return app


def init_database(app):
    """Initialize database tables"""
    from sqlalchemy import text
    from reservation_service.database import db
    with app.app_context():
        try:
            db.session.execute(text('SELECT 1'))
            db.create_all()
            app.logger.info("Database tables created successfully")
            return True
        except Exception as e:
            app.logger.error(f"Failed to create database tables: {e}")
            if not app.debug:
                raise
            app.logger.warning("Continuing without database connection in development mode")
            return False
