#!/usr/bin/env python3
"""
Stock Reservation Service
Flask-based microservice for reserving stock across warehouses and the ERP.
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from reservation_service import create_app, init_database  # noqa: E402
from reservation_service.validators import validate_config  # noqa: E402

logger = logging.getLogger(__name__)


def main():
    """Main application entry point."""
    env = os.environ.get('FLASK_ENV', 'production')
    if env != 'testing':
        validate_config()

    app = create_app(env)
    logger.info(f"Starting Stock Reservation Service in {env} mode")

    init_database(app)

    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', 5000))

    logger.info(f"Starting Stock Reservation Service on {host}:{port}")
    app.run(
        host=host,
        port=port,
        debug=env == 'development',
        threaded=True
    )


if __name__ == '__main__':
    main()
