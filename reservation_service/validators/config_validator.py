"""
Configuration Validator
Checks the environment at startup and exits before serving on bad settings

Runs before logging is configured, so it reports through colored console output.
"""

import os
import sys
from urllib.parse import urlparse

from reservation_service.utils.colored_print import (
    print_error, print_failure, print_step, print_success, print_warning
)


def is_valid_url(url: str) -> bool:
    """Validates a URL format"""
    result = urlparse(url)
    return bool(result.scheme and result.netloc)


def is_positive_int(value: str) -> bool:
    return value.isdigit() and int(value) > 0


def is_positive_number(value: str) -> bool:
    try:
        return float(value) > 0
    except ValueError:
        return False


def is_valid_log_level(level: str) -> bool:
    return level.upper() in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def is_valid_boolean(value: str) -> bool:
    return value.lower() in ('true', 'false')


VALIDATION_RULES = {
    # Service
    'FLASK_ENV': {
        'required': False,
        'validator': lambda v: v.lower() in ('development', 'production', 'testing'),
        'error_message': 'FLASK_ENV must be one of: development, production, testing',
        'default': 'production',
    },
    'PORT': {
        'required': False,
        'validator': lambda v: v.isdigit() and 0 < int(v) <= 65535,
        'error_message': 'PORT must be a valid port number',
        'default': '5000',
    },

    # Database
    'DATABASE_URL': {
        'required': False,
        'validator': lambda v: '://' in v,
        'error_message': 'DATABASE_URL must be a SQLAlchemy database URL',
    },

    # Security
    'JWT_SECRET': {
        'required': True,
        'validator': lambda v: len(v) >= 32,
        'error_message': 'JWT_SECRET must be at least 32 characters long',
    },
    'SECRET_KEY': {
        'required': True,
        'validator': lambda v: len(v) >= 32,
        'error_message': 'SECRET_KEY must be at least 32 characters long',
    },
    'CORS_ORIGINS': {
        'required': False,
        'validator': lambda v: all(o.strip() == '*' or is_valid_url(o.strip()) for o in v.split(',')),
        'error_message': 'CORS_ORIGINS must be a comma-separated list of valid URLs or *',
        'default': '*',
    },
    'LOG_LEVEL': {
        'required': False,
        'validator': is_valid_log_level,
        'error_message': 'LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL',
        'default': 'INFO',
    },

    # Reservations
    'RESERVATION_TTL_MINUTES': {
        'required': False,
        'validator': is_positive_int,
        'error_message': 'RESERVATION_TTL_MINUTES must be a positive integer',
        'default': '15',
    },
    'LEDGER_MAX_ATTEMPTS': {
        'required': False,
        'validator': is_positive_int,
        'error_message': 'LEDGER_MAX_ATTEMPTS must be a positive integer',
        'default': '3',
    },
    'SWEEP_INTERVAL_SECONDS': {
        'required': False,
        'validator': is_positive_int,
        'error_message': 'SWEEP_INTERVAL_SECONDS must be a positive integer',
        'default': '60',
    },

    # ERP
    'ERP_API_BASE_URL': {
        'required': False,
        'validator': is_valid_url,
        'error_message': 'ERP_API_BASE_URL must be a valid URL',
    },
    'ERP_TIMEOUT_SECONDS': {
        'required': False,
        'validator': is_positive_number,
        'error_message': 'ERP_TIMEOUT_SECONDS must be a positive number',
        'default': '10',
    },
    'ERP_MAX_ATTEMPTS': {
        'required': False,
        'validator': is_positive_int,
        'error_message': 'ERP_MAX_ATTEMPTS must be a positive integer',
        'default': '2',
    },
    'ERP_SYNC_MANDATORY': {
        'required': False,
        'validator': is_valid_boolean,
        'error_message': 'ERP_SYNC_MANDATORY must be true or false',
        'default': 'true',
    },

    # Pagination
    'DEFAULT_PAGE_SIZE': {
        'required': False,
        'validator': is_positive_int,
        'error_message': 'DEFAULT_PAGE_SIZE must be a positive integer',
        'default': '20',
    },
    'MAX_PAGE_SIZE': {
        'required': False,
        'validator': is_positive_int,
        'error_message': 'MAX_PAGE_SIZE must be a positive integer',
        'default': '100',
    },
}


def collect_errors(environ=None):
    """
    Check every rule against the environment.

    Returns:
        (errors, warnings) - lists of printable messages
    """
    environ = os.environ if environ is None else environ
    errors = []
    warnings = []

    for key, rule in VALIDATION_RULES.items():
        value = environ.get(key)

        if not value:
            if rule['required']:
                errors.append(f"❌ {key} is required but not set")
            elif 'default' in rule:
                warnings.append(f"⚠️  {key} not set, using default: {rule['default']}")
            continue

        if not rule['validator'](value):
            errors.append(f"❌ {key}: {rule['error_message']}")
            if 'SECRET' in key or 'TOKEN' in key:
                errors.append("   Current value: ***")
            else:
                errors.append(f"   Current value: {value[:100]}")

    if not environ.get('ERP_API_BASE_URL'):
        warnings.append("⚠️  ERP_API_BASE_URL not set, ERP mirroring disabled")

    return errors, warnings


def validate_config():
    """
    Validates environment variables according to the rules
    Raises SystemExit if any required variable is missing or invalid
    """
    print_step('[CONFIG] Validating environment configuration...')
    errors, warnings = collect_errors()

    for warning in warnings:
        print_warning(warning)

    if errors:
        print_failure('[CONFIG] Configuration validation failed:')
        for error in errors:
            print_error(error)
        print_error('\n💡 Please check your .env file and ensure all required variables are set correctly.')
        sys.exit(1)

    print_success('[CONFIG] All required environment variables are valid')
