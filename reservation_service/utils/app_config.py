from flask import current_app


def get_setting(key, default=None):
    """Read a Flask config value, falling back outside an application context"""
    try:
        return current_app.config.get(key, default)
    except RuntimeError:
        # Working outside application context, use default
        return default
