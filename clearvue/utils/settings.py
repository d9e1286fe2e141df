"""Access to configuration values from service code."""
from flask import current_app, has_app_context


def config_value(key, default=None):
    """Read `key` from the active Flask app config, or return `default` outside an app context."""
    if has_app_context():
        return current_app.config.get(key, default)
    return default
