"""
CLI Commands for the tea shop backend.

Usage:
    flask config init-defaults    # Seed default config rows
    flask config refresh          # Reload the config registry
    flask config show             # Print resolved settings
"""
from .config import init_app as init_config_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_config_commands(app)
