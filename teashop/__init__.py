"""
Tea Shop ordering platform backend
Flask application factory
"""
import os
import logging
from flask import Flask

from .extensions import db, migrate, cors
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None, config_store=None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)
        config_store: Optional store for the config registry (defaults to the
            SQLAlchemy-backed SystemConfigStore)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(
        app,
        origins=app.config['CORS_ORIGINS'],
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization', 'X-Admin-Token'],
    )

    # Initialize caching (Redis with graceful fallback)
    from .utils.cache import init_cache
    init_cache(app)

    # Config registry: cache is filled lazily on first get_loaded()
    from .services.config_service import init_registry
    init_registry(app, store=config_store)

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        from .services.config_service import get_registry
        status = get_registry().status()
        return {
            'status': 'degraded' if status['degraded'] else 'healthy',
            'service': 'teashop',
            'config_registry': status,
        }

    logger.info('[TeaShop] App created (%s)', config_name)
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.config import config_bp
    from .api.points import points_bp

    # System config (admin console + public storefront read)
    app.register_blueprint(config_bp, url_prefix='/api/config')

    # Points rules and tier upgrades
    app.register_blueprint(points_bp, url_prefix='/api/points')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import error_from_exception, error_response, internal_error, ErrorCode
    from .utils.exceptions import TeaShopError

    @app.errorhandler(TeaShopError)
    def teashop_error(error):
        return error_from_exception(error)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response(str(error), ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response(str(error), ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(500)
    def internal(error):
        return internal_error()
