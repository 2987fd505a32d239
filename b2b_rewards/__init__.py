"""
B2B Rewards Platform
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging
from .utils.errors import ErrorCode, error_response, internal_error, not_found
from .utils.exceptions import RewardsError

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

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
    app.config['ENV_NAME'] = config_name

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Admin panel and storefront call the API from the browser with cookies
    CORS(
        app,
        origins=app.config['CORS_ORIGINS'],
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization']
    )

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
        return {'status': 'healthy', 'service': 'b2b-rewards'}

    logger.info(f'App created ({config_name})')
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.reward_tiers import reward_tiers_bp
    from .api.customer_rewards import customer_rewards_bp
    from .api.wallet import wallet_bp
    from .api.quarters import quarters_bp

    app.register_blueprint(reward_tiers_bp, url_prefix='/api/reward-tiers')
    app.register_blueprint(customer_rewards_bp, url_prefix='/api/customer-rewards')
    app.register_blueprint(wallet_bp, url_prefix='/api/wallet')
    app.register_blueprint(quarters_bp, url_prefix='/api/quarters')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""

    @app.errorhandler(RewardsError)
    def rewards_error(error):
        return error_response(
            error.message,
            error.code,
            error.status_code,
            log_error=error.status_code >= 500
        )

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def resource_not_found(error):
        return not_found('Not found')

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', ErrorCode.INVALID_REQUEST, 405, log_error=False)

    @app.errorhandler(500)
    def internal_server_error(error):
        # Flask passes InternalServerError; the unhandled exception is on original_exception
        original = getattr(error, 'original_exception', None) or error
        logger.exception('Unhandled error', exc_info=original)
        details = None
        if app.config.get('ENV_NAME') != 'production':
            details = str(original)
        try:
            db.session.rollback()
        except Exception:
            logger.warning('Session rollback failed after unhandled error')
        return internal_error(details=details)
