from flask import Flask, jsonify
from config.config import config
from casaora.database import init_db
from casaora.integrations import BackgroundCheckProviderFactory, BackgroundCheckSettings
from casaora.services.pricing_service import PricingService
from casaora.utils.logger import get_logger

logger = get_logger(__name__)


def create_background_check_factory(app_config):
    """Build the provider factory, or None when no provider is enabled"""
    settings = BackgroundCheckSettings.from_config(app_config)
    if not settings.any_enabled:
        logger.warning("No background check provider enabled; background check endpoints are disabled")
        return None

    # Misconfigured providers stop startup here rather than on the first check
    return BackgroundCheckProviderFactory(settings)


def create_app(config_name=None):
    """Application factory"""
    app = Flask(__name__)
    app.config.from_object(config[config_name or 'default'])

    init_db()

    app.extensions['background_checks'] = create_background_check_factory(app.config)

    PricingService().check_default_rule()

    from casaora.routes import admin, bookings, pricing, webhooks
    app.register_blueprint(admin.bp, url_prefix='/api/admin')
    app.register_blueprint(pricing.bp, url_prefix='/api')
    app.register_blueprint(webhooks.bp, url_prefix='/api/webhooks')
    app.register_blueprint(bookings.bp, url_prefix='/api/bookings')

    @app.route('/api/health', methods=['GET'])
    def health():
        factory = app.extensions['background_checks']
        return jsonify({
            'status': 'ok',
            'background_check_provider': factory.active_provider.value if factory else None
        }), 200

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    logger.info(f"Casaora started with config: {config_name or 'default'}")
    return app
