import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).strip().lower() == 'true'


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///casaora.db'

    # API Keys
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    SENDGRID_API_KEY = os.environ.get('SENDGRID_API_KEY')
    SENDGRID_FROM_EMAIL = os.environ.get('SENDGRID_FROM_EMAIL', 'noreply@casaora.co')

    # Background check providers
    CHECKR_API_KEY = os.environ.get('CHECKR_API_KEY', '')
    CHECKR_WEBHOOK_SECRET = os.environ.get('CHECKR_WEBHOOK_SECRET', '')
    CHECKR_ENABLED = _env_flag('CHECKR_ENABLED')
    TRUORA_API_KEY = os.environ.get('TRUORA_API_KEY', '')
    TRUORA_WEBHOOK_SECRET = os.environ.get('TRUORA_WEBHOOK_SECRET', '')
    TRUORA_ENABLED = _env_flag('TRUORA_ENABLED')
    BACKGROUND_CHECK_PROVIDER = os.environ.get('BACKGROUND_CHECK_PROVIDER', 'checkr')
    BACKGROUND_CHECK_FALLBACK_PROVIDER = os.environ.get('BACKGROUND_CHECK_FALLBACK_PROVIDER') or None
    BACKGROUND_CHECK_TIMEOUT_SECONDS = int(os.environ.get('BACKGROUND_CHECK_TIMEOUT_SECONDS', '30'))

    # Application Settings
    APP_URL = os.environ.get('APP_URL', 'http://localhost:5000')
    DEFAULT_COUNTRY_CODE = os.environ.get('DEFAULT_COUNTRY_CODE', 'CO')

    # Admin API (used by the bulk operation command line client)
    ADMIN_API_URL = os.environ.get('ADMIN_API_URL', 'http://localhost:5001')
    ADMIN_API_TOKEN = os.environ.get('ADMIN_API_TOKEN')
    ADMIN_API_TIMEOUT_SECONDS = int(os.environ.get('ADMIN_API_TIMEOUT_SECONDS', '60'))

    # Pricing bounds enforced on every pricing rule write
    MIN_COMMISSION_RATE = 0.10
    MAX_COMMISSION_RATE = 0.30

    # Token Settings
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours

    # Logging
    LOG_FILE = os.environ.get('LOG_FILE', 'logs/casaora.log')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    DEBUG = True
    TESTING = True

    # Sandbox credentials so the provider factory can be built in tests
    CHECKR_API_KEY = 'test_checkr_key'
    CHECKR_WEBHOOK_SECRET = 'test_checkr_webhook_secret'
    CHECKR_ENABLED = True
    TRUORA_API_KEY = 'test_truora_key'
    TRUORA_WEBHOOK_SECRET = 'test_truora_webhook_secret'
    TRUORA_ENABLED = True
    BACKGROUND_CHECK_PROVIDER = 'checkr'
    BACKGROUND_CHECK_FALLBACK_PROVIDER = None


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
