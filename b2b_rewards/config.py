"""
Configuration management for the B2B rewards service.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _split_origins(value: str) -> list:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Access tokens are issued by the auth service and verified here
    JWT_SECRET = os.getenv('JWT_SECRET', 'default-secret-change-in-production')
    JWT_ALGORITHM = 'HS256'
    JWT_ACCESS_TOKEN_MINUTES = int(os.getenv('JWT_ACCESS_TOKEN_MINUTES', '60'))

    # Admin panel and storefront origins
    CORS_ORIGINS = _split_origins(os.getenv(
        'CORS_ORIGINS',
        'http://localhost:5173,http://localhost:5174,http://127.0.0.1:5173'
    ))

    # Roles allowed to use the back office API
    ADMIN_ROLES = ('admin', 'supervisor')

    # Prefix for reward payment numbers (RWD-<timestamp>-<customer>)
    REWARD_PAYMENT_PREFIX = 'RWD'
    TOPUP_PAYMENT_PREFIX = 'TOP'


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///b2b_rewards_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')
    _jwt_secret = os.getenv('JWT_SECRET', '')

    @classmethod
    def validate_secrets(cls) -> None:
        """
        Validate SECRET_KEY and JWT_SECRET in production environment.

        Raises:
            RuntimeError: If a secret is missing, too short, or looks like a default
        """
        insecure_patterns = ['dev', 'change', 'default', 'test', 'secret', 'password']

        for name, value in (('SECRET_KEY', cls._secret_key), ('JWT_SECRET', cls._jwt_secret)):
            if not value:
                raise RuntimeError(
                    f"CRITICAL: {name} environment variable is not set!\n"
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )

            lower_value = value.lower()
            for pattern in insecure_patterns:
                if pattern in lower_value:
                    raise RuntimeError(
                        f"CRITICAL: {name} contains '{pattern}' which suggests it's not secure!"
                    )

            if len(value) < 32:
                raise RuntimeError(
                    f"CRITICAL: {name} is too short (minimum 32 characters required)!"
                )

    SECRET_KEY = _secret_key  # Validated at app startup
    JWT_SECRET = _jwt_secret


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_SECRET = 'testing-jwt-key-0123456789abcdef0123456789'


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secrets()
