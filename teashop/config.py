"""
Process configuration for the tea shop backend.

These are deployment settings (database, secrets, CORS). Business settings
that admins edit at runtime live in the config registry instead.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shared token for the admin console (X-Admin-Token header)
    ADMIN_API_TOKEN = os.getenv('ADMIN_API_TOKEN', 'dev-admin-token')

    # Front-end origins allowed to call the API
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173'
        ).split(',')
        if origin.strip()
    ]


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///teashop_dev.db'  # SQLite fallback for local dev
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
    _admin_token = os.getenv('ADMIN_API_TOKEN', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, empty, or contains unsafe values
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        insecure_patterns = ['dev', 'change', 'default', 'test', 'secret', 'password']
        lower_key = cls._secret_key.lower()
        for pattern in insecure_patterns:
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!"
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )

        return cls._secret_key

    @classmethod
    def validate_admin_token(cls) -> str:
        """
        Ensure the admin console token is configured in production.

        Raises:
            RuntimeError: If ADMIN_API_TOKEN is missing or too short
        """
        if len(cls._admin_token) < 24:
            raise RuntimeError(
                "CRITICAL: ADMIN_API_TOKEN must be set to at least 24 characters in production!"
            )
        return cls._admin_token

    SECRET_KEY = _secret_key  # Validated at app startup
    ADMIN_API_TOKEN = _admin_token


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    ADMIN_API_TOKEN = 'test-admin-token'
    CACHE_TYPE = 'NullCache'


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
        ProductionConfig.validate_secret_key()
        ProductionConfig.validate_admin_token()
