"""
Environment-aware configuration.
Token lifetimes and the signing key are read once here; create_app() freezes
them into a TokenSettings instance that the token code receives explicitly.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///natours-auth.db")
    SQL_ECHO = False

    # JWT access tokens
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-jwt-secret-change-me-before-deploying")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("JWT_TOKEN_EXPIRES_SECONDS", "900")))
    # Opaque refresh tokens and one-time link tokens
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_SECONDS", "604800")))
    EMAIL_CONFIRM_EXPIRES = timedelta(seconds=int(os.getenv("EMAIL_CONFIRM_EXPIRES_SECONDS", "86400")))
    PASSWORD_RESET_EXPIRES = timedelta(seconds=int(os.getenv("PASSWORD_RESET_EXPIRES_SECONDS", "600")))

    # Cookies carrying the tokens to browsers
    JWT_COOKIE_EXPIRES = timedelta(days=int(os.getenv("JWT_COOKIE_EXPIRES_DAYS", "90")))
    COOKIE_SECURE = False

    # Outgoing mail: "console" logs messages, "smtp" delivers them
    MAIL_BACKEND = os.getenv("MAIL_BACKEND", "console")
    MAIL_SERVER = os.getenv("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_USE_TLS = _flag("MAIL_USE_TLS", "true")
    MAIL_SENDER = os.getenv("MAIL_SENDER", "Natours <no-reply@natours.io>")

    # Twilio Verify (phone verification)
    TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
    TWILIO_SERVICE_SID = os.getenv("TWILIO_SERVICE_SID")
    TWILIO_TIMEOUT_SECONDS = float(os.getenv("TWILIO_TIMEOUT_SECONDS", "10"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQL_ECHO = _flag("SQL_ECHO")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")
    JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes"
    MAIL_BACKEND = "console"
    TWILIO_ACCOUNT_SID = None


class ProductionConfig(BaseConfig):
    DEBUG = False
    COOKIE_SECURE = True


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
