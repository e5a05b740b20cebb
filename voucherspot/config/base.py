import os
from datetime import timedelta


class ConfigurationError(Exception):
    """
    Raised when an invalid or unsupported configuration is requested.
    """
    pass


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    """
    Base configuration shared by all environments.
    """

    # Flask
    ENVIRONMENT = "base"
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv("SECRET_KEY")

    # Application
    APP_NAME = os.getenv("APP_NAME", "SuperSpot WiFi")
    APP_VERSION = "1.0.0"

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///voucherspot.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Redis / cache
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    CACHE_TYPE = os.getenv("CACHE_TYPE", "RedisCache")
    CACHE_REDIS_URL = os.getenv("CACHE_REDIS_URL", REDIS_URL)
    CACHE_DEFAULT_TIMEOUT = 300
    CACHE_KEY_PREFIX = "voucherspot_"

    # Rate limiting
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", REDIS_URL)
    RATELIMIT_HEADERS_ENABLED = True
    VOUCHER_PURCHASE_RATE_LIMIT = os.getenv("VOUCHER_PURCHASE_RATE_LIMIT", "10 per minute")

    # JWT
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=12)
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ERROR_MESSAGE_KEY = "message"

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_RETENTION_DAYS = 2
    LOG_REQUESTS = _env_bool("LOG_REQUESTS", False)

    # Monitoring
    SENTRY_DSN = os.getenv("SENTRY_DSN")

    # Payment gateways
    PAYMENT_GATEWAY = os.getenv("PAYMENT_GATEWAY", "yopayments")
    PAYMENT_GATEWAY_AUTO_SWITCH = _env_bool("PAYMENT_GATEWAY_AUTO_SWITCH", False)
    PAYMENT_GATEWAY_SWITCH_MODE = os.getenv("PAYMENT_GATEWAY_SWITCH_MODE", "round_robin")
    PAYMENT_GATEWAY_SWITCH_EVERY = int(os.getenv("PAYMENT_GATEWAY_SWITCH_EVERY", "10"))
    PAYMENT_GATEWAY_DAY = os.getenv("PAYMENT_GATEWAY_DAY", "yopayments")
    PAYMENT_GATEWAY_NIGHT = os.getenv("PAYMENT_GATEWAY_NIGHT", "cinemaug")
    PAYMENT_GATEWAY_DAY_START_HOUR = int(os.getenv("PAYMENT_GATEWAY_DAY_START_HOUR", "6"))
    PAYMENT_GATEWAY_NIGHT_START_HOUR = int(os.getenv("PAYMENT_GATEWAY_NIGHT_START_HOUR", "22"))
    PAYMENT_GATEWAY_TIMEZONE = os.getenv("PAYMENT_GATEWAY_TIMEZONE", "Africa/Kampala")
    GATEWAY_TIMEOUT = int(os.getenv("GATEWAY_TIMEOUT", "30"))

    YOPAYMENTS_API_URL = os.getenv("YOPAYMENTS_API_URL", "https://paymentsapi1.yo.co.ug/ybs/task.php")
    YOPAYMENTS_USERNAME = os.getenv("YOPAYMENTS_USERNAME", "")
    YOPAYMENTS_PASSWORD = os.getenv("YOPAYMENTS_PASSWORD", "")
    YOPAYMENTS_NARRATIVE = os.getenv("YOPAYMENTS_NARRATIVE", "SuperSpot WiFi Payment")

    CINEMAUG_API_URL = os.getenv("CINEMAUG_API_URL", "")
    CINEMAUG_API_TOKEN = os.getenv("CINEMAUG_API_TOKEN", "")

    # SMS (EgoSMS)
    SMS_ENABLED = _env_bool("SMS_ENABLED", True)
    EGOSMS_API_URL = os.getenv("EGOSMS_API_URL", "https://www.egosms.co/api/v1/plain/")
    EGOSMS_USERNAME = os.getenv("EGOSMS_USERNAME", "")
    EGOSMS_PASSWORD = os.getenv("EGOSMS_PASSWORD", "")
    EGOSMS_SENDER = os.getenv("EGOSMS_SENDER", "SuperSpot")

    # RouterOS
    ROUTER_API_TIMEOUT = int(os.getenv("ROUTER_API_TIMEOUT", "10"))

    # Scheduled jobs
    JOB_LOCK_TTL = 600
    CINEMAUG_TRANSACTION_TTL_MINUTES = 10
    DUPLICATE_PAYMENT_WINDOW_MINUTES = 5
