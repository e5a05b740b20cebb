from .base import BaseConfig


class TestingConfig(BaseConfig):
    """
    Test configuration: in-memory database, no Redis, no outbound SMS.
    """

    ENVIRONMENT = "testing"
    TESTING = True
    DEBUG = False

    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "super-secret-test-key-2024"

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"

    CACHE_TYPE = "SimpleCache"
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"

    SMS_ENABLED = False
    SENTRY_DSN = None

    PAYMENT_GATEWAY = "yopayments"
    PAYMENT_GATEWAY_AUTO_SWITCH = False

    YOPAYMENTS_API_URL = "https://yo.test/ybs/task.php"
    YOPAYMENTS_USERNAME = "test-user"
    YOPAYMENTS_PASSWORD = "test-pass"
    CINEMAUG_API_URL = "https://cinemaug.test/api/payments"
    CINEMAUG_API_TOKEN = "test-token"
    LOG_DIR = None
