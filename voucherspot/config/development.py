from .base import BaseConfig


class DevelopmentConfig(BaseConfig):
    """
    Development configuration.
    """

    ENVIRONMENT = "development"
    DEBUG = True

    SECRET_KEY = BaseConfig.SECRET_KEY or "dev-secret-key"
    JWT_SECRET_KEY = BaseConfig.JWT_SECRET_KEY or "dev-jwt-secret-key"

    CACHE_TYPE = "SimpleCache"
    RATELIMIT_STORAGE_URI = "memory://"
    LOG_LEVEL = "DEBUG"
