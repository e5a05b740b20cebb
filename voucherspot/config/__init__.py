import os

from .base import ConfigurationError
from .development import DevelopmentConfig
from .production import ProductionConfig
from .testing import TestingConfig


CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(name=None):
    """
    Resolve and return the correct configuration class.

    The explicit name wins; otherwise the APP_ENV environment variable
    is used. Supported values:
    - development
    - production
    - testing
    """

    env = (name or os.getenv("APP_ENV", "development")).lower()

    config = CONFIGS.get(env)
    if config is None:
        raise ConfigurationError(f"Invalid APP_ENV value: {env}")

    if hasattr(config, "validate"):
        config.validate()

    return config


__all__ = [
    "ConfigurationError",
    "DevelopmentConfig",
    "ProductionConfig",
    "TestingConfig",
    "get_config",
]
