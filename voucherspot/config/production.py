from .base import BaseConfig, ConfigurationError


class ProductionConfig(BaseConfig):
    """
    Production configuration.
    """

    ENVIRONMENT = "production"
    DEBUG = False

    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True

    @classmethod
    def validate(cls):
        # MUST be set via environment variable in real production
        missing = [
            name for name in ("SECRET_KEY", "JWT_SECRET_KEY")
            if not getattr(cls, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required production settings: {', '.join(missing)}"
            )
