import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app

from voucherspot.errors import UnsupportedGatewayError
from voucherspot.extensions import cache

from .cinemaug import CinemaUGGateway
from .yopayments import YoPaymentsGateway

logger = logging.getLogger(__name__)

CURRENT_GATEWAY_KEY = "payment_gateway:current"
USAGE_COUNT_KEY = "payment_gateway:usage_count"

MODE_ROUND_ROBIN = "round_robin"
MODE_TIME_WINDOW = "time_window"


class PaymentGatewayFactory:
    """
    Resolves which mobile-money gateway handles a payment.

    Resolution order:
    - an explicit gateway name always wins
    - with auto-switch off, the configured default gateway
    - with auto-switch on in ``round_robin`` mode, the cached current
      gateway, rotated after every ``PAYMENT_GATEWAY_SWITCH_EVERY``
      recorded transactions
    - with auto-switch on in ``time_window`` mode, the day or night
      gateway for the current hour
    """

    GATEWAYS = {
        YoPaymentsGateway.name: YoPaymentsGateway,
        CinemaUGGateway.name: CinemaUGGateway,
    }

    @classmethod
    def make(cls, gateway=None, now=None):
        if gateway is not None:
            return cls.instantiate(gateway)

        config = current_app.config
        if not config.get("PAYMENT_GATEWAY_AUTO_SWITCH", False):
            return cls.instantiate(cls.default_gateway_name())

        mode = config.get("PAYMENT_GATEWAY_SWITCH_MODE", MODE_ROUND_ROBIN)
        if mode == MODE_TIME_WINDOW:
            return cls.instantiate(cls.resolve_time_window_gateway(now))
        return cls.instantiate(cls.resolve_round_robin_gateway())

    @classmethod
    def get_default(cls):
        return cls.make()

    @classmethod
    def supported_gateways(cls):
        return list(cls.GATEWAYS)

    @classmethod
    def is_supported(cls, gateway):
        return cls._normalize(gateway) in cls.GATEWAYS

    @classmethod
    def default_gateway_name(cls):
        return cls._normalize(current_app.config.get("PAYMENT_GATEWAY") or "yopayments")

    @classmethod
    def resolve_round_robin_gateway(cls):
        switch_every = int(current_app.config.get("PAYMENT_GATEWAY_SWITCH_EVERY", 10))
        current = cache.get(CURRENT_GATEWAY_KEY)
        if current not in cls.GATEWAYS:
            current = cls.default_gateway_name()

        count = cache.get(USAGE_COUNT_KEY) or 0
        if switch_every > 0 and count >= switch_every:
            previous = current
            current = cls.next_gateway(current)
            cache.set(USAGE_COUNT_KEY, 0, timeout=0)
            logger.info(
                "Payment gateway rotated",
                extra={"from_gateway": previous, "to_gateway": current, "after": count},
            )

        cache.set(CURRENT_GATEWAY_KEY, current, timeout=0)
        return current

    @classmethod
    def resolve_time_window_gateway(cls, now=None):
        config = current_app.config
        if now is None:
            now = datetime.now(ZoneInfo(config.get("PAYMENT_GATEWAY_TIMEZONE", "Africa/Kampala")))

        day_start = int(config.get("PAYMENT_GATEWAY_DAY_START_HOUR", 6))
        night_start = int(config.get("PAYMENT_GATEWAY_NIGHT_START_HOUR", 22))

        if day_start <= now.hour < night_start:
            return cls._normalize(config.get("PAYMENT_GATEWAY_DAY", "yopayments"))
        return cls._normalize(config.get("PAYMENT_GATEWAY_NIGHT", "cinemaug"))

    @classmethod
    def next_gateway(cls, gateway):
        names = cls.supported_gateways()
        if gateway not in names:
            return cls.default_gateway_name()
        return names[(names.index(gateway) + 1) % len(names)]

    @classmethod
    def record_gateway_usage(cls, gateway):
        """Count a transaction against the round-robin counter."""
        name = cls._normalize(gateway)
        current = cache.get(CURRENT_GATEWAY_KEY) or cls.default_gateway_name()
        if name != current:
            return
        count = (cache.get(USAGE_COUNT_KEY) or 0) + 1
        cache.set(USAGE_COUNT_KEY, count, timeout=0)

    @classmethod
    def instantiate(cls, gateway):
        name = cls._normalize(gateway)
        gateway_class = cls.GATEWAYS.get(name)
        if gateway_class is None:
            raise UnsupportedGatewayError(
                f"Unsupported payment gateway: {name}. "
                f"Supported gateways: {', '.join(cls.GATEWAYS)}"
            )
        return gateway_class.from_config(current_app.config)

    @staticmethod
    def _normalize(gateway):
        return str(gateway or "").strip().lower()
