"""RouterOS API client for hotspot user and profile management."""

import logging
from datetime import datetime

from flask import current_app
from librouteros import connect
from librouteros.exceptions import LibRouterosError

from voucherspot.errors import RouterError
from voucherspot.extensions import db
from voucherspot.models import RouterLog, Voucher

logger = logging.getLogger(__name__)

HOTSPOT_USER = "/ip/hotspot/user"
HOTSPOT_ACTIVE = "/ip/hotspot/active"
HOTSPOT_PROFILE = "/ip/hotspot/user/profile"

ROUTER_ERRORS = (LibRouterosError, OSError)

BYTE_UNITS = {
    "GB": 1024 ** 3,
    "MB": 1024 ** 2,
    "KB": 1024,
}


class MikroTikService:
    """One RouterOS API connection for a RouterConfiguration.

    Every operation writes a RouterLog row. Connections are not pooled;
    use the service as a context manager so the socket is closed.
    """

    def __init__(self, router):
        self.router = router
        self.api = None

        try:
            if router is None:
                raise RouterError("Router configuration not found")
            if not router.host or not router.username:
                raise RouterError("Router configuration is incomplete")

            self.api = connect(
                host=router.host,
                username=router.username,
                password=router.password or "",
                port=router.port or 8728,
                timeout=current_app.config.get("ROUTER_API_TIMEOUT", 10),
            )
        except (RouterError, *ROUTER_ERRORS) as e:
            self._log("initialize_mikrotik_client", False, str(e))
            raise RouterError(f"Failed to initialize MikroTik client: {e}") from e

        self._log("initialize_mikrotik_client", True, "MikroTik client initialized successfully")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self.api is not None:
            self.api.close()
            self.api = None

    @property
    def router_name(self):
        return getattr(self.router, "name", None) or "Unknown Router"

    def _cmd(self, path, **kwargs):
        return list(self.api(path, **kwargs))

    def _log(self, action, success, message, voucher=None):
        db.session.add(RouterLog(
            voucher=voucher,
            action=action,
            success=success,
            message=message,
            is_manual=False,
            router_name=self.router_name,
            router_id=getattr(self.router, "id", None),
        ))
        db.session.commit()

    def _find_users(self, username):
        return [u for u in self._cmd(f"{HOTSPOT_USER}/print") if u.get("name") == username]

    def create_hotspot_user(self, username, password, profile="default"):
        try:
            # Orphaned users from an earlier failed run would make the add fail
            for user in self._find_users(username):
                self._cmd(f"{HOTSPOT_USER}/remove", **{".id": user[".id"]})

            result = self._cmd(
                f"{HOTSPOT_USER}/add",
                name=username,
                password=password,
                profile=profile or "default",
            )
        except ROUTER_ERRORS as e:
            self._log("create_hotspot_user", False, str(e), voucher=username)
            logger.error(f"Failed to create hotspot user {username} on {self.router_name}: {e}")
            raise RouterError(f"Failed to create hotspot user: {e}") from e

        self._log(
            "create_hotspot_user", True,
            f"Created user {username} with profile {profile}",
            voucher=username,
        )
        return result

    def delete_hotspot_user(self, username):
        try:
            users = self._find_users(username)
            for user in users:
                self._cmd(f"{HOTSPOT_USER}/remove", **{".id": user[".id"]})
            for session in self._cmd(f"{HOTSPOT_ACTIVE}/print"):
                if session.get("user") == username:
                    self._cmd(f"{HOTSPOT_ACTIVE}/remove", **{".id": session[".id"]})
        except ROUTER_ERRORS as e:
            self._log("delete_hotspot_user", False, str(e), voucher=username)
            raise RouterError(f"Failed to delete hotspot user: {e}") from e

        self._log("delete_hotspot_user", True, f"Deleted user {username}", voucher=username)
        return bool(users)

    def remove_expired_hotspot_users(self, now=None):
        """Remove hotspot users whose voucher is expired and unused, or deleted."""
        now = now or datetime.utcnow()
        try:
            users = self._cmd(f"{HOTSPOT_USER}/print")
            by_name = {u.get("name"): u for u in users if u.get("name")}
            if not by_name:
                return 0

            vouchers = Voucher.query.filter(Voucher.code.in_(list(by_name))).all()
            removed = 0
            for voucher in vouchers:
                expired_unused = (
                    voucher.expires_at is not None
                    and voucher.expires_at < now
                    and not voucher.is_used
                )
                if expired_unused or voucher.deleted_at is not None:
                    self._cmd(f"{HOTSPOT_USER}/remove", **{".id": by_name[voucher.code][".id"]})
                    removed += 1
        except ROUTER_ERRORS as e:
            self._log("remove_expired_hotspot_users", False, str(e))
            raise RouterError(f"Failed to remove expired hotspot users: {e}") from e

        self._log("remove_expired_hotspot_users", True, f"Removed {removed} expired hotspot users")
        return removed

    def get_profiles(self):
        return self._cmd(f"{HOTSPOT_PROFILE}/print")

    def get_router_name(self):
        response = self._cmd("/system/identity/print")
        name = response[0].get("name") if response else None
        if not name:
            raise RouterError("Router name not found")
        return name

    def get_user_statistics(self):
        users = self._cmd(f"{HOTSPOT_USER}/print")
        active = self._cmd(f"{HOTSPOT_ACTIVE}/print")
        return {
            "total_users": len(users),
            "active_users": len(active),
        }

    def test_connection(self):
        try:
            self._cmd("/system/resource/print")
        except ROUTER_ERRORS as e:
            self._log("test_connection", False, str(e))
            return {
                "success": False,
                "message": f"Failed to connect to MikroTik router: {e}",
            }

        message = "Connection to MikroTik router is successful."
        self._log("test_connection", True, message)
        return {"success": True, "message": message}

    def push_profile_to_router(self, package):
        try:
            existing = [
                p for p in self._cmd(f"{HOTSPOT_PROFILE}/print")
                if p.get("name") == package.profile_name
            ]
            if existing:
                self._log(
                    "push_profile_to_router", True,
                    f"Profile '{package.profile_name}' already exists on router",
                )
                return existing[0]

            params = {
                "name": package.profile_name,
                "shared-users": str(package.shared_users or 1),
            }
            if package.rate_limit:
                params["rate-limit"] = package.rate_limit
            if package.session_timeout:
                params["session-timeout"] = package.session_timeout
            if package.limit_bytes_total:
                params["limit-bytes-total"] = str(package.limit_bytes_total)

            result = self._cmd(f"{HOTSPOT_PROFILE}/add", **params)
        except ROUTER_ERRORS as e:
            self._log("push_profile_to_router", False, str(e))
            logger.error(
                f"Failed to push profile to router: {e}",
                extra={"router": self.router_name, "profile": package.name},
            )
            raise RouterError(f"Failed to push profile to router: {e}") from e

        self._log(
            "push_profile_to_router", True,
            f"Profile '{package.profile_name}' successfully pushed to router",
        )
        return result

    @staticmethod
    def convert_to_bytes(value, unit="MB"):
        multiplier = BYTE_UNITS.get(str(unit).strip().upper())
        if multiplier is None:
            raise ValueError(f"Unsupported unit: {unit}")
        return int(value * multiplier)
