import time

from flask import current_app
from sqlalchemy import text

from voucherspot.extensions import db, get_redis_client


def _check_database():
    start = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        latency = round((time.time() - start) * 1000, 2)
        return {"status": "ok", "latency_ms": latency}
    except Exception as e:
        return {"status": "error", "error": str(e)}


def _check_redis():
    if not current_app.config.get("REDIS_URL") or current_app.config.get("TESTING"):
        return {"status": "skipped", "reason": "Redis not configured"}

    start = time.time()
    client = get_redis_client()
    if client is None:
        return {"status": "error", "error": "Redis unavailable"}
    latency = round((time.time() - start) * 1000, 2)
    return {"status": "ok", "latency_ms": latency}


def run_health_checks():
    started = time.time()

    checks = {
        "database": _check_database(),
        "redis": _check_redis(),
    }

    overall = "ok"
    for c in checks.values():
        if c["status"] == "error":
            overall = "degraded"

    return {
        "status": overall,
        "timestamp": int(time.time()),
        "checks": checks,
        "duration_ms": round((time.time() - started) * 1000, 2),
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
    }
