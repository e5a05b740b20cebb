from datetime import datetime, timedelta

from voucherspot.extensions import db


def session_timeout_delta(session_timeout):
    """Turn a package timeout like ``3h`` or ``2d`` into a timedelta.

    Any unit other than ``d`` is read as hours.
    """
    value = (session_timeout or "").strip().lower()
    digits = "".join(ch for ch in value if ch.isdigit())
    amount = int(digits) if digits else 0
    if value.endswith("d"):
        return timedelta(days=amount)
    return timedelta(hours=amount)


class VoucherPackage(db.Model):
    __tablename__ = "voucher_packages"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    profile_name = db.Column(db.String(100), nullable=False, default="default")
    rate_limit = db.Column(db.String(50))
    session_timeout = db.Column(db.String(20), nullable=False, default="1h")
    limit_bytes_total = db.Column(db.BigInteger)
    shared_users = db.Column(db.Integer, default=1, nullable=False)
    description = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    router_id = db.Column(db.Integer, db.ForeignKey("router_configurations.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    router = db.relationship("RouterConfiguration", back_populates="packages")

    def expiry_from(self, start):
        return start + session_timeout_delta(self.session_timeout)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "profile_name": self.profile_name,
            "rate_limit": self.rate_limit,
            "session_timeout": self.session_timeout,
            "limit_bytes_total": self.limit_bytes_total,
            "shared_users": self.shared_users,
            "description": self.description,
            "is_active": self.is_active,
            "router_id": self.router_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
