from datetime import datetime

from voucherspot.extensions import db

GATEWAY_SHOP = "shop"


class Voucher(db.Model):
    __tablename__ = "vouchers"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), unique=True, nullable=True)
    package_id = db.Column(db.Integer, db.ForeignKey("voucher_packages.id"), nullable=True, index=True)
    router_id = db.Column(db.Integer, db.ForeignKey("router_configurations.id"), nullable=True, index=True)
    # yopayments, cinemaug or shop (admin-printed)
    gateway = db.Column(db.String(30), nullable=True)
    expires_at = db.Column(db.DateTime, nullable=True)
    activated_at = db.Column(db.DateTime, nullable=True)
    is_used = db.Column(db.Boolean, default=False, nullable=False)
    deleted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    package = db.relationship("VoucherPackage")
    router = db.relationship("RouterConfiguration")
    transaction = db.relationship("Transaction", back_populates="voucher")

    @classmethod
    def not_deleted(cls):
        return cls.query.filter(cls.deleted_at.is_(None))

    @property
    def is_active(self):
        return bool(self.expires_at and datetime.utcnow() <= self.expires_at)

    @property
    def formatted_expiry_date(self):
        if not self.expires_at:
            return None
        return self.expires_at.strftime("Expires on %Y-%m-%d at %H:%M")

    def soft_delete(self):
        self.deleted_at = datetime.utcnow()

    def to_dict(self, include_package=True):
        data = {
            "id": self.id,
            "code": self.code,
            "transaction_id": self.transaction_id,
            "package_id": self.package_id,
            "router_id": self.router_id,
            "gateway": self.gateway,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "activated_at": self.activated_at.isoformat() if self.activated_at else None,
            "is_used": self.is_used,
            "is_active": self.is_active,
            "formatted_expiry_date": self.formatted_expiry_date,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_package:
            data["package"] = self.package.to_dict() if self.package else None
        return data
