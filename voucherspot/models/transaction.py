import json
from datetime import datetime

from voucherspot.extensions import db

CHANNEL_MOBILE_MONEY = "mobile_money"
CHANNEL_CASH = "cash"


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    phone_number = db.Column(db.String(20), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    charge = db.Column(db.Numeric(12, 2, asdecimal=False), default=0, nullable=False)
    total_amount = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    currency = db.Column(db.String(10), default="UGX", nullable=False)
    status = db.Column(db.String(30), default="new", nullable=False, index=True)
    payment_id = db.Column(db.String(120), unique=True, nullable=True)
    mfscode = db.Column(db.String(120), nullable=True)
    gateway = db.Column(db.String(30), nullable=True, index=True)
    channel = db.Column(db.String(30), default=CHANNEL_MOBILE_MONEY, nullable=False)
    package_id = db.Column(db.Integer, db.ForeignKey("voucher_packages.id"), nullable=True, index=True)
    router_id = db.Column(db.Integer, db.ForeignKey("router_configurations.id"), nullable=True, index=True)
    response_json = db.Column(db.Text, nullable=True)
    deleted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    package = db.relationship("VoucherPackage")
    router = db.relationship("RouterConfiguration")
    voucher = db.relationship("Voucher", back_populates="transaction", uselist=False)

    __table_args__ = (
        db.Index("idx_transactions_phone_package_created", "phone_number", "package_id", "created_at"),
    )

    @classmethod
    def not_deleted(cls):
        return cls.query.filter(cls.deleted_at.is_(None))

    def set_response(self, payload):
        self.response_json = json.dumps(payload, default=str)

    def to_dict(self, include_relations=True):
        data = {
            "id": self.id,
            "phone_number": self.phone_number,
            "amount": self.amount,
            "charge": self.charge,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "status": self.status,
            "payment_id": self.payment_id,
            "mfscode": self.mfscode,
            "gateway": self.gateway,
            "channel": self.channel,
            "package_id": self.package_id,
            "router_id": self.router_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_relations:
            data["package"] = self.package.to_dict() if self.package else None
            data["voucher"] = self.voucher.to_dict(include_package=False) if self.voucher else None
        return data
