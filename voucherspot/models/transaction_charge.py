from datetime import datetime

from voucherspot.extensions import db

NETWORKS = ("MTN", "AIRTEL")


class TransactionCharge(db.Model):
    """Fee applied to a mobile-money amount range on one network."""

    __tablename__ = "transaction_charges"

    id = db.Column(db.Integer, primary_key=True)
    network = db.Column(db.String(20), nullable=False, index=True)
    min_amount = db.Column(db.Integer, nullable=False)
    max_amount = db.Column(db.Integer, nullable=False)
    charge = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "network": self.network,
            "min_amount": self.min_amount,
            "max_amount": self.max_amount,
            "charge": self.charge,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
