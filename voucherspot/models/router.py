from datetime import datetime

from voucherspot.extensions import db


class RouterConfiguration(db.Model):
    __tablename__ = "router_configurations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    host = db.Column(db.String(255), nullable=False)
    port = db.Column(db.Integer, default=8728, nullable=False)
    username = db.Column(db.String(100), nullable=False)
    # Never serialized
    password = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    packages = db.relationship("VoucherPackage", back_populates="router", lazy="dynamic")
    support_contacts = db.relationship("SupportContact", back_populates="router", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class RouterLog(db.Model):
    """Audit row for every RouterOS operation attempted by the service."""

    __tablename__ = "router_logs"

    id = db.Column(db.Integer, primary_key=True)
    voucher = db.Column(db.String(50), index=True)
    action = db.Column(db.String(100), nullable=False)
    success = db.Column(db.Boolean, default=False, nullable=False)
    message = db.Column(db.Text)
    is_manual = db.Column(db.Boolean, default=False, nullable=False)
    router_name = db.Column(db.String(100))
    router_id = db.Column(db.Integer, db.ForeignKey("router_configurations.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "voucher": self.voucher,
            "action": self.action,
            "success": self.success,
            "message": self.message,
            "is_manual": self.is_manual,
            "router_name": self.router_name,
            "router_id": self.router_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
