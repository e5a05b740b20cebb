from datetime import datetime

from voucherspot.extensions import db


class SupportContact(db.Model):
    __tablename__ = "support_contacts"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(50), nullable=False, default="phone")
    phone_number = db.Column(db.String(20))
    email = db.Column(db.String(120))
    # Null means the contact applies to every router
    router_id = db.Column(db.Integer, db.ForeignKey("router_configurations.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    router = db.relationship("RouterConfiguration", back_populates="support_contacts")

    @property
    def formatted_phone_number(self):
        if not self.phone_number:
            return None
        number = self.phone_number.strip()
        if number.startswith("+"):
            return number
        if number.startswith("0"):
            number = number[1:]
        if not number.startswith("256"):
            number = "256" + number
        return "+" + number

    @classmethod
    def phone_for_router(cls, router_id):
        """Phone number of the router's contact, else a global one."""
        contact = cls.query.filter_by(router_id=router_id).filter(cls.phone_number.isnot(None)).first()
        if contact is None:
            contact = cls.query.filter(cls.router_id.is_(None), cls.phone_number.isnot(None)).first()
        return contact.phone_number if contact else None

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "phone_number": self.phone_number,
            "formatted_phone_number": self.formatted_phone_number,
            "email": self.email,
            "router_id": self.router_id,
        }
