from freelancedash.extensions import db
from freelancedash.utils.transactions import utcnow
import uuid

ROLES = ("freelancer", "client")


def gen_uuid(prefix=None):
    uid = str(uuid.uuid4())
    return f"{prefix}-{uid}" if prefix else uid


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(50), primary_key=True, default=lambda: gen_uuid("usr"))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255))
    role = db.Column(db.String(20), nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    @property
    def display_name(self):
        return self.full_name or self.email

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "role": self.role,
            "phone": self.phone,
            "address": self.address,
            "createdAt": self.created_at.isoformat() + "Z" if self.created_at else None,
        }
