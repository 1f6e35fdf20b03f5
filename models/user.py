"""User model definition."""

from datetime import datetime

from . import db


USER_ROLES = ("Admin", "Trainer", "Student")
DEFAULT_ROLE = "Student"


class User(db.Model):
    """Represents an LMS account."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default=DEFAULT_ROLE, index=True)
    name = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    location = db.Column(db.String(120), nullable=True)
    about = db.Column(db.Text, nullable=True)
    skills = db.Column(db.JSON, nullable=False, default=list)
    profile_pic = db.Column(db.String(512), nullable=True)
    is_verified = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.false(),
    )
    verification_code_hash = db.Column(db.String(255), nullable=True)
    verification_code_expires_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        """Serialize the user without any credential material."""

        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "name": self.name,
            "phone": self.phone,
            "location": self.location,
            "about": self.about,
            "skills": list(self.skills or []),
            "profilePic": self.profile_pic,
            "isVerified": bool(self.is_verified),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def to_record(self) -> dict:
        """Serialize the user including the secrets used for authentication."""

        record = self.to_dict()
        record["password_hash"] = self.password_hash
        record["verification_code_hash"] = self.verification_code_hash
        record["verification_code_expires_at"] = self.verification_code_expires_at
        return record

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
