"""Tests for the User model helpers."""

from models import db
from models.user import DEFAULT_ROLE, User


def test_user_defaults_and_redacted_projection(app):
    """Serialization should expose profile fields but never credential material."""

    with app.app_context():
        user = User(email="helper@example.com", password_hash="hash")
        db.session.add(user)
        db.session.commit()

        assert user.role == DEFAULT_ROLE
        assert user.skills == []
        assert user.is_verified is False

        data = user.to_dict()
        assert data["email"] == "helper@example.com"
        assert data["profilePic"] is None
        assert data["createdAt"]
        assert "password_hash" not in data
        assert "verification_code_hash" not in data

        record = user.to_record()
        assert record["password_hash"] == "hash"


def test_role_index_matches_migration():
    assert "ix_users_role" in {index.name for index in User.__table__.indexes}
