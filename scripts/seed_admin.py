"""Seed an administrator user."""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app  # noqa: E402
from errors import NotFoundError  # noqa: E402

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "AdminPass123")


def main() -> None:
    app = create_app()
    with app.app_context():
        service = app.extensions["provisioning"]
        try:
            admin = service.find_by_email(ADMIN_EMAIL)
        except NotFoundError:
            service.create_with_password(
                {"email": ADMIN_EMAIL, "role": "Admin", "name": "Administrator"}, ADMIN_PASSWORD
            )
            action = "created"
        else:
            service.change_password(admin["id"], ADMIN_PASSWORD)
            action = "updated"
        print(f"Admin user {action}: {ADMIN_EMAIL}")


if __name__ == "__main__":
    main()
