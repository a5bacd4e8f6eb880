# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Bootstrap script – creates the tables and the first admin user.

Run once before starting the service:
    python bin/init_db.py

The script reads FIRST_ADMIN_USERNAME, FIRST_ADMIN_EMAIL and
FIRST_ADMIN_PASSWORD from etc/app.conf.  After the row is inserted those
values are no longer used by the application.  Running it again is safe.

The admin account starts with ``force_password_change = True``, so the
operator must set a permanent password on first login.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/init_db.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from sqlalchemy import select                  # noqa: E402

from auth import credentials                   # noqa: E402
from core.config import settings               # noqa: E402
from core.exceptions import Conflict           # noqa: E402
from database import SessionLocal, init_db     # noqa: E402
from models.user import User                   # noqa: E402


def seed(db) -> bool:
    """Create the first admin unless one exists.  Returns True if created."""
    if not settings.first_admin_email or not settings.first_admin_password:
        print("[init_db] FIRST_ADMIN_EMAIL or FIRST_ADMIN_PASSWORD not set in etc/app.conf – no admin created.")
        return False

    existing = db.scalars(select(User).where(User.role == "admin")).first()
    if existing:
        print(f"[init_db] Admin '{existing.username}' already exists – skipping.")
        return False

    try:
        credentials.create_user(
            db,
            settings.first_admin_username,
            settings.first_admin_email,
            settings.first_admin_password,
            role="admin",
            force_password_change=True,
        )
    except Conflict:
        print(f"[init_db] '{settings.first_admin_username}' is taken by a non-admin account – skipping.")
        return False
    db.commit()
    print(f"[init_db] Admin '{settings.first_admin_username}' created successfully.")
    return True


def main():
    init_db()
    print("[init_db] Tables ready.")
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
