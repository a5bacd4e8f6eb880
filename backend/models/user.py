# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""User ORM model."""

from sqlalchemy import Column, Integer, String, Boolean, Enum, DateTime, Text
from sqlalchemy.sql import func

from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    # pbkdf2_sha256 for every role; the salt is embedded in the hash string.
    password_hash = Column(String(255), nullable=False)
    # AES-256-GCM copy of a non-admin's current password so an admin can
    # read it back for support.  Always NULL for admins.
    password_secret = Column(Text, nullable=True)
    password_iv = Column(String(64), nullable=True)
    role = Column(Enum("admin", "user", name="user_role"), nullable=False, default="user")
    force_password_change = Column(Boolean, nullable=False, default=False)
    # Disabled accounts cannot log in and their sessions are rejected
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")

    # Login telemetry – written by a single UPDATE per successful login
    last_login = Column(DateTime(timezone=True), nullable=True)
    last_login_ip = Column(String(45), nullable=True)
    last_login_location = Column(String(255), nullable=True)
    login_count = Column(Integer, nullable=False, default=0, server_default="0")
    is_online = Column(Boolean, nullable=False, default=False, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def is_admin(self) -> bool:
        return self.role == "admin"
