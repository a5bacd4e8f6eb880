# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""LoginLog ORM model – one row per login attempt, successful or not."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func

from database import Base

LOGIN_RESULTS = (
    "success",
    "user_not_found",
    "password_mismatch",
    "account_disabled",
    "system_error",
)


class LoginLog(Base):
    __tablename__ = "login_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # NULL when the submitted identifier matched no account
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    username = Column(String(255), nullable=True)               # as submitted
    ip = Column(String(45), nullable=True)                      # supports IPv6
    location = Column(String(255), nullable=True)
    user_agent = Column(String(255), nullable=True)
    result = Column(String(32), nullable=False, index=True)     # one of LOGIN_RESULTS
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
