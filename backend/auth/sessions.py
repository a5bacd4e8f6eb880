# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Server-side session store.

A session is a row in ``sessions`` keyed by an opaque random id.  Its life
is  anonymous → authenticated (``issue``) → destroyed (``destroy`` or
expiry).  Lifetime is a fixed TTL from issuance; reads never extend it.

Functions here only ``flush``; the caller owns the transaction, except for
``resolve`` which commits the removal of an expired row it stumbles on.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from core.config import settings
from models.session import UserSession
from models.user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def issue(db: Session, user: User, ip: Optional[str] = None, user_agent: Optional[str] = None) -> UserSession:
    """Create a session for *user* valid for ``settings.session_ttl_hours``."""
    now = _utcnow()
    row = UserSession(
        id=secrets.token_urlsafe(32),
        user_id=user.id,
        username=user.username,
        role=user.role,
        ip=ip,
        user_agent=user_agent,
        created_at=now,
        expires_at=now + timedelta(hours=settings.session_ttl_hours),
    )
    db.add(row)
    db.flush()
    return row


def is_expired(row: UserSession, now: Optional[datetime] = None) -> bool:
    return _as_utc(row.expires_at) <= (now or _utcnow())


def resolve(db: Session, session_id: str) -> Optional[UserSession]:
    """Return the live session for *session_id*, or None if unknown / expired."""
    row = db.get(UserSession, session_id)
    if row is None:
        return None
    if is_expired(row):
        db.delete(row)
        db.commit()
        return None
    return row


def destroy(db: Session, session_id: Optional[str]) -> Optional[UserSession]:
    """
    Remove a session.  Returns the removed row, or None when there was
    nothing to remove – destroying twice is not an error.
    """
    if not session_id:
        return None
    row = db.get(UserSession, session_id)
    if row is None:
        return None
    db.delete(row)
    db.flush()
    return row


def destroy_for_user(db: Session, user_id: int) -> int:
    """Drop every session belonging to *user_id*; returns how many."""
    result = db.execute(
        delete(UserSession)
        .where(UserSession.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def purge_expired(db: Session) -> int:
    """Delete every session past its expiry; returns how many."""
    result = db.execute(
        delete(UserSession)
        .where(UserSession.expires_at <= _utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
