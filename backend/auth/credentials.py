# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Credential store – user lookup, password verification and every write that
touches a user's secret or login telemetry.

Security notes
--------------
* Every role is verified against a pbkdf2 hash.  Non-admin accounts also
  keep an AES-GCM encrypted copy of the current password so an admin can
  read it back for support; it is never used for verification.
* ``verify`` burns a dummy hash check when the user does not exist, so the
  not-found and wrong-password paths cost the same.
* Login telemetry is one UPDATE statement; the increment happens in SQL so
  concurrent logins cannot lose a count.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from audit import log as audit
from auth import sessions
from core.exceptions import BadRequest, Conflict
from core.logger import logger
from core.security import (
    burn_password_check,
    decrypt_value,
    encrypt_value,
    hash_password,
    verify_password,
)
from models.user import User

VALID_ROLES = {"admin", "user"}


def validate_new_password(pw: str) -> Optional[str]:
    """
    Return an error string if the password does not meet the minimum policy,
    or None if it is acceptable.

    Policy: >= 8 chars, at least one uppercase, one lowercase, one digit.
    """
    if len(pw) < 8:
        return "Password must be at least 8 characters"
    if not re.search(r"[A-Z]", pw):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", pw):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", pw):
        return "Password must contain at least one digit"
    return None


# ---------------------------------------------------------------------------
# Lookup & verification
# ---------------------------------------------------------------------------


def find_by_username_or_email(db: Session, identifier: Optional[str]) -> Optional[User]:
    identifier = (identifier or "").strip()
    if not identifier:
        return None
    stmt = select(User).where(or_(User.username == identifier, User.email == identifier))
    return db.scalars(stmt).first()


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def verify(user: Optional[User], supplied_password: Optional[str]) -> bool:
    supplied_password = supplied_password or ""
    if user is None:
        burn_password_check(supplied_password)
        return False
    return verify_password(supplied_password, user.password_hash)


# ---------------------------------------------------------------------------
# Secret writes
# ---------------------------------------------------------------------------


def _set_password(user: User, plain: str) -> None:
    user.password_hash = hash_password(plain)
    if user.role == "admin":
        user.password_secret = None
        user.password_iv = None
    else:
        user.password_secret, user.password_iv = encrypt_value(plain)


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    role: str = "user",
    acting_admin: Optional[User] = None,
    ip: Optional[str] = None,
    force_password_change: bool = True,
) -> User:
    """
    Create an account.  Raises ``BadRequest`` for an unknown role and
    ``Conflict`` if the username or e-mail is taken.
    """
    if role not in VALID_ROLES:
        raise BadRequest("Invalid role. Must be 'admin' or 'user'")

    taken = db.scalars(
        select(User).where(or_(User.username == username, User.email == email))
    ).first()
    if taken:
        raise Conflict("Username or email already exists")

    user = User(
        username=username,
        email=email,
        role=role,
        force_password_change=force_password_change,
        login_count=0,
        is_online=False,
    )
    _set_password(user, password)
    db.add(user)
    try:
        db.flush()  # get user.id before logging
    except IntegrityError as exc:
        # lost a race with a concurrent insert of the same name or e-mail
        db.rollback()
        raise Conflict("Username or email already exists") from exc

    if acting_admin is not None:
        audit.record_activity(
            db,
            action="create_user",
            user_id=acting_admin.id,
            username=acting_admin.username,
            details=f"created {role} '{username}'",
            ip=ip,
        )
    return user


def reset_credential(
    db: Session,
    user: User,
    new_password: str,
    acting_admin: User,
    ip: Optional[str] = None,
) -> None:
    """
    Admin overwrite of *user*'s password.  Non-admin targets must change it
    on their next login; their live sessions are dropped.
    """
    _set_password(user, new_password)
    if user.role != "admin":
        user.force_password_change = True
    dropped = sessions.destroy_for_user(db, user.id)

    audit.record_activity(
        db,
        action="reset_password",
        user_id=acting_admin.id,
        username=acting_admin.username,
        details=f"reset password of '{user.username}'",
        ip=ip,
    )
    logger.info(
        "Admin %s reset password of %s (%d session(s) dropped)",
        acting_admin.username, user.username, dropped,
    )


def change_password(db: Session, user: User, old_password: str, new_password: str, ip: Optional[str] = None) -> None:
    """Self-service change; clears ``force_password_change``."""
    if not verify_password(old_password, user.password_hash):
        raise BadRequest("Old password is incorrect")

    err = validate_new_password(new_password)
    if err:
        raise BadRequest(err)

    _set_password(user, new_password)
    user.force_password_change = False
    audit.record_activity(db, action="change_password", user_id=user.id, username=user.username, ip=ip)


def change_role(db: Session, user: User, role: str, acting_admin: User, ip: Optional[str] = None) -> None:
    if role not in VALID_ROLES:
        raise BadRequest("Invalid role. Must be 'admin' or 'user'")
    if user.id == acting_admin.id:
        raise BadRequest("Cannot change your own role")

    user.role = role
    if role == "admin":
        # admins never keep a recoverable copy
        user.password_secret = None
        user.password_iv = None
    # the role is cached in live sessions
    sessions.destroy_for_user(db, user.id)
    audit.record_activity(
        db,
        action="change_role",
        user_id=acting_admin.id,
        username=acting_admin.username,
        details=f"'{user.username}' is now {role}",
        ip=ip,
    )


def set_active(db: Session, user: User, active: bool, acting_admin: User, ip: Optional[str] = None) -> None:
    """
    Enable or disable an account.  Disabling drops the user's live sessions;
    a disabled account cannot log in until it is enabled again.
    """
    if user.id == acting_admin.id and not active:
        raise BadRequest("Cannot disable your own account")

    user.is_active = active
    if not active:
        sessions.destroy_for_user(db, user.id)
        user.is_online = False
    audit.record_activity(
        db,
        action="enable_user" if active else "disable_user",
        user_id=acting_admin.id,
        username=acting_admin.username,
        details=f"{'enabled' if active else 'disabled'} '{user.username}'",
        ip=ip,
    )
    logger.info(
        "Admin %s %s account %s",
        acting_admin.username, "enabled" if active else "disabled", user.username,
    )


def reveal_password(user: User) -> Optional[str]:
    """Decrypt the support copy, or None if the account has none."""
    if not user.password_secret or not user.password_iv:
        return None
    return decrypt_value(user.password_secret, user.password_iv)


# ---------------------------------------------------------------------------
# Telemetry
# ---------------------------------------------------------------------------


def record_successful_login(db: Session, user: User, ip: Optional[str], location: Optional[str]) -> None:
    db.execute(
        update(User)
        .where(User.id == user.id)
        .values(
            login_count=User.login_count + 1,
            last_login=datetime.now(timezone.utc),
            last_login_ip=ip,
            last_login_location=location,
            is_online=True,
        )
        .execution_options(synchronize_session=False)
    )
    db.refresh(user)


def mark_offline(db: Session, user_id: int) -> None:
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(is_online=False)
        .execution_options(synchronize_session=False)
    )
