# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Login / logout orchestration.

    lookup → verify → geolocate → classify → telemetry + session + logs
    (one commit) → alert in the background if abnormal and not an admin

Every attempt writes exactly one login_logs row.  Failures raise a subclass
of ``InvalidCredentials`` whose message is the same whichever check failed;
a database failure raises ``StorageError`` after a best-effort
``system_error`` row.  Anomalies never block a login.
"""

from dataclasses import dataclass
from typing import Callable, NoReturn, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from audit import log as audit
from auth import anomaly, credentials, sessions
from auth.anomaly import AnomalyVerdict
from core.exceptions import AccountDisabled, PasswordMismatch, StorageError, UserNotFound
from core.geolocation import GeolocationResolver, LocationDescriptor
from core.logger import logger
from core.notifier import Notifier
from models.session import UserSession
from models.user import User


@dataclass
class AuthContext:
    """Per-request collaborators; built by ``get_auth_context`` in the router."""

    db: Session
    resolver: GeolocationResolver
    notifier: Notifier
    # Runs fn(*args) after the response, e.g. BackgroundTasks.add_task
    schedule: Callable[..., None]


@dataclass
class LoginOutcome:
    session: UserSession
    user: User
    location: LocationDescriptor
    verdict: AnomalyVerdict


def _fail_storage(
    ctx: AuthContext,
    exc: SQLAlchemyError,
    identifier: Optional[str],
    user_id: Optional[int],
    ip: Optional[str],
    location: Optional[str],
    user_agent: Optional[str],
) -> NoReturn:
    db = ctx.db
    db.rollback()
    logger.error("Storage error during login of %r: %s", identifier, exc)
    try:
        audit.record_login(
            db,
            result="system_error",
            username=identifier,
            user_id=user_id,
            ip=ip,
            location=location,
            user_agent=user_agent,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record system_error login for %r", identifier)
    raise StorageError() from exc


def login(
    ctx: AuthContext,
    identifier: Optional[str],
    password: Optional[str],
    client_ip: Optional[str],
    user_agent: Optional[str] = None,
) -> LoginOutcome:
    db = ctx.db

    try:
        user = credentials.find_by_username_or_email(db, identifier)
    except SQLAlchemyError as exc:
        _fail_storage(ctx, exc, identifier, None, client_ip, None, user_agent)

    user_id = user.id if user is not None else None
    ok = credentials.verify(user, password)
    location = ctx.resolver.resolve(client_ip)

    if not ok or not user.is_active:
        if user is None:
            err = UserNotFound()
        elif not ok:
            err = PasswordMismatch()
        else:
            err = AccountDisabled()
        try:
            audit.record_login(
                db,
                result=err.result,
                username=identifier,
                user_id=user_id,
                ip=client_ip,
                location=location.label,
                user_agent=user_agent,
            )
            db.commit()
        except SQLAlchemyError as exc:
            _fail_storage(ctx, exc, identifier, user_id, client_ip, location.label, user_agent)
        logger.warning("Login failed for %r from %s: %s", identifier, client_ip, err.result)
        raise err

    # classify against the telemetry of the *previous* login
    verdict = anomaly.classify(user, client_ip, location.label)

    try:
        sessions.purge_expired(db)
        credentials.record_successful_login(db, user, client_ip, location.label)
        session = sessions.issue(db, user, client_ip, user_agent)
        audit.record_login(
            db,
            result="success",
            username=identifier,
            user_id=user.id,
            ip=client_ip,
            location=location.label,
            user_agent=user_agent,
        )
        audit.record_activity(
            db,
            action="login",
            user_id=user.id,
            username=user.username,
            details=location.label,
            ip=client_ip,
        )
        if verdict.abnormal:
            audit.record_activity(
                db,
                action="abnormal_login",
                user_id=user.id,
                username=user.username,
                details=verdict.detail,
                ip=client_ip,
            )
        db.commit()
    except SQLAlchemyError as exc:
        _fail_storage(ctx, exc, identifier, user_id, client_ip, location.label, user_agent)

    logger.info("Login success: %s from %s (%s)", user.username, client_ip, location.label)

    if verdict.abnormal:
        logger.warning("Abnormal login for %s: %s", user.username, verdict.detail)
        # the operator's own account would only generate noise
        if not user.is_admin():
            ctx.schedule(
                ctx.notifier.notify_abnormal_login,
                user.username,
                client_ip,
                location.label,
                verdict.detail,
            )

    return LoginOutcome(session=session, user=user, location=location, verdict=verdict)


def logout(ctx: AuthContext, session_id: Optional[str], client_ip: Optional[str] = None) -> bool:
    """
    Destroy the session behind *session_id*.  Returns False (and does
    nothing) if it is already gone.
    """
    db = ctx.db
    try:
        row = sessions.destroy(db, session_id)
        if row is None:
            return False

        credentials.mark_offline(db, row.user_id)
        audit.record_activity(db, action="logout", user_id=row.user_id, username=row.username, ip=client_ip)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage error during logout: %s", exc)
        raise StorageError() from exc
    logger.info("Logout: %s", row.username)
    return True
