# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Admin endpoints – user lifecycle management and the audit trail.

Every endpoint in this router is guarded by ``require_admin``.  A request
that carries a valid session but belongs to a ``user`` role will receive 403
before any business logic runs.  Users are never deleted.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from admin.schemas import (
    ActivityLogListResponse,
    ChangeRoleRequest,
    CreateUserRequest,
    LoginLogListResponse,
    ResetPasswordRequest,
    RevealPasswordResponse,
    UserListResponse,
    UserRow,
)
from audit import log as audit
from auth import credentials
from core.exceptions import NotFound, Unauthorized
from core.logger import logger
from core.security import get_client_ip, require_admin
from database import get_db
from models.session import UserSession
from models.user import User

router = APIRouter(prefix="/admin", tags=["admin"])

_XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _acting_admin(db: Session, current: UserSession) -> User:
    admin = credentials.get_user(db, current.user_id)
    if admin is None:
        raise Unauthorized("User not found")
    return admin


def _target(db: Session, user_id: int) -> User:
    target = credentials.get_user(db, user_id)
    if target is None:
        raise NotFound("User not found")
    return target


# ---------------------------------------------------------------------------
# POST /admin/users  – create a new user
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserRow, status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserRequest,
    request: Request,
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Create a user account.  The new user will have ``force_password_change``
    set to True so they must set their own password on first login.
    """
    admin = _acting_admin(db, current)
    user = credentials.create_user(
        db,
        body.username,
        body.email,
        body.password,
        role=body.role,
        acting_admin=admin,
        ip=get_client_ip(request),
    )
    db.commit()
    db.refresh(user)
    return user


# ---------------------------------------------------------------------------
# GET /admin/users  – list all users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Return every user row (no password data – handled by the schema)."""
    users = db.scalars(select(User).order_by(User.id)).all()
    return UserListResponse(users=users)


# ---------------------------------------------------------------------------
# PUT /admin/users/{id}/reset-password  – admin resets another user's password
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/reset-password")
def reset_password(
    user_id: int,
    body: ResetPasswordRequest,
    request: Request,
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Overwrite a user's password.  For non-admin targets
    ``force_password_change`` is set so they must pick a new one.
    """
    admin = _acting_admin(db, current)
    target = _target(db, user_id)
    credentials.reset_credential(db, target, body.new_password, admin, get_client_ip(request))
    db.commit()

    return {"detail": "Password reset successfully"}


# ---------------------------------------------------------------------------
# PUT /admin/users/{id}/change-role  – promote or demote a user
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/change-role")
def change_role(
    user_id: int,
    body: ChangeRoleRequest,
    request: Request,
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Change the role of an existing user.  An admin cannot change their own
    role (prevents accidental self-lockout).
    """
    admin = _acting_admin(db, current)
    target = _target(db, user_id)
    credentials.change_role(db, target, body.role, admin, get_client_ip(request))
    db.commit()

    return {"detail": "Role updated"}


# ---------------------------------------------------------------------------
# PUT /admin/users/{id}/disable, /enable  – block or restore an account
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}/disable")
def disable_user(
    user_id: int,
    request: Request,
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Disable an account and drop its sessions.  Admins cannot disable themselves."""
    admin = _acting_admin(db, current)
    target = _target(db, user_id)
    credentials.set_active(db, target, False, admin, get_client_ip(request))
    db.commit()

    return {"detail": "User disabled"}


@router.put("/users/{user_id}/enable")
def enable_user(
    user_id: int,
    request: Request,
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    admin = _acting_admin(db, current)
    target = _target(db, user_id)
    credentials.set_active(db, target, True, admin, get_client_ip(request))
    db.commit()

    return {"detail": "User enabled"}


# ---------------------------------------------------------------------------
# GET /admin/users/{id}/password  – support read-back of a user's password
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}/password", response_model=RevealPasswordResponse)
def reveal_password(
    user_id: int,
    request: Request,
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Decrypt a non-admin user's current password.  Every read is written to
    the activity log.
    """
    admin = _acting_admin(db, current)
    target = _target(db, user_id)
    plain = credentials.reveal_password(target)

    audit.record_activity(
        db,
        action="reveal_password",
        user_id=admin.id,
        username=admin.username,
        details=f"viewed password of '{target.username}'",
        ip=get_client_ip(request),
    )
    db.commit()
    logger.info("Admin %s viewed the password of %s", admin.username, target.username)

    return RevealPasswordResponse(user_id=target.id, username=target.username, password=plain)


# ---------------------------------------------------------------------------
# GET /admin/login-logs, /admin/activity-logs  – paginated, newest first
# ---------------------------------------------------------------------------


@router.get("/login-logs", response_model=LoginLogListResponse)
def list_login_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(audit.DEFAULT_PAGE_SIZE, ge=1, le=audit.MAX_PAGE_SIZE),
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return LoginLogListResponse(
        page=page,
        page_size=page_size,
        total=audit.count_logins(db),
        logs=audit.list_logins(db, page, page_size),
    )


@router.get("/activity-logs", response_model=ActivityLogListResponse)
def list_activity_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(audit.DEFAULT_PAGE_SIZE, ge=1, le=audit.MAX_PAGE_SIZE),
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ActivityLogListResponse(
        page=page,
        page_size=page_size,
        total=audit.count_activities(db),
        logs=audit.list_activities(db, page, page_size),
    )


# ---------------------------------------------------------------------------
# GET /admin/*-logs/export  – download as Excel
# ---------------------------------------------------------------------------


@router.get("/login-logs/export")
def export_login_logs(
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return Response(
        content=audit.export_logins(db),
        media_type=_XLSX,
        headers={"Content-Disposition": 'attachment; filename="login-logs.xlsx"'},
    )


@router.get("/activity-logs/export")
def export_activity_logs(
    current: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return Response(
        content=audit.export_activities(db),
        media_type=_XLSX,
        headers={"Content-Disposition": 'attachment; filename="activity-logs.xlsx"'},
    )
