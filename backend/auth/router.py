# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – login, logout, password change, current-user info.

Security notes
--------------
* Login returns the *same* error message whether the account doesn't exist
  or the password is wrong.  This prevents user-enumeration attacks; the
  real reason only goes to login_logs.
* Logout is idempotent: an unknown or already-destroyed session is a no-op.
* change-password verifies the old password before accepting the new one,
  so a stolen (but not yet expired) session alone cannot reset the password.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from auth import credentials, service
from auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    UserInfoResponse,
)
from auth.service import AuthContext
from core.exceptions import Unauthorized
from core.geolocation import GeolocationResolver
from core.notifier import Notifier
from core.security import get_client_ip, get_user_agent, oauth2_scheme, require_auth
from database import get_db
from models.session import UserSession

router = APIRouter(prefix="/auth", tags=["auth"])

_resolver = GeolocationResolver()
_notifier = Notifier()


def get_resolver() -> GeolocationResolver:
    return _resolver


def get_notifier() -> Notifier:
    return _notifier


def get_auth_context(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    resolver: GeolocationResolver = Depends(get_resolver),
    notifier: Notifier = Depends(get_notifier),
) -> AuthContext:
    return AuthContext(db=db, resolver=resolver, notifier=notifier, schedule=background_tasks.add_task)


# ---------------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, request: Request, ctx: AuthContext = Depends(get_auth_context)):
    """Authenticate and open a server-side session."""
    outcome = service.login(
        ctx,
        body.identifier,
        body.password,
        get_client_ip(request),
        get_user_agent(request),
    )
    return LoginResponse(
        session_id=outcome.session.id,
        token_type="bearer",
        expires_at=outcome.session.expires_at,
        user_id=outcome.user.id,
        username=outcome.user.username,
        role=outcome.user.role,
        force_password_change=outcome.user.force_password_change,
    )


# ---------------------------------------------------------------------------
# POST /auth/logout
# ---------------------------------------------------------------------------


@router.post("/logout")
def logout(
    request: Request,
    session_id: Optional[str] = Depends(oauth2_scheme),
    ctx: AuthContext = Depends(get_auth_context),
):
    service.logout(ctx, session_id, get_client_ip(request))
    return {"detail": "Logged out"}


# ---------------------------------------------------------------------------
# PUT /auth/change-password
# ---------------------------------------------------------------------------


@router.put("/change-password")
def change_password(
    body: ChangePasswordRequest,
    request: Request,
    current: UserSession = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """
    Change the authenticated user's login password.
    Also clears the force_password_change flag.
    """
    user = credentials.get_user(db, current.user_id)
    if user is None:
        raise Unauthorized("User not found")

    credentials.change_password(db, user, body.old_password, body.new_password, get_client_ip(request))
    db.commit()

    return {"detail": "Password changed successfully"}


# ---------------------------------------------------------------------------
# GET /auth/me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserInfoResponse)
def me(current: UserSession = Depends(require_auth), db: Session = Depends(get_db)):
    """Return the authenticated user's public profile (no secrets)."""
    user = credentials.get_user(db, current.user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user
