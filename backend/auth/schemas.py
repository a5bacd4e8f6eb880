# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


# -- Requests --------------------------------------------------------------


class LoginRequest(BaseModel):
    identifier: str  # username or email
    password: str


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str


# -- Responses -------------------------------------------------------------


class LoginResponse(BaseModel):
    session_id: str
    token_type: str  # always "bearer"
    expires_at: datetime
    user_id: int
    username: str
    role: str
    force_password_change: bool


class UserInfoResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    force_password_change: bool
    is_active: bool
    last_login: Optional[datetime] = None
    last_login_ip: Optional[str] = None
    last_login_location: Optional[str] = None
    login_count: int

    model_config = {"from_attributes": True}
