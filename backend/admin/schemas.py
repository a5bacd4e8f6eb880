# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the admin endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


# -- Requests --------------------------------------------------------------


class CreateUserRequest(BaseModel):
    username: str
    email: str
    password: str
    role: str = "user"  # "admin" or "user"


class ResetPasswordRequest(BaseModel):
    new_password: str


class ChangeRoleRequest(BaseModel):
    role: str  # "admin" or "user"


# -- Responses -------------------------------------------------------------


class UserRow(BaseModel):
    id: int
    username: str
    email: str
    role: str
    force_password_change: bool
    is_active: bool
    is_online: bool
    login_count: int
    last_login: Optional[datetime] = None
    last_login_ip: Optional[str] = None
    last_login_location: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: List[UserRow]


class RevealPasswordResponse(BaseModel):
    user_id: int
    username: str
    password: Optional[str] = None  # None when no recoverable copy exists


# -- Log responses ---------------------------------------------------------


class LoginLogRow(BaseModel):
    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    ip: Optional[str] = None
    location: Optional[str] = None
    user_agent: Optional[str] = None
    result: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LoginLogListResponse(BaseModel):
    page: int
    page_size: int
    total: int
    logs: List[LoginLogRow]


class ActivityLogRow(BaseModel):
    id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    action: str
    details: Optional[str] = None
    ip: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ActivityLogListResponse(BaseModel):
    page: int
    page_size: int
    total: int
    logs: List[ActivityLogRow]
