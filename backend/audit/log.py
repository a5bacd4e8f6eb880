# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Append-only audit trail: login attempts and user activities.

Only inserts and reads are exposed.  ``record_*`` add and flush so the new
id is available; committing is left to the caller, which lets a log row
share a transaction with the change it describes.
"""

import io
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.activity_log import ActivityLog
from models.login_log import LOGIN_RESULTS, LoginLog

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def record_login(
    db: Session,
    *,
    result: str,
    username: Optional[str],
    user_id: Optional[int] = None,
    ip: Optional[str] = None,
    location: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> int:
    """Insert a login attempt and return its id."""
    if result not in LOGIN_RESULTS:
        raise ValueError(f"unknown login result: {result!r}")
    row = LoginLog(
        user_id=user_id,
        username=(username or "")[:255] or None,
        ip=ip,
        location=location,
        user_agent=(user_agent or "")[:255] or None,
        result=result,
    )
    db.add(row)
    db.flush()
    return row.id


def record_activity(
    db: Session,
    *,
    action: str,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    details: Optional[str] = None,
    ip: Optional[str] = None,
) -> int:
    """Insert an activity entry and return its id."""
    row = ActivityLog(user_id=user_id, username=username, action=action, details=details, ip=ip)
    db.add(row)
    db.flush()
    return row.id


# ---------------------------------------------------------------------------
# Reads – newest first, offset pagination
# ---------------------------------------------------------------------------


def _offset(page: int, page_size: int) -> tuple[int, int]:
    page = max(page, 1)
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
    return (page - 1) * page_size, page_size


def list_logins(db: Session, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> list[LoginLog]:
    """A page past the end is an empty list."""
    offset, limit = _offset(page, page_size)
    stmt = (
        select(LoginLog)
        .order_by(LoginLog.created_at.desc(), LoginLog.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(db.scalars(stmt))


def list_activities(db: Session, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> list[ActivityLog]:
    offset, limit = _offset(page, page_size)
    stmt = (
        select(ActivityLog)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(db.scalars(stmt))


def count_logins(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(LoginLog)) or 0


def count_activities(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(ActivityLog)) or 0


# ---------------------------------------------------------------------------
# Excel export
# ---------------------------------------------------------------------------

_HEADER_FONT = Font(name="Calibri", size=11, bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="6C63FF", end_color="6C63FF", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", vertical="center")
_THIN_BORDER = Border(
    left=Side(style="thin", color="CCCCCC"),
    right=Side(style="thin", color="CCCCCC"),
    top=Side(style="thin", color="CCCCCC"),
    bottom=Side(style="thin", color="CCCCCC"),
)

_LOGIN_HEADERS = ["ID", "Time", "User", "Result", "IP", "Location", "User Agent"]
_LOGIN_WIDTHS = [8, 20, 24, 18, 16, 28, 50]

_ACTIVITY_HEADERS = ["ID", "Time", "User", "Action", "IP", "Details"]
_ACTIVITY_WIDTHS = [8, 20, 24, 18, 16, 50]


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


def _workbook(title: str, headers: list[str], widths: list[int], rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title

    ws.append(headers)
    for cell in ws[1]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN
        cell.border = _THIN_BORDER

    for values in rows:
        ws.append(values)
        for cell in ws[ws.max_row]:
            cell.border = _THIN_BORDER

    for col_idx, width in enumerate(widths, start=1):
        ws.column_dimensions[chr(64 + col_idx)].width = width

    buf = io.BytesIO()
    wb.save(buf)
    wb.close()
    return buf.getvalue()


def export_logins(db: Session) -> bytes:
    """Every login attempt, newest first, as an .xlsx document."""
    stmt = select(LoginLog).order_by(LoginLog.created_at.desc(), LoginLog.id.desc())
    rows = (
        [r.id, _fmt_time(r.created_at), r.username or "", r.result, r.ip or "", r.location or "", r.user_agent or ""]
        for r in db.scalars(stmt)
    )
    return _workbook("Login Logs", _LOGIN_HEADERS, _LOGIN_WIDTHS, rows)


def export_activities(db: Session) -> bytes:
    """Every activity entry, newest first, as an .xlsx document."""
    stmt = select(ActivityLog).order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    rows = (
        [r.id, _fmt_time(r.created_at), r.username or "", r.action, r.ip or "", r.details or ""]
        for r in db.scalars(stmt)
    )
    return _workbook("Activity Logs", _ACTIVITY_HEADERS, _ACTIVITY_WIDTHS, rows)
