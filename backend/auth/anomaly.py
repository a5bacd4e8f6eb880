# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Abnormal-login heuristic.

A login is compared with the user's single last recorded IP and location,
nothing more: no history, no velocity or impossible-travel analysis.  It
will flag routine ISP address churn as abnormal.  The verdict only drives
an alert; it never blocks the login.
"""

from dataclasses import dataclass
from typing import Optional

from core.geolocation import UNRESOLVED
from models.user import User

LOCATION_CHANGED = "location_changed"
IP_CHANGED = "ip_changed"


@dataclass(frozen=True)
class AnomalyVerdict:
    abnormal: bool
    reason: Optional[str] = None
    detail: str = ""


NORMAL = AnomalyVerdict(abnormal=False)


def classify(user: User, current_ip: Optional[str], current_location: Optional[str]) -> AnomalyVerdict:
    """
    Classify a login by *user* from *current_ip* / *current_location*.

    Must be called with the telemetry as it was *before* this login is
    recorded.  Location is checked first; the first mismatch wins.
    """
    last_ip = user.last_login_ip
    last_location = user.last_login_location

    if not last_ip and not last_location:
        return NORMAL

    # An unresolved lookup on either side says nothing about where the user is
    comparable = (
        last_location
        and current_location
        and last_location != UNRESOLVED.label
        and current_location != UNRESOLVED.label
    )
    if comparable and current_location != last_location:
        return AnomalyVerdict(
            abnormal=True,
            reason=LOCATION_CHANGED,
            detail=f"location changed from {last_location} to {current_location}",
        )

    if last_ip and current_ip and current_ip != last_ip:
        return AnomalyVerdict(
            abnormal=True,
            reason=IP_CHANGED,
            detail=f"ip changed from {last_ip} to {current_ip}",
        )

    return NORMAL
