# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
IP → coarse location lookup.

Private, loopback and otherwise non-routable addresses never leave the
process: they map to ``LOCAL_NETWORK``.  Public addresses are looked up
against an ip-api.com compatible endpoint.  The whole lookup runs on a
worker thread and ``resolve`` returns within ``timeout`` seconds even when the
provider trickles its response.  Any failure degrades to ``UNRESOLVED``;
``resolve`` never raises.
"""

import ipaddress
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as LookupTimeout
from dataclasses import dataclass
from typing import Optional

import requests

from core.config import settings
from core.exceptions import GeolocationUnresolved
from core.logger import logger

_FIELDS = "status,message,country,regionName,city,district,isp"

# Shared by every resolver; a timed-out lookup keeps its worker until the
# socket timeout fires, the caller does not wait for it.
_lookup_pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="geoip")


@dataclass(frozen=True)
class LocationDescriptor:
    label: str
    resolved: bool = True
    local: bool = False
    country: str = ""
    region: str = ""
    city: str = ""
    district: str = ""
    isp: str = ""

    def __str__(self) -> str:
        return self.label


LOCAL_NETWORK = LocationDescriptor(label="Local network", local=True)
UNRESOLVED = LocationDescriptor(label="Unknown", resolved=False)


def is_local_address(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_reserved
        or addr.is_unspecified
    )


class GeolocationResolver:
    """Resolve client IPs to a human-readable location string."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        lang: Optional[str] = None,
        http: Optional[requests.Session] = None,
    ):
        self.url = url or settings.geoip_url
        self.timeout = timeout if timeout is not None else settings.geoip_timeout
        self.lang = lang or settings.geoip_lang
        self.http = http or requests.Session()

    def resolve(self, ip: Optional[str]) -> LocationDescriptor:
        if not ip:
            return UNRESOLVED
        if is_local_address(ip):
            return LOCAL_NETWORK
        try:
            ipaddress.ip_address(ip)
        except ValueError:
            logger.warning("Geolocation skipped, not an IP address: %r", ip)
            return UNRESOLVED

        future = _lookup_pool.submit(self._lookup, ip)
        try:
            return future.result(timeout=self.timeout)
        except LookupTimeout:
            future.cancel()
            logger.warning("Geolocation for %s gave up after %ss", ip, self.timeout)
            return UNRESOLVED
        except GeolocationUnresolved as exc:
            logger.warning("Geolocation failed for %s: %s", ip, exc)
            return UNRESOLVED

    def _lookup(self, ip: str) -> LocationDescriptor:
        try:
            resp = self.http.get(
                self.url.format(ip=ip),
                params={"lang": self.lang, "fields": _FIELDS},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.Timeout as exc:
            raise GeolocationUnresolved(f"timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise GeolocationUnresolved(str(exc)) from exc
        except ValueError as exc:
            raise GeolocationUnresolved("malformed response body") from exc

        if not isinstance(data, dict) or data.get("status") != "success":
            reason = data.get("message") if isinstance(data, dict) else None
            raise GeolocationUnresolved(f"provider status not success ({reason or 'no reason'})")

        return _descriptor_from(data)


def _descriptor_from(data: dict) -> LocationDescriptor:
    country = (data.get("country") or "").strip()
    region = (data.get("regionName") or "").strip()
    city = (data.get("city") or "").strip()
    district = (data.get("district") or "").strip()

    # "China Beijing Beijing" reads badly for municipalities; drop repeats
    parts: list[str] = []
    for part in (country, region, city, district):
        if part and part not in parts:
            parts.append(part)
    if not parts:
        raise GeolocationUnresolved("provider returned no location fields")

    return LocationDescriptor(
        label=" ".join(parts),
        country=country,
        region=region,
        city=city,
        district=district,
        isp=(data.get("isp") or "").strip(),
    )
