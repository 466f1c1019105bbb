from __future__ import annotations

import ipaddress
import logging
import re
from dataclasses import dataclass

import httpx

from propertyhub.core.config import settings

log = logging.getLogger(__name__)

UNKNOWN = "Unknown"

_TABLET = re.compile(r"ipad|tablet|kindle|silk|playbook|(android(?!.*mobile))", re.I)
_MOBILE = re.compile(r"mobile|iphone|ipod|android|blackberry|opera mini|iemobile|windows phone", re.I)


@dataclass(frozen=True)
class ClientContext:
    country: str = UNKNOWN
    city: str = UNKNOWN
    device_type: str = "desktop"


def device_type_of(user_agent: str | None) -> str:
    ua = user_agent or ""
    if _TABLET.search(ua):
        return "tablet"
    if _MOBILE.search(ua):
        return "mobile"
    return "desktop"


def client_ip(forwarded_for: str | None, peer: str | None) -> str | None:
    # first hop of X-Forwarded-For is the original client
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or peer
    return peer


def _is_public(ip: str | None) -> bool:
    if not ip:
        return False
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return addr.is_global


class GeoResolver:
    """
    Best-effort country/city lookup over an HTTP geo-IP service.

    `lookup_url` is a template with an `{ip}` placeholder returning JSON with
    `country_name` (or `country`) and `city`. Lookups never raise.
    """

    def __init__(self, lookup_url: str, *, timeout_seconds: float = 2.0, transport: httpx.AsyncBaseTransport | None = None):
        self.lookup_url = lookup_url
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    async def lookup(self, ip: str | None) -> tuple[str, str]:
        if not self.lookup_url or not _is_public(ip):
            return UNKNOWN, UNKNOWN

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(self.lookup_url.format(ip=ip))
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError):
            log.info("geo lookup failed ip=%s", ip, exc_info=True)
            return UNKNOWN, UNKNOWN

        if not isinstance(body, dict):
            return UNKNOWN, UNKNOWN
        country = body.get("country_name") or body.get("country") or UNKNOWN
        city = body.get("city") or UNKNOWN
        return str(country), str(city)

    async def resolve(self, ip: str | None, user_agent: str | None) -> ClientContext:
        country, city = await self.lookup(ip)
        return ClientContext(country=country, city=city, device_type=device_type_of(user_agent))


def get_geo_resolver() -> GeoResolver:
    return GeoResolver(settings.geo_lookup_url, timeout_seconds=settings.geo_timeout_seconds)
