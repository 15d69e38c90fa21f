"""Extract coordinates from map links attached to LINK/LEGACY locations.

Supported forms:

- ``https://maps.google.com/?q=lat,lng``
- ``https://www.google.com/maps/place/.../@lat,lng,zoom``
- ``https://maps.google.com/maps?ll=lat,lng``
- ``https://www.google.com/maps/@lat,lng,zoom``
- any ``lat,lng`` pair inside the URL

Short links (``maps.app.goo.gl``, ``goo.gl/maps``) need an HTTP round trip and
are only followed by :func:`resolve_link`; :func:`parse_link` never touches
the network.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import requests

from ..core.constants import LINK_MAX_REDIRECTS, LINK_TIMEOUT_SECONDS
from .model import GeoPoint, LocationDescriptor

logger = logging.getLogger(__name__)

_NUM = r"([+-]?\d+\.?\d*)"
_PATTERNS = (
    re.compile(rf"[?&]q={_NUM},{_NUM}"),
    re.compile(rf"@{_NUM},{_NUM}"),
    re.compile(rf"[?&]ll={_NUM},{_NUM}"),
    re.compile(rf"/maps/@{_NUM},{_NUM}"),
    re.compile(rf"{_NUM},{_NUM}"),
)
_SHORT_LINK = re.compile(r"^(https?://)?(maps\.app\.goo\.gl|goo\.gl/maps)/")


def _valid_point(lat: float, lng: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lng <= 180


def parse_link(url: Optional[str]) -> Optional[GeoPoint]:
    if not url or not isinstance(url, str):
        return None

    trimmed = url.strip()
    for pattern in _PATTERNS:
        match = pattern.search(trimmed)
        if not match:
            continue
        lat, lng = float(match.group(1)), float(match.group(2))
        if _valid_point(lat, lng):
            return GeoPoint(latitude=lat, longitude=lng)
    return None


def is_short_link(url: str) -> bool:
    return bool(_SHORT_LINK.match(url.strip()))


def resolve_link(
    url: Optional[str],
    *,
    http: Optional[requests.Session] = None,
    timeout: float = LINK_TIMEOUT_SECONDS,
) -> Optional[GeoPoint]:
    """Like :func:`parse_link`, but follows short-link redirects first."""
    if not url or not isinstance(url, str):
        return None

    target = url.strip()
    if is_short_link(target):
        if http is None:
            http = requests.Session()
            http.max_redirects = LINK_MAX_REDIRECTS
        try:
            resp = http.head(target, allow_redirects=True, timeout=timeout)
            final_url = resp.url or target
            if final_url == target or "google." not in final_url:
                resp = http.get(target, allow_redirects=True, timeout=timeout)
                final_url = resp.url or final_url
            target = final_url
        except requests.RequestException as e:
            # Still try the original URL below.
            logger.warning("Failed to follow redirect for maps link %s: %s", target, e)

    return parse_link(target)


def session_fix(location: LocationDescriptor) -> Optional[GeoPoint]:
    """The configured coordinates of a session, whatever the descriptor kind.

    Stored coordinates win; otherwise the link is parsed offline. Every kind
    goes through the same rule.
    """
    if location.geolocation is not None:
        return location.geolocation
    return parse_link(location.link)
