from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .maps_link import resolve_link
from .model import GeoPoint
from .repository import SessionRepository

logger = logging.getLogger(__name__)


@dataclass
class MigrationSummary:
    total: int = 0
    fixed: int = 0
    failed: int = 0
    skipped: int = 0
    failures: List[int] = field(default_factory=list)


def backfill_session_locations(
    sessions: SessionRepository,
    *,
    resolve: Callable[[Optional[str]], Optional[GeoPoint]] = resolve_link,
) -> MigrationSummary:
    """Store coordinates for physical/hybrid sessions that only have a maps link."""
    summary = MigrationSummary()
    for s in sessions.list_missing_geolocation():
        summary.total += 1
        if s.location.geolocation is not None or not s.location.link:
            summary.skipped += 1
            continue

        point = resolve(s.location.link)
        if point is None:
            logger.warning("Session %s (%s): could not extract coordinates from %s", s.session_id, s.name, s.location.link)
            summary.failed += 1
            summary.failures.append(s.session_id)
            continue

        sessions.set_geolocation(session_id=s.session_id, point=point)
        logger.info("Session %s (%s): set location to %s,%s", s.session_id, s.name, point.latitude, point.longitude)
        summary.fixed += 1

    return summary
