from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol, Sequence

from .model import GeoPoint, Session


class SessionRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[Session]:
        raise NotImplementedError

    def get_many(self, session_ids: Iterable[int]) -> Mapping[int, Session]:
        """Sessions keyed by id; ids that no longer exist are absent."""

        raise NotImplementedError

    def mark_roster_present(self, *, session_id: int, user_id: int, is_late: bool) -> bool:
        """Flip one roster entry to Present (and late when applicable).

        Returns False when the user has no roster entry.
        """

        raise NotImplementedError

    def list_missing_geolocation(self) -> Sequence[Session]:
        """PHYSICAL/HYBRID sessions with a LINK/LEGACY descriptor and no coordinates."""

        raise NotImplementedError

    def set_geolocation(self, *, session_id: int, point: GeoPoint) -> bool:
        raise NotImplementedError
