from __future__ import annotations

from typing import Optional, Protocol

from .model import OrganizationSettings


class OrganizationSettingsRepository(Protocol):
    def get_for_org(self, org_id: int) -> Optional[OrganizationSettings]:
        raise NotImplementedError
