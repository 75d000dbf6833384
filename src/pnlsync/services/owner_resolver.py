"""Resolves the owning user for rows a sync creates."""

from __future__ import annotations

import structlog

from pnlsync.core.exceptions import RecordNotResolvable
from pnlsync.core.protocols import IRecordStore
from pnlsync.models.records import PROFILES, USER_ROLES

logger = structlog.get_logger(__name__)


class OwnerResolver:
    """Explicit id, then configured owner, then first admin, then any profile."""

    def __init__(self, store: IRecordStore, owner_user_id: str | None = None) -> None:
        self._store = store
        self._owner_user_id = owner_user_id

    def resolve(self, preferred: str | None = None) -> str:
        if preferred:
            return preferred
        if self._owner_user_id:
            return self._owner_user_id

        admins = sorted(r["user_id"] for r in self._store.scan(USER_ROLES.name, {"role": "admin"}) if r.get("user_id"))
        if admins:
            return admins[0]

        profiles = sorted(r["user_id"] for r in self._store.scan(PROFILES.name) if r.get("user_id"))
        if profiles:
            return profiles[0]

        logger.error("owner_not_resolvable")
        raise RecordNotResolvable("No owning user: set PNLSYNC_SYNC_OWNER_USER_ID or add an admin role")
