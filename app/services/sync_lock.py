"""
app/services/sync_lock.py

Per-connection single-flight guard around a reconciliation pass.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from app.repositories.connection_repository import ConnectionRepository

logger = logging.getLogger(__name__)


class SyncInProgressError(RuntimeError):
    """
    Raised when another pass already holds the connection's sync flag.
    """

    def __init__(self, connection_id: uuid.UUID) -> None:
        super().__init__("Sync is already in progress for this connection")
        self.connection_id = connection_id


class ConnectionSyncLock:
    """
    Context manager over the connection's ``is_syncing`` flag.

    The claim is committed before the body runs so concurrent passes observe
    it. Leaving the block without ``complete`` discards uncommitted work and
    clears the flag.
    """

    def __init__(
        self,
        *,
        session: Session,
        connections: ConnectionRepository,
        connection_id: uuid.UUID,
    ) -> None:
        self._session = session
        self._connections = connections
        self._connection_id = connection_id
        self._held = False

    def __enter__(self) -> ConnectionSyncLock:
        acquired = self._connections.claim_sync_lock(self._connection_id)
        self._session.commit()
        if not acquired:
            logger.info("Sync lock busy connection_id=%s", self._connection_id)
            raise SyncInProgressError(self._connection_id)
        self._held = True
        logger.debug("Sync lock claimed connection_id=%s", self._connection_id)
        return self

    def complete(self, *, last_synced_at: datetime, next_sync_at: datetime | None) -> None:
        """
        Persist pass timestamps and release the flag in the same commit.
        """

        self._connections.record_sync_completion(
            self._connection_id,
            last_synced_at=last_synced_at,
            next_sync_at=next_sync_at,
        )
        self._session.commit()
        self._held = False

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._held:
            return
        self._held = False
        self._session.rollback()
        self._connections.release_sync_lock(self._connection_id)
        self._session.commit()
        logger.warning(
            "Sync lock released without completion connection_id=%s error=%s",
            self._connection_id,
            exc,
        )
