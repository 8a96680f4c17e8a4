"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException, status

from app.config import SyncSettings, get_sync_settings


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )


def get_owner_id(x_owner_id: str | None = Header(default=None)) -> str:
    """
    Resolve the calling owner from the ``X-Owner-Id`` header.
    """

    owner_id = (x_owner_id or "").strip()
    if not owner_id:
        raise _unauthorized()
    return owner_id


def require_auto_sync_caller(
    authorization: str | None = Header(default=None),
    x_owner_id: str | None = Header(default=None),
    settings: SyncSettings = Depends(get_sync_settings),
) -> None:
    """
    Guard the cross-tenant auto-sync sweep.

    With ``CRON_SECRET`` set, only ``Authorization: Bearer <CRON_SECRET>`` is
    accepted. Without it, any identified owner may trigger the sweep.
    """

    if settings.cron_secret is None:
        get_owner_id(x_owner_id)
        return

    expected = f"Bearer {settings.cron_secret}"
    if not secrets.compare_digest((authorization or "").strip(), expected):
        raise _unauthorized()
