"""
app/api/routers/sync.py

On-demand and auto-sync HTTP endpoints for the mirror.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_owner_id, require_auto_sync_caller
from app.schemas.sync import (
    AutoSyncResponse,
    AutoSyncResultResponse,
    MappingSyncResultResponse,
    SyncErrorResponse,
    SyncNowRequest,
    SyncNowResponse,
)
from app.services.sync_lock import SyncInProgressError
from app.services.sync_service import (
    ConnectionNotFoundError,
    SyncPassError,
    SyncReconciler,
    get_sync_reconciler,
)
from db.session import get_db

router = APIRouter(tags=["sync"])


def _error(status_code: int, message: str, code: str | None = None) -> JSONResponse:
    body = SyncErrorResponse(code=code, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post(
    "/mapped-database/sync-now",
    response_model=SyncNowResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": SyncErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": SyncErrorResponse},
        status.HTTP_409_CONFLICT: {"model": SyncErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": SyncErrorResponse},
    },
)
def sync_now(
    payload: SyncNowRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    reconciler: SyncReconciler = Depends(get_sync_reconciler),
) -> SyncNowResponse | JSONResponse:
    """
    Run one reconciliation pass over every mapping of a connection.
    """

    if payload.connection_id is None:
        return _error(status.HTTP_400_BAD_REQUEST, "Connection ID is required")

    try:
        result = reconciler.sync_connection(
            db=db,
            connection_id=payload.connection_id,
            owner_id=owner_id,
        )
    except ConnectionNotFoundError as exc:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))
    except SyncInProgressError as exc:
        return _error(status.HTTP_409_CONFLICT, str(exc))
    except SyncPassError as exc:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), code=exc.code)

    return SyncNowResponse(
        status=result.status,
        last_synced_at=result.last_synced_at,
        next_sync_at=result.next_sync_at,
        results=[
            MappingSyncResultResponse(
                mapping_id=item.mapping_id,
                resource=item.resource,
                inserted=item.inserted,
                updated=item.updated,
                deactivated=item.deactivated,
                total_external=item.total_external,
                total_mapped=item.total_mapped,
                success=item.success,
                error=item.error,
            )
            for item in result.results
        ],
    )


@router.post(
    "/sync/auto",
    response_model=AutoSyncResponse,
    dependencies=[Depends(require_auto_sync_caller)],
)
def run_auto_sync(
    db: Session = Depends(get_db),
    reconciler: SyncReconciler = Depends(get_sync_reconciler),
) -> AutoSyncResponse:
    """
    Sync every connection whose next sync is due.
    """

    outcomes = reconciler.run_due_syncs(db=db)
    synced = sum(1 for outcome in outcomes if outcome.success)
    message = (
        f"Processed {len(outcomes)} connection(s)" if outcomes else "No connections ready for sync"
    )
    return AutoSyncResponse(
        message=message,
        synced=synced,
        failed=len(outcomes) - synced,
        results=[
            AutoSyncResultResponse(
                connection_id=outcome.connection_id,
                connection_name=outcome.connection_name,
                success=outcome.success,
                status=outcome.status,
                error=outcome.error,
            )
            for outcome in outcomes
        ],
    )
