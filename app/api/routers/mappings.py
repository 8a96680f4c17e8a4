"""
app/api/routers/mappings.py

Mapping validation and listing, source column introspection, and mirrored
record HTTP endpoints.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_owner_id
from app.connectors import ConnectorError, UnsupportedConnectorError
from app.domain.field_mapping import MappingPreview, QualityMetrics
from app.schemas.mapping import (
    ConnectionSyncInfo,
    IssueResponse,
    MappedRecordListResponse,
    MappedRecordResponse,
    MappingFailureResponse,
    MappingListItem,
    MappingListResponse,
    MappingPreviewBody,
    MappingPreviewResponse,
    MappingRequest,
    MappingSavedResponse,
    MappingSummaryResponse,
    PreviewHealthResponse,
    PreviewRowResponse,
    QualityMetricsResponse,
    SourceColumnResponse,
    SourceColumnsResponse,
)
from app.security import CredentialResolutionError
from app.services.mapping_service import (
    MappingPersistenceError,
    MappingValidationService,
    SourceUnavailableError,
    get_mapping_validation_service,
)
from db.models.field_mapping import FieldMapping
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["mappings"])


def _metrics_response(metrics: QualityMetrics) -> QualityMetricsResponse:
    return QualityMetricsResponse(
        row_count=metrics.row_count,
        contact_non_null=metrics.contact_non_null,
        date_parse_success=metrics.date_parse_success,
        status_valid=metrics.status_valid,
        warnings=list(metrics.warnings),
    )


def _preview_response(preview: MappingPreview) -> MappingPreviewBody:
    return MappingPreviewBody(
        rows=[
            PreviewRowResponse(
                pk=row.pk,
                status=row.status,
                date=row.date,
                contact=row.contact,
                last_touch=row.last_touch,
            )
            for row in preview.rows
        ],
        health=PreviewHealthResponse(
            resource_exists=preview.health.resource_exists,
            columns_mapped=preview.health.columns_mapped,
            sample_rows_found=preview.health.sample_rows_found,
            last_validated=preview.health.last_validated,
        ),
        metrics=_metrics_response(preview.metrics),
    )


def _list_item(mapping: FieldMapping) -> MappingListItem:
    connection = mapping.connection
    sync_info = None
    if connection is not None:
        sync_info = ConnectionSyncInfo(
            sync_frequency_minutes=connection.sync_frequency_minutes,
            is_auto_sync_enabled=bool(connection.is_auto_sync_enabled),
            last_synced_at=connection.last_synced_at,
            next_sync_at=connection.next_sync_at,
            is_syncing=bool(connection.is_syncing),
        )

    return MappingListItem(
        id=mapping.id,
        connection_id=mapping.connection_id,
        connection_name=connection.name if connection else None,
        connection_type=connection.type if connection else None,
        resource=mapping.resource,
        fields=dict(mapping.fields or {}),
        validated_at=mapping.validated_at,
        created_at=mapping.created_at,
        sync_info=sync_info,
    )


@router.post(
    "/mappings",
    response_model=MappingPreviewResponse | MappingSavedResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": MappingFailureResponse}},
)
def create_mapping(
    payload: MappingRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    mapping_service: MappingValidationService = Depends(get_mapping_validation_service),
) -> MappingPreviewResponse | MappingSavedResponse | JSONResponse:
    """
    Validate a mapping against its live source; save it unless validateOnly.
    """

    try:
        outcome = mapping_service.validate(
            db=db,
            owner_id=owner_id,
            connection_id=payload.connection_id,
            resource=payload.resource,
            fields=payload.fields,
            validate_only=payload.validate_only,
        )
    except MappingPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    if not outcome.ok or outcome.preview is None:
        failure = MappingFailureResponse(
            issues=[
                IssueResponse(field=issue.field, code=issue.code, message=issue.message)
                for issue in outcome.issues
            ]
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=failure.model_dump(mode="json", by_alias=True),
        )

    if outcome.mapping_id is None:
        return MappingPreviewResponse(preview=_preview_response(outcome.preview))

    return MappingSavedResponse(
        mapping_id=outcome.mapping_id,
        summary=MappingSummaryResponse(
            resource=outcome.resource or payload.resource,
            fields=outcome.fields.to_dict() if outcome.fields else {},
            metrics=_metrics_response(outcome.preview.metrics),
        ),
    )


@router.get("/mappings", response_model=MappingListResponse)
def list_mappings(
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    mapping_service: MappingValidationService = Depends(get_mapping_validation_service),
) -> MappingListResponse:
    """
    List the caller's saved mappings, newest first.
    """

    mappings = mapping_service.list_mappings(db=db, owner_id=owner_id)
    return MappingListResponse(mappings=[_list_item(mapping) for mapping in mappings])


@router.get("/connections/{connection_id}/columns", response_model=SourceColumnsResponse)
def list_source_columns(
    connection_id: uuid.UUID,
    resource: str = Query(..., min_length=1),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    mapping_service: MappingValidationService = Depends(get_mapping_validation_service),
) -> SourceColumnsResponse:
    """
    Introspect the columns of one source resource so a mapping can be built.
    """

    try:
        columns = mapping_service.list_source_columns(
            db=db,
            owner_id=owner_id,
            connection_id=connection_id,
            resource=resource,
        )
    except SourceUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except (ConnectorError, CredentialResolutionError, UnsupportedConnectorError) as exc:
        logger.exception(
            "Column introspection failed connection_id=%s resource=%s error=%s",
            connection_id,
            resource,
            exc,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list columns",
        ) from exc

    if columns is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Database connection not found",
        )

    return SourceColumnsResponse(
        resource=resource,
        columns=[
            SourceColumnResponse(name=column.name, type=column.type, nullable=column.nullable)
            for column in columns
        ],
    )


@router.get("/mappings/{mapping_id}/records", response_model=MappedRecordListResponse)
def list_mapped_records(
    mapping_id: uuid.UUID,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    limit: int = Query(default=100, ge=1, le=1000),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    mapping_service: MappingValidationService = Depends(get_mapping_validation_service),
) -> MappedRecordListResponse:
    """
    Return mirrored records of one mapping, most recently synced first.
    """

    records = mapping_service.list_records(
        db=db,
        owner_id=owner_id,
        mapping_id=mapping_id,
        include_inactive=include_inactive,
        limit=limit,
    )
    if records is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Mapping not found",
        )

    return MappedRecordListResponse(
        mapping_id=mapping_id,
        records=[
            MappedRecordResponse(
                id=record.id,
                external_id=record.external_id,
                data=record.data,
                is_active=record.is_active,
                synced_at=record.synced_at,
            )
            for record in records
        ],
    )
