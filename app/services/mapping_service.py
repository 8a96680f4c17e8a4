"""
app/services/mapping_service.py

Validate-then-save flow for canonical field mappings against live sources.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from functools import lru_cache
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.connectors import ColumnInfo, ConnectorError, ConnectorFactory, create_connector
from app.domain.field_mapping import (
    MappingFields,
    MappingPreview,
    MappingValidationOutcome,
    PreviewHealth,
    ValidationIssue,
)
from app.failure_codes import CONNECTION_FAILED, CONNECTION_NOT_FOUND, VALIDATION_ERROR
from app.mappers.record_mapper import RecordMapper
from app.repositories.connection_repository import ConnectionRepository
from app.repositories.mapped_record_repository import MappedRecordRepository
from app.repositories.mapping_repository import MappingRepository
from app.security import CredentialResolver, get_credential_resolver
from app.validators.data_quality import DataQualityScorer
from app.validators.mapping_validator import MappingValidator
from db.base import utcnow
from db.models.external_connection import ExternalConnection
from db.models.field_mapping import FieldMapping
from db.models.mapped_record import MappedRecord

logger = logging.getLogger(__name__)


class MappingPersistenceError(RuntimeError):
    """
    Raised when a validated mapping cannot be saved.
    """


class SourceUnavailableError(RuntimeError):
    """
    Raised when an external source does not answer its connection test.
    """


def _issue(field: str, code: str, message: str) -> list[ValidationIssue]:
    return [ValidationIssue(field=field, code=code, message=message)]


class MappingValidationService:
    """
    Checks a proposed mapping against the live schema, scores sampled data,
    and optionally persists the mapping with an audit record.
    """

    def __init__(
        self,
        *,
        credential_resolver: CredentialResolver,
        connector_factory: ConnectorFactory = create_connector,
        validator: MappingValidator | None = None,
        scorer: DataQualityScorer | None = None,
        connection_repository_factory: Callable[[Session], ConnectionRepository] = ConnectionRepository,
        mapping_repository_factory: Callable[[Session], MappingRepository] = MappingRepository,
        record_repository_factory: Callable[[Session], MappedRecordRepository] = MappedRecordRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._credential_resolver = credential_resolver
        self._connector_factory = connector_factory
        self._validator = validator or MappingValidator()
        self._scorer = scorer or DataQualityScorer()
        self._connection_repository_factory = connection_repository_factory
        self._mapping_repository_factory = mapping_repository_factory
        self._record_repository_factory = record_repository_factory
        self._clock = clock

    def validate(
        self,
        *,
        db: Session,
        owner_id: str,
        connection_id: uuid.UUID | None,
        resource: str,
        fields: Mapping[str, Any],
        validate_only: bool,
    ) -> MappingValidationOutcome:
        """
        Validate one mapping; persist it too unless ``validate_only``.

        Issues and preview are never returned together.
        """

        parsed, issues = self._validator.parse_fields(fields)
        if issues or parsed is None:
            return MappingValidationOutcome(issues=issues)

        connection = None
        if connection_id is not None:
            connection = self._connection_repository_factory(db).get(connection_id, owner_id=owner_id)
        if connection is None:
            return MappingValidationOutcome(
                issues=_issue("connection", CONNECTION_NOT_FOUND, "Database connection not found")
            )

        try:
            issues, preview = self._inspect_source(connection=connection, resource=resource, fields=parsed)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Mapping validation failed connection_id=%s resource=%s error=%s",
                connection_id,
                resource,
                exc,
            )
            return MappingValidationOutcome(
                issues=_issue("general", VALIDATION_ERROR, "Failed to validate mapping")
            )

        if issues or preview is None:
            return MappingValidationOutcome(issues=issues)

        if validate_only:
            return MappingValidationOutcome(preview=preview, resource=resource, fields=parsed)

        mapping = self._persist(
            db=db,
            owner_id=owner_id,
            connection_id=connection.id,
            resource=resource,
            fields=parsed,
            preview=preview,
        )
        logger.info(
            "Mapping saved mapping_id=%s connection_id=%s resource=%s",
            mapping.id,
            connection.id,
            mapping.resource,
        )
        return MappingValidationOutcome(
            preview=preview,
            mapping_id=mapping.id,
            resource=mapping.resource,
            fields=parsed,
        )

    def list_mappings(self, *, db: Session, owner_id: str) -> list[FieldMapping]:
        return self._mapping_repository_factory(db).list_for_owner(owner_id)

    def list_records(
        self,
        *,
        db: Session,
        owner_id: str,
        mapping_id: uuid.UUID,
        include_inactive: bool = False,
        limit: int = 100,
    ) -> list[MappedRecord] | None:
        """
        Mirrored records of one owned mapping; None when the mapping is not visible.
        """

        mapping = self._mapping_repository_factory(db).get_for_owner(mapping_id, owner_id=owner_id)
        if mapping is None:
            return None
        return self._record_repository_factory(db).list_records(
            mapping_id=mapping.id,
            include_inactive=include_inactive,
            limit=limit,
        )

    def list_source_columns(
        self,
        *,
        db: Session,
        owner_id: str,
        connection_id: uuid.UUID,
        resource: str,
    ) -> list[ColumnInfo] | None:
        """
        Columns of one resource on a visible connection, for building a mapping.

        None when the connection is not visible; an unknown resource has no columns.
        """

        connection = self._connection_repository_factory(db).get(connection_id, owner_id=owner_id)
        if connection is None:
            return None

        config = self._credential_resolver.resolve(connection)
        connector = self._connector_factory(connection.type, config)
        try:
            try:
                connected = connector.test_connection()
            except ConnectorError as exc:
                logger.warning("Connection test raised connection_id=%s error=%s", connection.id, exc)
                connected = False
            if not connected:
                raise SourceUnavailableError("Database connection is no longer available")
            return connector.list_columns(resource)
        finally:
            connector.close()

    def _inspect_source(
        self,
        *,
        connection: ExternalConnection,
        resource: str,
        fields: MappingFields,
    ) -> tuple[list[ValidationIssue], MappingPreview | None]:
        config = self._credential_resolver.resolve(connection)
        connector = self._connector_factory(connection.type, config)
        try:
            try:
                connected = connector.test_connection()
            except ConnectorError as exc:
                logger.warning("Connection test raised connection_id=%s error=%s", connection.id, exc)
                connected = False
            if not connected:
                return _issue("connection", CONNECTION_FAILED, "Database connection is not available"), None

            columns = connector.list_columns(resource)
            column_issues = self._validator.check_columns(fields=fields, columns=columns, resource=resource)
            if column_issues:
                return column_issues, None

            sample = connector.sample_data(resource, fields.columns())
        finally:
            connector.close()

        metrics = self._scorer.score(sample, fields)
        mapper = RecordMapper(fields)
        preview = MappingPreview(
            rows=[mapper.to_preview_row(row, index=index) for index, row in enumerate(sample)],
            health=PreviewHealth(
                resource_exists=True,
                columns_mapped=True,
                sample_rows_found=len(sample),
                last_validated=self._clock(),
            ),
            metrics=metrics,
        )
        return [], preview

    def _persist(
        self,
        *,
        db: Session,
        owner_id: str,
        connection_id: uuid.UUID,
        resource: str,
        fields: MappingFields,
        preview: MappingPreview,
    ) -> FieldMapping:
        repository = self._mapping_repository_factory(db)
        try:
            mapping = repository.save(
                owner_id=owner_id,
                connection_id=connection_id,
                resource=resource,
                fields=fields.to_dict(),
                validated_at=preview.health.last_validated,
            )
            repository.add_validation(
                mapping_id=mapping.id,
                valid=True,
                details=preview.metrics.to_dict(),
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception(
                "Failed to persist mapping connection_id=%s resource=%s error=%s",
                connection_id,
                resource,
                exc,
            )
            raise MappingPersistenceError("Unable to save mapping.") from exc
        return mapping


@lru_cache(maxsize=1)
def get_mapping_validation_service() -> MappingValidationService:
    """
    Build and cache the mapping validation service.
    """

    return MappingValidationService(credential_resolver=get_credential_resolver())
