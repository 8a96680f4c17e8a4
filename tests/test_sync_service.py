"""
tests/test_sync_service.py

Pytest unit tests for SyncReconciler and ConnectionSyncLock.

All tests are pure Python with in-memory repositories and a fake connector.

Coverage
--------
- Insert / update / deactivate reconciliation and the mirror invariant
- Idempotence of an unchanged second pass
- Rows without identity are skipped
- Lock conflict writes nothing; the flag is always cleared after a pass
- One failing mapping leaves the others untouched (partial status)
- nextSyncAt scheduling and the due-connection sweep
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from app.domain.sync import SyncStatus
from app.services.sync_lock import ConnectionSyncLock, SyncInProgressError
from app.services.sync_service import ConnectionNotFoundError, SyncPassError, SyncReconciler
from fakes import (
    FIXED_NOW,
    FakeConnectionRepository,
    FakeConnector,
    FakeCredentialResolver,
    make_connection,
    make_mapping,
)


@pytest.fixture()
def mapping(connection, mapping_repository):
    mapping = make_mapping(connection_id=connection.id, resource="deals")
    mapping_repository.mappings.append(mapping)
    return mapping


@pytest.fixture()
def reconciler(connector, connection_repository, mapping_repository, record_repository, clock):
    return SyncReconciler(
        credential_resolver=FakeCredentialResolver(),
        connector_factory=lambda vendor_type, config: connector,
        fetch_limit=100,
        connection_repository_factory=lambda db: connection_repository,
        mapping_repository_factory=lambda db: mapping_repository,
        record_repository_factory=lambda db: record_repository,
        clock=clock,
    )


def _active_ids(record_repository, mapping) -> set[str]:
    return {
        external_id
        for external_id, record in record_repository.by_external_id(mapping.id).items()
        if record.is_active
    }


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


class TestReconciliation:
    def test_first_pass_inserts_everything(
        self, reconciler, session, connection, connector, mapping, record_repository
    ) -> None:
        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}, {"id": 2, "status": "lost"}]

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        assert result.status == SyncStatus.SUCCESS
        (item,) = result.results
        assert (item.inserted, item.updated, item.deactivated) == (2, 0, 0)
        assert item.total_external == 2
        assert item.total_mapped == 2
        assert _active_ids(record_repository, mapping) == {"1", "2"}

    def test_vanished_rows_are_deactivated_not_deleted(
        self, reconciler, session, connection, connector, mapping, record_repository
    ) -> None:
        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}, {"id": 2, "status": "lost"}]
        reconciler.sync_connection(db=session, connection_id=connection.id)

        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}, {"id": 3, "status": "open"}]
        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        (item,) = result.results
        assert (item.inserted, item.updated, item.deactivated) == (1, 1, 1)
        assert item.total_mapped == 2
        records = record_repository.by_external_id(mapping.id)
        assert records["2"].is_active is False
        assert _active_ids(record_repository, mapping) == {"1", "3"}

    def test_unchanged_second_pass_only_updates(
        self, reconciler, session, connection, connector, mapping
    ) -> None:
        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}, {"id": 2, "status": "lost"}]
        reconciler.sync_connection(db=session, connection_id=connection.id)

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        (item,) = result.results
        assert (item.inserted, item.updated, item.deactivated) == (0, 2, 0)

    def test_already_inactive_records_are_not_deactivated_again(
        self, reconciler, session, connection, connector, mapping
    ) -> None:
        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}]
        reconciler.sync_connection(db=session, connection_id=connection.id)
        connector.rows_by_resource["deals"] = []
        reconciler.sync_connection(db=session, connection_id=connection.id)

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        assert result.results[0].deactivated == 0
        assert result.results[0].total_mapped == 0

    def test_total_mapped_counts_only_active_records(
        self, reconciler, session, connection, connector, mapping, record_repository
    ) -> None:
        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}, {"id": 2, "status": "lost"}]
        reconciler.sync_connection(db=session, connection_id=connection.id)
        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}]
        reconciler.sync_connection(db=session, connection_id=connection.id)

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        (item,) = result.results
        assert (item.inserted, item.updated, item.deactivated) == (0, 1, 0)
        assert item.total_external == 1
        assert item.total_mapped == len(_active_ids(record_repository, mapping)) == 1

    def test_reappearing_row_is_reactivated_and_counted(
        self, reconciler, session, connection, connector, mapping, record_repository
    ) -> None:
        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}]
        reconciler.sync_connection(db=session, connection_id=connection.id)
        connector.rows_by_resource["deals"] = []
        reconciler.sync_connection(db=session, connection_id=connection.id)
        connector.rows_by_resource["deals"] = [{"id": 1, "status": "won"}]

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        (item,) = result.results
        assert (item.inserted, item.updated, item.deactivated) == (0, 1, 0)
        assert item.total_mapped == 1
        assert _active_ids(record_repository, mapping) == {"1"}

    def test_payload_holds_canonical_fields_and_raw_row(
        self, reconciler, session, connection, connector, mapping, record_repository
    ) -> None:
        row = {"id": 9, "status": "won", "closed_on": "2026-02-01", "email": "c@example.com", "amount": 10}
        connector.rows_by_resource["deals"] = [row]

        reconciler.sync_connection(db=session, connection_id=connection.id)

        data = record_repository.by_external_id(mapping.id)["9"].data
        assert data["status"] == "won"
        assert data["date"] == "2026-02-01"
        assert data["contact"] == "c@example.com"
        assert data["_raw"] == row

    def test_rows_without_identity_are_skipped(
        self, reconciler, session, connection, connector, mapping, record_repository
    ) -> None:
        connector.rows_by_resource["deals"] = [{"status": "won"}, {"id": None, "status": "lost"}, {"id": 4}]

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        assert result.results[0].inserted == 1
        assert result.results[0].total_external == 3
        assert set(record_repository.by_external_id(mapping.id)) == {"4"}

    def test_configured_pk_column_is_used(
        self, reconciler, session, connection, connector, mapping, record_repository
    ) -> None:
        mapping.fields = {**mapping.fields, "pk": "deal_no"}
        connector.rows_by_resource["deals"] = [{"id": 1, "deal_no": "D-100", "status": "won"}]

        reconciler.sync_connection(db=session, connection_id=connection.id)

        assert set(record_repository.by_external_id(mapping.id)) == {"D-100"}

    def test_fetch_uses_configured_limit_and_closes_connector(
        self, reconciler, session, connection, connector, mapping
    ) -> None:
        connector.rows_by_resource["deals"] = [{"id": 1}]

        reconciler.sync_connection(db=session, connection_id=connection.id)

        assert connector.queries == [("deals", {}, 100)]
        assert connector.close_calls == 1


# ---------------------------------------------------------------------------
# Failure isolation and locking
# ---------------------------------------------------------------------------


class TestPassOrchestration:
    def test_failing_mapping_does_not_affect_others(
        self, reconciler, session, connection, connector, mapping, mapping_repository, record_repository
    ) -> None:
        broken = make_mapping(connection_id=connection.id, resource="contacts")
        mapping_repository.mappings.append(broken)
        connector.rows_by_resource["deals"] = [{"id": 1}]
        connector.fail_on["query:contacts"] = RuntimeError("relation does not exist")

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        assert result.status == SyncStatus.PARTIAL
        by_resource = {item.resource: item for item in result.results}
        assert by_resource["deals"].success is True
        assert by_resource["deals"].inserted == 1
        assert by_resource["contacts"].success is False
        assert by_resource["contacts"].error == "relation does not exist"
        assert session.rollbacks == 1
        assert connection.is_syncing is False

    def test_failed_connection_test_fails_the_mapping(
        self, reconciler, session, connection, connector, mapping
    ) -> None:
        connector.connected = False

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        assert result.status == SyncStatus.PARTIAL
        assert result.results[0].error == "Database connection failed"
        assert connector.close_calls == 1

    def test_no_mappings_is_success(self, reconciler, session, connection) -> None:
        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        assert result.status == SyncStatus.SUCCESS
        assert result.results == []
        assert connection.last_synced_at is not None

    def test_conflict_when_sync_in_progress(
        self, reconciler, session, connection, connector, mapping, record_repository
    ) -> None:
        connection.is_syncing = True
        connector.rows_by_resource["deals"] = [{"id": 1}]

        with pytest.raises(SyncInProgressError):
            reconciler.sync_connection(db=session, connection_id=connection.id)

        assert record_repository.records == []
        assert connector.queries == []
        assert connection.is_syncing is True

    def test_unknown_connection(self, reconciler, session) -> None:
        with pytest.raises(ConnectionNotFoundError):
            reconciler.sync_connection(db=session, connection_id=uuid.uuid4())

    def test_owner_scope_hides_foreign_connection(self, reconciler, session, connection) -> None:
        with pytest.raises(ConnectionNotFoundError):
            reconciler.sync_connection(db=session, connection_id=connection.id, owner_id="someone-else")

    def test_pass_error_releases_lock(
        self, reconciler, session, connection, mapping_repository
    ) -> None:
        def boom(connection_id, *, owner_id=None):
            raise RuntimeError("mapping store unavailable")

        mapping_repository.list_for_connection = boom

        with pytest.raises(SyncPassError) as ctx:
            reconciler.sync_connection(db=session, connection_id=connection.id)

        assert ctx.value.code == "SYNC_ERROR"
        assert connection.is_syncing is False
        assert connection.last_synced_at is None

    def test_next_sync_scheduled_from_frequency(
        self, reconciler, session, connection
    ) -> None:
        connection.sync_frequency_minutes = 15

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        assert result.next_sync_at == result.last_synced_at + timedelta(minutes=15)
        assert connection.next_sync_at == result.next_sync_at

    def test_no_next_sync_when_auto_sync_disabled(self, reconciler, session, connection) -> None:
        connection.sync_frequency_minutes = 15
        connection.is_auto_sync_enabled = False

        result = reconciler.sync_connection(db=session, connection_id=connection.id)

        assert result.next_sync_at is None


class TestConnectionSyncLock:
    def test_releases_on_error(self, session, connection, connection_repository) -> None:
        with pytest.raises(ValueError):
            with ConnectionSyncLock(
                session=session, connections=connection_repository, connection_id=connection.id
            ):
                assert connection.is_syncing is True
                raise ValueError("boom")

        assert connection.is_syncing is False
        assert session.rollbacks == 1

    def test_complete_records_timestamps(self, session, connection, connection_repository) -> None:
        with ConnectionSyncLock(
            session=session, connections=connection_repository, connection_id=connection.id
        ) as lock:
            lock.complete(last_synced_at=FIXED_NOW, next_sync_at=None)

        assert connection.is_syncing is False
        assert connection.last_synced_at == FIXED_NOW
        assert session.rollbacks == 0


# ---------------------------------------------------------------------------
# Auto-sync sweep
# ---------------------------------------------------------------------------


class TestRunDueSyncs:
    def test_syncs_due_connections_and_isolates_failures(
        self, connector, mapping_repository, record_repository, clock, session
    ) -> None:
        due = make_connection(name="due")
        future = make_connection(name="later", next_sync_at=FIXED_NOW + timedelta(hours=1))
        disabled = make_connection(name="off", is_auto_sync_enabled=False)
        inactive = make_connection(name="inactive", status="INACTIVE")
        repository = FakeConnectionRepository([due, future, disabled, inactive])
        reconciler = SyncReconciler(
            credential_resolver=FakeCredentialResolver(),
            connector_factory=lambda vendor_type, config: connector,
            connection_repository_factory=lambda db: repository,
            mapping_repository_factory=lambda db: mapping_repository,
            record_repository_factory=lambda db: record_repository,
            clock=clock,
        )

        outcomes = reconciler.run_due_syncs(db=session, now=FIXED_NOW)

        assert [outcome.connection_name for outcome in outcomes] == ["due"]
        assert outcomes[0].success is True
        assert outcomes[0].status == SyncStatus.SUCCESS

    def test_pass_failure_is_recorded_and_loop_continues(
        self, connector, mapping_repository, record_repository, clock, session
    ) -> None:
        first = make_connection(name="first")
        second = make_connection(name="second")
        repository = FakeConnectionRepository([first, second])
        original = mapping_repository.list_for_connection

        def flaky(connection_id, *, owner_id=None):
            if connection_id == first.id:
                raise RuntimeError("lost connection")
            return original(connection_id, owner_id=owner_id)

        mapping_repository.list_for_connection = flaky
        reconciler = SyncReconciler(
            credential_resolver=FakeCredentialResolver(),
            connector_factory=lambda vendor_type, config: connector,
            connection_repository_factory=lambda db: repository,
            mapping_repository_factory=lambda db: mapping_repository,
            record_repository_factory=lambda db: record_repository,
            clock=clock,
        )

        outcomes = reconciler.run_due_syncs(db=session)

        assert [(outcome.connection_name, outcome.success) for outcome in outcomes] == [
            ("first", False),
            ("second", True),
        ]
        assert outcomes[0].error == "lost connection"
        assert first.is_syncing is False
