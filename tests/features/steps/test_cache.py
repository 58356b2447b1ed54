"""
Tests for the daily-steps cache and step repositories.
"""

import asyncio
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql

from stepboard.features.google_fit import DailySteps, StepSummary, SyncErrorKind
from stepboard.features.steps import (
    DailyStepsCache,
    DailyStepsCacheEntry,
    MetricsStatus,
    StepsDataRepository,
    deserialize_daily_steps,
    should_fetch_fresh_data,
)
from stepboard.shared.repository import build_upsert_statement
from conftest import DAY_1_MILLIS, DAY_2_MILLIS

NOW = datetime(2025, 10, 10, 12, 0, 0)
HOUR = timedelta(hours=1)

DAY_ONE = DailySteps("2025-10-06", 4200, DAY_1_MILLIS, DAY_2_MILLIS, "phone")


def cache_record(last_fetched_at, last_successful_fetch_at=None, error_count=0):
    return SimpleNamespace(
        last_fetched_at=last_fetched_at,
        last_successful_fetch_at=last_successful_fetch_at,
        error_count=error_count,
    )


# =============================================================================
# Freshness
# =============================================================================

class TestShouldFetchFreshData:

    def test_no_record(self):
        assert should_fetch_fresh_data(None, now=NOW, ttl=HOUR)

    def test_never_fetched(self):
        assert should_fetch_fresh_data(cache_record(None), now=NOW, ttl=HOUR)

    def test_fresh_success(self):
        fetched = NOW - timedelta(minutes=10)
        assert not should_fetch_fresh_data(cache_record(fetched, fetched), now=NOW, ttl=HOUR)

    def test_older_than_ttl(self):
        fetched = NOW - timedelta(minutes=90)
        assert should_fetch_fresh_data(cache_record(fetched, fetched), now=NOW, ttl=HOUR)

    def test_never_succeeded_with_errors(self):
        fetched = NOW - timedelta(minutes=1)
        assert should_fetch_fresh_data(cache_record(fetched, None, 2), now=NOW, ttl=HOUR)

    def test_recent_failure_after_success_is_fresh(self):
        record = cache_record(NOW - timedelta(minutes=1), NOW - timedelta(minutes=30), 1)
        assert not should_fetch_fresh_data(record, now=NOW, ttl=HOUR)


# =============================================================================
# Cache Storage
# =============================================================================

@pytest.mark.asyncio
class TestDailyStepsCache:

    async def test_success_then_failure_keeps_days(self, session_factory, add_participant):
        participant = await add_participant()

        async with session_factory() as db:
            await DailyStepsCache(db).set_cached_daily_steps(
                participant.id, [DAY_ONE], success=True, now=NOW - HOUR
            )
        async with session_factory() as db:
            await DailyStepsCache(db).set_cached_daily_steps(
                participant.id, [], success=False, error="Google Fit API error: 503", now=NOW
            )

        async with session_factory() as db:
            record = await DailyStepsCache(db).get_cached_daily_steps(participant.id)

        assert deserialize_daily_steps(record.daily_steps) == [DAY_ONE]
        assert record.error_count == 1
        assert record.last_error == "Google Fit API error: 503"
        assert record.last_fetched_at == NOW
        assert record.last_successful_fetch_at == NOW - HOUR

    async def test_failures_accumulate_until_success(self, session_factory, add_participant):
        participant = await add_participant()

        for _ in range(3):
            async with session_factory() as db:
                await DailyStepsCache(db).set_cached_daily_steps(
                    participant.id, [], success=False, error="boom", now=NOW
                )

        async with session_factory() as db:
            cache = DailyStepsCache(db)
            record = await cache.get_cached_daily_steps(participant.id)
            assert record.error_count == 3
            assert record.daily_steps == []
            assert cache.should_fetch_fresh_data(record, now=NOW)

        async with session_factory() as db:
            await DailyStepsCache(db).set_cached_daily_steps(
                participant.id, [DAY_ONE], success=True, now=NOW
            )

        async with session_factory() as db:
            cache = DailyStepsCache(db)
            record = await cache.get_cached_daily_steps(participant.id)
            assert record.error_count == 0
            assert record.last_error is None
            assert not cache.should_fetch_fresh_data(record, now=NOW)

    async def test_simultaneous_first_failures_share_one_row(self, session_factory, add_participant):
        participant = await add_participant()

        async def fail_once():
            async with session_factory() as db:
                await DailyStepsCache(db).set_cached_daily_steps(
                    participant.id, [], success=False, error="boom", now=NOW
                )

        await asyncio.gather(fail_once(), fail_once())

        async with session_factory() as db:
            record = await DailyStepsCache(db).get_cached_daily_steps(participant.id)

        assert record.error_count == 2
        assert record.created_at == NOW

    async def test_first_write_is_a_single_statement(self, session_factory, add_participant):
        participant = await add_participant()
        statements = []

        def capture(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        async with session_factory() as db:
            engine = db.get_bind()
            event.listen(engine, "before_cursor_execute", capture)
            try:
                await DailyStepsCache(db).set_cached_daily_steps(
                    participant.id, [DAY_ONE], success=True, now=NOW
                )
            finally:
                event.remove(engine, "before_cursor_execute", capture)

        writes = [s for s in statements if "daily_steps_cache" in s]
        assert len(writes) == 1
        assert "ON CONFLICT (participant_id) DO UPDATE" in writes[0]


# =============================================================================
# Metrics Records
# =============================================================================

@pytest.mark.asyncio
class TestStepsDataRepository:

    async def test_mark_refreshing_creates_row_without_sync_time(self, session_factory, add_participant):
        participant = await add_participant()

        async with session_factory() as db:
            await StepsDataRepository(db).mark_refreshing(participant.id, NOW)
            await db.commit()

        async with session_factory() as db:
            record = await StepsDataRepository(db).get_by_participant_id(participant.id)

        assert record.status == MetricsStatus.REFRESHING.value
        assert record.refresh_started_at == NOW
        assert record.created_at == NOW
        assert record.updated_at is None
        assert record.last_synced_at is None

    async def test_success_clears_error_and_keeps_created_at(self, session_factory, add_participant):
        participant = await add_participant()
        later = NOW + HOUR

        async with session_factory() as db:
            repo = StepsDataRepository(db)
            await repo.record_error(participant.id, "expired", SyncErrorKind.TOKEN_EXPIRED, NOW)
            await db.commit()

        async with session_factory() as db:
            record = await StepsDataRepository(db).get_by_participant_id(participant.id)
            assert record.token_expired is True
            assert record.error_kind == "token_expired"

        async with session_factory() as db:
            repo = StepsDataRepository(db)
            await repo.mark_refreshing(participant.id, later)
            await repo.record_success(participant.id, StepSummary(4200, [DAY_ONE]), later)
            await db.commit()

        async with session_factory() as db:
            record = await StepsDataRepository(db).get_by_participant_id(participant.id)

        assert record.created_at == NOW
        assert record.steps == 4200
        assert record.status == MetricsStatus.READY.value
        assert record.last_synced_at == later
        assert record.updated_at == later
        assert record.error_message is None
        assert record.error_kind is None
        assert record.token_expired is False
        assert deserialize_daily_steps(record.daily_steps) == [DAY_ONE]

    async def test_upstream_error_is_not_token_expired(self, session_factory, add_participant):
        participant = await add_participant()

        async with session_factory() as db:
            await StepsDataRepository(db).record_error(
                participant.id, "503", SyncErrorKind.UPSTREAM, NOW
            )
            await db.commit()

        async with session_factory() as db:
            record = await StepsDataRepository(db).get_by_participant_id(participant.id)

        assert record.status == MetricsStatus.ERROR.value
        assert record.token_expired is False


# =============================================================================
# Upsert Statements
# =============================================================================

class TestBuildUpsertStatement:

    def test_postgresql_conflict_on_participant(self):
        stmt = build_upsert_statement(
            DailyStepsCacheEntry,
            "postgresql",
            "participant_id",
            {"participant_id": "p-1", "error_count": 1, "daily_steps": []},
            {"error_count": DailyStepsCacheEntry.error_count + 1},
        )

        sql = str(stmt.compile(dialect=postgresql.dialect()))

        assert "ON CONFLICT (participant_id) DO UPDATE SET error_count" in sql
        assert "daily_steps_cache.error_count +" in sql

    def test_unsupported_dialect(self):
        stmt = build_upsert_statement(
            DailyStepsCacheEntry, "mssql", "participant_id", {"participant_id": "p-1"}, {}
        )
        assert stmt is None
