"""
Tests for the Database pool manager: health checks, backoff and reconnect.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from quizhub.core import ConfigurationException, DatabaseUnavailableException
from quizhub.infrastructure.database import Database, compute_backoff_delay
from quizhub.infrastructure.database.connection import HEALTH_CHECK_JOB_ID, RECONNECT_JOB_ID
from quizhub.infrastructure.database.schema import load_schema_statements


def _reconnect_calls(scheduler):
    return [c for c in scheduler.add_job.call_args_list if c.kwargs.get("id") == RECONNECT_JOB_ID]


class TestBackoff:
    """Test the reconnect delay formula"""

    def test_grows_by_factor_without_jitter(self):
        delays = [compute_backoff_delay(n, rng=lambda: 0.0) for n in (1, 2, 3, 4)]

        assert delays == [5.0, 7.5, 11.25, 16.875]

    def test_capped_at_max_delay(self):
        assert compute_backoff_delay(6, rng=lambda: 0.0) == 30.0
        assert compute_backoff_delay(10, rng=lambda: 1.0) == 30.0

    def test_jitter_adds_up_to_twenty_percent(self):
        assert compute_backoff_delay(1, rng=lambda: 1.0) == pytest.approx(6.0)
        assert compute_backoff_delay(1, rng=lambda: 0.5) == pytest.approx(5.5)


class TestScheduleReconnect:
    """Test bounded reconnect scheduling"""

    def test_schedules_one_shot_job(self, settings_factory, scheduler):
        db = Database(settings_factory(), scheduler=scheduler, rng=lambda: 0.0)

        delay = db.schedule_reconnect()

        assert delay == 5.0
        assert db.reconnect_attempts == 1
        args, kwargs = scheduler.add_job.call_args
        assert args[0] == db.initialize
        assert args[1] == "date"
        assert kwargs["id"] == RECONNECT_JOB_ID
        assert kwargs["replace_existing"] is True

    def test_attempts_stop_after_ten_failures(self, settings_factory, scheduler):
        db = Database(settings_factory(), scheduler=scheduler, rng=lambda: 0.0)

        delays = [db.schedule_reconnect() for _ in range(12)]

        assert all(delay is not None for delay in delays[:10])
        assert delays[10:] == [None, None]
        assert db.reconnect_attempts == 10
        assert len(_reconnect_calls(scheduler)) == 10
        assert max(delays[:10]) == 30.0

    def test_custom_attempt_limit(self, settings_factory, scheduler):
        db = Database(settings_factory(db_max_reconnect_attempts=2), scheduler=scheduler)

        db.schedule_reconnect()
        db.schedule_reconnect()

        assert db.schedule_reconnect() is None
        assert len(_reconnect_calls(scheduler)) == 2


class TestInitialize:
    """Test pool creation, monitoring and failure handling"""

    @pytest.mark.asyncio
    async def test_success_connects_and_registers_health_check(self, database, scheduler):
        assert database.is_connected
        assert database.reconnect_attempts == 0

        health_calls = [
            c for c in scheduler.add_job.call_args_list if c.kwargs.get("id") == HEALTH_CHECK_JOB_ID
        ]
        assert len(health_calls) == 1
        args, kwargs = health_calls[0]
        assert args[0] == database.check_health
        assert args[1] == "interval"
        assert kwargs["seconds"] == 30

    @pytest.mark.asyncio
    async def test_success_creates_schema(self, database):
        rows = await database.query("SELECT name FROM sqlite_master WHERE type = 'table'")

        assert {"users", "quizzes", "questions"} <= {row["name"] for row in rows}

    @pytest.mark.asyncio
    async def test_failure_schedules_reconnect(self, settings_factory, scheduler, tmp_path):
        unreachable = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'db.sqlite'}"
        db = Database(settings_factory(database_url=unreachable), scheduler=scheduler, rng=lambda: 0.0)

        result = await db.initialize()

        assert result is False
        assert db.is_connected is False
        assert db.connection_errors == 1
        assert db.reconnect_attempts == 1
        assert len(_reconnect_calls(scheduler)) == 1
        await db.cleanup()

    @pytest.mark.asyncio
    async def test_successful_reconnect_resets_attempts(self, sqlite_settings, scheduler):
        db = Database(sqlite_settings, scheduler=scheduler)
        db.reconnect_attempts = 4
        db.connection_errors = 4

        assert await db.initialize()

        assert db.reconnect_attempts == 0
        assert db.connection_errors == 0
        await db.cleanup()

    @pytest.mark.asyncio
    async def test_schema_failure_keeps_attempt_budget(self, sqlite_settings, scheduler):
        """A pool that answers SELECT 1 but fails later still counts toward the limit"""
        db = Database(sqlite_settings, scheduler=scheduler, rng=lambda: 0.0)

        with patch.object(db, "initialize_schema", AsyncMock(side_effect=RuntimeError("DDL failed"))):
            results = [await db.initialize() for _ in range(15)]

        assert not any(results)
        assert db.reconnect_attempts == 10
        assert len(_reconnect_calls(scheduler)) == 10
        assert db.is_reconnecting is False
        await db.cleanup()

    @pytest.mark.asyncio
    async def test_reinitialize_replaces_pool(self, database):
        old_engine = database.engine

        assert await database.initialize()

        assert database.engine is not old_engine

    @pytest.mark.asyncio
    async def test_schema_initialization_can_be_disabled(self, settings_factory, sqlite_url, scheduler):
        db = Database(
            settings_factory(database_url=sqlite_url, db_initialize_schema=False),
            scheduler=scheduler
        )

        assert await db.initialize()
        rows = await db.query("SELECT name FROM sqlite_master WHERE type = 'table'")

        assert rows == []
        await db.cleanup()


class TestHealthCheck:
    """Test the periodic connection probe"""

    @pytest.mark.asyncio
    async def test_healthy_connection(self, database, scheduler):
        assert await database.check_health() is True
        assert _reconnect_calls(scheduler) == []

    @pytest.mark.asyncio
    async def test_lost_connection_schedules_reconnect(self, database, scheduler):
        with patch.object(database, "test_connection", AsyncMock(side_effect=ConnectionRefusedError())):
            assert await database.check_health() is False

        assert database.is_connected is False
        assert database.reconnect_attempts == 1
        assert len(_reconnect_calls(scheduler)) == 1

    @pytest.mark.asyncio
    async def test_already_disconnected_does_not_reschedule(self, database, scheduler):
        database.is_connected = False

        with patch.object(database, "test_connection", AsyncMock(side_effect=ConnectionRefusedError())):
            await database.check_health()

        assert _reconnect_calls(scheduler) == []

    @pytest.mark.asyncio
    async def test_real_probe_failure_marks_disconnected(self, database, scheduler):
        await database.engine.dispose()
        failing_engine = MagicMock()
        failing_engine.connect.side_effect = OperationalError("SELECT 1", {}, ConnectionRefusedError())
        database.engine = failing_engine

        assert await database.check_health() is False
        assert database.connection_errors == 1
        assert database.reconnect_attempts == 1
        database.engine = None

    @pytest.mark.asyncio
    async def test_skipped_while_reconnect_pending(self, database, scheduler):
        database.schedule_reconnect()
        probe = AsyncMock(return_value=True)

        with patch.object(database, "test_connection", probe):
            assert await database.check_health() is False

        probe.assert_not_awaited()
        assert database.reconnect_attempts == 1
        assert len(_reconnect_calls(scheduler)) == 1

    @pytest.mark.asyncio
    async def test_skipped_during_initialize(self, database):
        seen = []

        async def record_health_check():
            seen.append(await database.check_health())

        with patch.object(database, "initialize_schema", AsyncMock(side_effect=record_health_check)):
            assert await database.initialize()

        assert seen == [False]
        assert database.is_reconnecting is False

    @pytest.mark.asyncio
    async def test_resumes_after_giving_up(self, settings_factory, sqlite_url, scheduler):
        db = Database(
            settings_factory(database_url=sqlite_url, db_max_reconnect_attempts=1),
            scheduler=scheduler
        )
        assert await db.initialize()

        db.schedule_reconnect()
        assert db.schedule_reconnect() is None

        assert db.is_reconnecting is False
        assert await db.check_health() is True
        await db.cleanup()


class TestTestConnection:
    """Test the connection probe itself"""

    @pytest.mark.asyncio
    async def test_without_pool_raises(self, settings_factory, scheduler):
        db = Database(settings_factory(), scheduler=scheduler)

        with pytest.raises(DatabaseUnavailableException):
            await db.test_connection()

        assert db.connection_errors == 1
        assert db.is_connected is False

    @pytest.mark.asyncio
    async def test_succeeds_on_live_pool(self, database):
        assert await database.test_connection(log_success=False) is True

    @pytest.mark.asyncio
    async def test_success_leaves_reconnect_counters(self, database):
        database.is_connected = False
        database.reconnect_attempts = 3

        assert await database.test_connection() is True

        assert database.is_connected is True
        assert database.reconnect_attempts == 3


class TestQueries:
    """Test query helpers"""

    @pytest.mark.asyncio
    async def test_query_with_named_placeholders(self, database):
        affected = await database.query(
            "INSERT INTO users (email, password, name) VALUES (:email, :password, :name)",
            {"email": "ada@example.com", "password": "hash", "name": "Ada"}
        )
        rows = await database.query(
            "SELECT email, role FROM users WHERE email = :email",
            {"email": "ada@example.com"}
        )

        assert affected == 1
        assert rows == [{"email": "ada@example.com", "role": "user"}]

    @pytest.mark.asyncio
    async def test_query_error_is_reraised(self, database):
        with pytest.raises(OperationalError):
            await database.query("SELECT * FROM no_such_table")

    @pytest.mark.asyncio
    async def test_connection_context(self, database):
        async with database.connection() as conn:
            result = await conn.exec_driver_sql("SELECT 1")
            assert result.scalar() == 1

    @pytest.mark.asyncio
    async def test_schema_initialization_is_idempotent(self, database):
        await database.initialize_schema()
        await database.initialize_schema()

        rows = await database.query("SELECT name FROM sqlite_master WHERE type = 'table'")
        assert sorted(row["name"] for row in rows) == ["questions", "quizzes", "users"]

    @pytest.mark.asyncio
    async def test_mysql_schema_runs_bundled_ddl(self, settings_factory, scheduler):
        db = Database(settings_factory(), scheduler=scheduler)
        conn = MagicMock()
        conn.exec_driver_sql = AsyncMock()
        conn.run_sync = AsyncMock()
        engine = MagicMock()
        engine.dialect.name = "mysql"
        engine.begin.return_value.__aenter__.return_value = conn
        db.engine = engine

        await db.initialize_schema()
        await db.initialize_schema()

        statements = load_schema_statements()
        executed = [c.args[0] for c in conn.exec_driver_sql.await_args_list]
        assert len(statements) == 3
        assert executed == statements * 2
        assert all(s.startswith("CREATE TABLE IF NOT EXISTS") for s in executed)
        conn.run_sync.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mysql_schema_error_is_reraised(self, settings_factory, scheduler):
        db = Database(settings_factory(), scheduler=scheduler)
        conn = MagicMock()
        conn.exec_driver_sql = AsyncMock(side_effect=RuntimeError("syntax error"))
        engine = MagicMock()
        engine.dialect.name = "mysql"
        engine.begin.return_value.__aenter__.return_value = conn
        db.engine = engine

        with pytest.raises(RuntimeError):
            await db.initialize_schema()


class TestCleanup:
    """Test shutdown"""

    @pytest.mark.asyncio
    async def test_cleanup_removes_jobs_and_disposes_pool(self, sqlite_settings):
        scheduler = MagicMock()
        scheduler.get_job.return_value = object()
        db = Database(sqlite_settings, scheduler=scheduler)
        assert await db.initialize()

        await db.cleanup()

        removed = {c.args[0] for c in scheduler.remove_job.call_args_list}
        assert removed == {HEALTH_CHECK_JOB_ID, RECONNECT_JOB_ID}
        scheduler.shutdown.assert_not_called()
        assert db.engine is None
        assert db.is_connected is False
        with pytest.raises(DatabaseUnavailableException):
            db.get_engine()


class TestEnsureDatabase:
    """Test database creation guard"""

    @pytest.mark.asyncio
    async def test_rejects_unsafe_database_name(self, settings_factory, scheduler):
        db = Database(settings_factory(db_name="quiz`; DROP"), scheduler=scheduler)

        with pytest.raises(ConfigurationException):
            await db.ensure_database_exists()

    @staticmethod
    def _server_engine(existing_row=None):
        conn = MagicMock()
        result = MagicMock()
        result.first.return_value = existing_row
        conn.execute = AsyncMock(return_value=result)
        conn.exec_driver_sql = AsyncMock()
        engine = MagicMock()
        engine.begin.return_value.__aenter__.return_value = conn
        engine.dispose = AsyncMock()
        return engine, conn

    @pytest.mark.asyncio
    async def test_creates_missing_database_at_server_level(self, settings_factory, scheduler):
        db = Database(settings_factory(db_name="quiz_app"), scheduler=scheduler)
        engine, conn = self._server_engine()

        with patch(
            "quizhub.infrastructure.database.connection.create_async_engine",
            return_value=engine
        ) as factory:
            assert await db.ensure_database_exists() is True

        url = factory.call_args.args[0]
        assert url.database is None
        assert url.host == "localhost"
        assert conn.execute.await_args.args[1] == {"name": "quiz_app"}
        statement = conn.exec_driver_sql.await_args.args[0]
        assert statement.startswith("CREATE DATABASE IF NOT EXISTS `quiz_app`")
        assert "utf8mb4" in statement
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_existing_database_is_left_alone(self, settings_factory, scheduler):
        db = Database(settings_factory(db_name="quiz_app"), scheduler=scheduler)
        engine, conn = self._server_engine(existing_row=("quiz_app",))

        with patch(
            "quizhub.infrastructure.database.connection.create_async_engine",
            return_value=engine
        ):
            assert await db.ensure_database_exists() is False

        conn.exec_driver_sql.assert_not_awaited()
        engine.dispose.assert_awaited_once()
