import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from devkit.db import AsyncDatabaseManager, is_postgres_dsn, is_transient_db_error, normalize_dsn


def test_normalize_dsn() -> None:
    assert normalize_dsn("postgresql://u:p@h:5432/db") == "postgresql+psycopg://u:p@h:5432/db"
    assert normalize_dsn("postgresql+psycopg://u:p@h:5432/db") == "postgresql+psycopg://u:p@h:5432/db"
    assert normalize_dsn("sqlite:///./seminars.db") == "sqlite+aiosqlite:///./seminars.db"
    assert normalize_dsn("sqlite+aiosqlite:///./seminars.db") == "sqlite+aiosqlite:///./seminars.db"


def test_postgres_dsn_detection() -> None:
    assert is_postgres_dsn("postgresql://u:p@h:5432/db")
    assert not is_postgres_dsn("sqlite:///./seminars.db")
    assert not is_postgres_dsn(None)


def test_transient_error_detection() -> None:
    assert is_transient_db_error(OperationalError("stmt", {}, Exception("down")))
    assert not is_transient_db_error(IntegrityError("stmt", {}, Exception("duplicate")))
    assert not is_transient_db_error(ValueError("nope"))


@pytest.mark.asyncio
async def test_run_with_session_retries_transient_errors(tmp_path) -> None:
    manager = AsyncDatabaseManager(f"sqlite:///{tmp_path / 'retry.db'}", base_delay_seconds=0)
    attempts: list[int] = []

    async def flaky(session) -> int:
        attempts.append(1)
        if len(attempts) < 2:
            raise OperationalError("stmt", {}, Exception("connection reset"))
        return int(await session.scalar(text("SELECT 1")))

    try:
        assert await manager.run_with_session(flaky) == 1
        assert len(attempts) == 2
    finally:
        await manager.disconnect()


@pytest.mark.asyncio
async def test_run_with_session_raises_non_transient_errors_once(tmp_path) -> None:
    manager = AsyncDatabaseManager(f"sqlite:///{tmp_path / 'retry.db'}", base_delay_seconds=0)
    attempts: list[int] = []

    async def broken(_session) -> None:
        attempts.append(1)
        raise ValueError("bad row")

    try:
        with pytest.raises(ValueError):
            await manager.run_with_session(broken)
        assert len(attempts) == 1
    finally:
        await manager.disconnect()
