"""
Process-wide SQLAlchemy engine.

Usage counters and chat streams commit from worker threads, so SQLite
connections run in WAL mode with a busy timeout; a writer that would
otherwise fail on a lock waits for it instead. Foreign keys are enforced
on every SQLite connection.
"""

from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from chatmeter.config import Settings, get_settings
from chatmeter.core import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def _sqlite_file(database_url: str) -> Path | None:
    """Database file behind a SQLite URL, or None for in-memory databases."""
    raw = database_url.split(":///", 1)[1] if ":///" in database_url else ""
    if not raw or raw == ":memory:":
        return None
    return Path(raw)


def _install_sqlite_pragmas(engine: Engine, busy_timeout_ms: int, wal: bool) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            if wal:
                cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()


def _create_sqlite_engine(settings: Settings) -> Engine:
    db_file = _sqlite_file(settings.database_url)
    if db_file is not None and not db_file.parent.exists():
        db_file.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Created database directory", data={"path": str(db_file.parent)})

    engine = create_engine(
        settings.database_url,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout_ms / 1000,
        },
        echo=settings.debug,
        pool_pre_ping=True,
    )
    _install_sqlite_pragmas(engine, settings.sqlite_busy_timeout_ms, wal=db_file is not None)
    return engine


def get_engine() -> Engine:
    """Return the shared engine, creating it from settings on first use."""
    global _engine

    if _engine is not None:
        return _engine

    settings = get_settings()
    if settings.is_sqlite:
        _engine = _create_sqlite_engine(settings)
    else:
        _engine = create_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
            pool_size=5,
            max_overflow=10,
        )

    logger.info(
        "Database engine created",
        data={"dialect": _engine.dialect.name, "debug": settings.debug},
    )
    return _engine


def verify_database_connection() -> bool:
    """True when ``SELECT 1`` succeeds on the shared engine."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database connection failed", data={"error": str(exc)})
        return False
    return True


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")
