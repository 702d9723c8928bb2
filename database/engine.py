"""
Database Persistence Layer - Core Engine.

============================================================
PURPOSE
============================================================
SQLAlchemy engine and session management for the record store.

Requirements:
- SQLAlchemy ORM, SQLite by default
- Explicit transaction management
- Structured logging with row counts
- Hard failures on persistence errors (PersistenceError)

The engine is created lazily from PersistenceConfig; tests
build private engines with create_database_engine().

============================================================
"""

import logging
from contextlib import contextmanager
from typing import Dict, Generator, Optional

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from allocation_engine.config import PersistenceConfig
from core.exceptions import PersistenceError


logger = logging.getLogger(__name__)

# =============================================================
# DECLARATIVE BASE
# =============================================================

Base = declarative_base()

# =============================================================
# DATABASE ENGINE
# =============================================================

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


def create_database_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine.

    SQLite connections may be shared across threads; an in-memory
    SQLite database is pinned to a single connection so every
    session sees the same data.
    """
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool

    logger.info(f"Creating database engine for: {database_url.split('@')[-1]}")
    engine = create_engine(database_url, echo=echo, future=True, **kwargs)

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    return engine


def configure(config: Optional[PersistenceConfig] = None) -> Engine:
    """(Re)create the shared engine from configuration."""
    global _engine, _SessionFactory

    config = config or PersistenceConfig()
    dispose()
    _engine = create_database_engine(config.database_url, echo=config.echo)
    _SessionFactory = None
    return _engine


def get_engine() -> Engine:
    """Get the shared engine, creating it from defaults if necessary."""
    if _engine is None:
        return configure()
    return _engine


def dispose() -> None:
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """Session factory for an engine; the shared one when engine is None."""
    global _SessionFactory

    if engine is not None:
        return _make_factory(engine)

    if _SessionFactory is None:
        _SessionFactory = _make_factory(get_engine())
    return _SessionFactory


def _make_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


# =============================================================
# SESSION MANAGEMENT
# =============================================================

@contextmanager
def get_db_session(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Read-only session with automatic cleanup.

    On exception:
        - Rolls back
        - Raises PersistenceError chained to the cause
    """
    session = (factory or get_session_factory())()
    try:
        yield session
    except SQLAlchemyError as e:
        logger.error(f"Database error, rolling back: {e}")
        session.rollback()
        raise PersistenceError(f"Database read failed: {e}", cause=e) from e
    finally:
        session.close()


@contextmanager
def transaction_scope(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for explicit transaction boundaries.

    Commits only if no exception occurs.
    Rolls back on ANY exception.

    Usage:
        with transaction_scope() as session:
            session.merge(row)
            # Commits automatically at end
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed successfully")
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed, rolling back: {e}")
        session.rollback()
        raise PersistenceError(f"Transaction failed: {e}", cause=e) from e
    except Exception:
        logger.error("Transaction aborted, rolling back")
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================
# DATABASE INITIALIZATION
# =============================================================

def verify_database_connection(engine: Optional[Engine] = None) -> bool:
    """
    Raises:
        PersistenceError: If the database cannot be reached
    """
    engine = engine or get_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        logger.info("Database connection verified successfully")
        return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        raise PersistenceError(f"Cannot connect to database: {e}", cause=e) from e


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """
    Create all tables defined in ORM models.

    Raises:
        PersistenceError: If table creation fails
    """
    from . import models  # noqa: F401

    engine = engine or get_engine()
    try:
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise PersistenceError(f"Table creation failed: {e}", cause=e) from e


def initialize_database(config: Optional[PersistenceConfig] = None) -> Engine:
    """
    Full initialization sequence.

    1. Configure the shared engine
    2. Verify connection
    3. Create tables if not exist
    """
    logger.info("=" * 60)
    logger.info("INITIALIZING DATABASE")
    logger.info("=" * 60)

    engine = configure(config)
    verify_database_connection(engine)
    create_all_tables(engine)
    verify_required_tables(engine)
    return engine


def verify_required_tables(engine: Optional[Engine] = None) -> bool:
    """Log each required table as present or missing."""
    existing = set(inspect(engine or get_engine()).get_table_names())
    for table in REQUIRED_TABLES:
        if table in existing:
            logger.info(f"  [OK] Table verified: {table}")
        else:
            logger.warning(f"  [!!] Table missing: {table}")
    return existing.issuperset(REQUIRED_TABLES)


def get_table_row_counts(engine: Optional[Engine] = None) -> Dict[str, int]:
    """
    Returns:
        Dict mapping table name to row count (-1 if missing)
    """
    counts = {}
    with (engine or get_engine()).connect() as conn:
        for table in REQUIRED_TABLES:
            try:
                counts[table] = conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
            except SQLAlchemyError:
                counts[table] = -1
    return counts


# =============================================================
# CONSTANTS
# =============================================================

REQUIRED_TABLES = [
    "applicants",
    "managers",
    "officers",
    "projects",
    "project_flats",
    "applications",
    "officer_assignments",
    "enquiries",
    "credentials",
]
