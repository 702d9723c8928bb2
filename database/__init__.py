"""
Database Package Initialization.

============================================================
SQL PERSISTENCE FOR THE HOUSING ENGINE
============================================================

Every engine record is persisted to SQL tables through
SQLAlchemy with explicit transaction management.

REQUIRED:
- Every write is logged with its row count
- Every failure raises PersistenceError
- All transactions are explicit with commit/rollback

============================================================
"""

# Core engine and session management
from .engine import (
    # Declarative base
    Base,

    # Engine creation
    create_database_engine,
    configure,
    dispose,
    get_engine,

    # Session management
    get_session_factory,
    get_db_session,
    transaction_scope,

    # Database initialization
    initialize_database,
    verify_database_connection,
    create_all_tables,
    verify_required_tables,
    get_table_row_counts,
    REQUIRED_TABLES,
)

# ORM Models
from .models import (
    ApplicantRow,
    ManagerRow,
    OfficerRow,
    ProjectRow,
    ProjectFlatRow,
    ApplicationRow,
    OfficerAssignmentRow,
    EnquiryRow,
    CredentialRow,
)

# Stores
from .persistence import SqlRecordStore, SqlCredentialStore


__all__ = [
    # Base
    "Base",
    # Engine & Session
    "create_database_engine",
    "configure",
    "dispose",
    "get_engine",
    "get_session_factory",
    "get_db_session",
    "transaction_scope",
    # Initialization
    "initialize_database",
    "verify_database_connection",
    "create_all_tables",
    "verify_required_tables",
    "get_table_row_counts",
    "REQUIRED_TABLES",
    # Models
    "ApplicantRow",
    "ManagerRow",
    "OfficerRow",
    "ProjectRow",
    "ProjectFlatRow",
    "ApplicationRow",
    "OfficerAssignmentRow",
    "EnquiryRow",
    "CredentialRow",
    # Stores
    "SqlRecordStore",
    "SqlCredentialStore",
]
