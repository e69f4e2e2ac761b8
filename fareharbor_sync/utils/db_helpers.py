"""
Database Helper Utilities

Provides:
- Database dialect lookup
- Dialect-specific INSERT constructs for ON CONFLICT upserts
"""

from sqlalchemy.orm import Session
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert


def dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name


def upsert_insert(db: Session, model):
    """
    Return an INSERT construct that supports on_conflict_do_update().

    Both PostgreSQL and SQLite (3.35+ for RETURNING) implement ON
    CONFLICT, through separate dialect modules.

    Raises:
        NotImplementedError: for dialects without ON CONFLICT support
    """
    name = dialect_name(db)
    if name == 'postgresql':
        return pg_insert(model)
    if name == 'sqlite':
        return sqlite_insert(model)
    raise NotImplementedError(f"Upsert is not supported on dialect '{name}'")
