"""Dialect-aware INSERT constructs for upserts and insert-or-ignore."""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, table):
    """
    Return the dialect-specific insert() for the session's bind.
    
    Both constructs expose on_conflict_do_nothing / on_conflict_do_update
    with the same keyword arguments.
    """
    name = db.bind.dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Upserts are not supported for dialect {name!r}")
