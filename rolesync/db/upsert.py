"""Dialect-aware INSERT ... ON CONFLICT statements."""

from typing import Any, Dict, Iterable

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from rolesync.core.exceptions import StoreError

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_for(session: Session, table: Table):
    dialect = session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise StoreError(f"Upsert is not supported on dialect '{dialect}'")
    return insert(table)


def upsert_statement(
    session: Session,
    table: Table,
    values: Dict[str, Any],
    key: str = "dn",
    preserve: Iterable[str] = ("created_at",),
):
    """Build an insert-or-update keyed by ``key``.

    Every column in ``values`` except the key and the ``preserve`` columns is
    overwritten on conflict, so ``created_at`` keeps its first-insert value.
    """
    stmt = _insert_for(session, table).values(**values)
    skip = {key, *preserve}
    update_cols = {
        name: stmt.excluded[name] for name in values if name not in skip
    }
    return stmt.on_conflict_do_update(index_elements=[key], set_=update_cols)


def insert_ignore_statement(session: Session, table: Table, values: Dict[str, Any]):
    """Insert a row, doing nothing when it already exists."""
    return _insert_for(session, table).values(**values).on_conflict_do_nothing()
