from __future__ import annotations

from typing import Any, Dict, Sequence

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session


def _insert_for(db: Session, table):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(table)
    if dialect == "sqlite":
        return sqlite_insert(table)
    raise NotImplementedError(f"ON CONFLICT inserts are not supported on {dialect}")


def insert_ignore(db: Session, model, values: Dict[str, Any], index_elements: Sequence[str]) -> int:
    """
    INSERT ... ON CONFLICT (index_elements) DO NOTHING.
    Returns the number of rows actually inserted (0 or 1).
    """
    stmt = _insert_for(db, model.__table__).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=list(index_elements))
    return db.execute(stmt).rowcount
