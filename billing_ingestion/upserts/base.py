"""
EntityUpserter protocol and the shared insert-or-update primitive.

Each upsert is ONE statement, ``INSERT ... ON CONFLICT (<natural key>) DO
UPDATE ... RETURNING id``, so the database id comes back whether the row was
inserted or reconciled, with no read-then-write race.  Upserters run inside
the orchestrator's transaction and never commit.

Failure modes:
    - UnsupportedDialectError when the session is bound to anything other
      than PostgreSQL or SQLite.
    - IntegrityError (foreign key / NOT NULL) propagates to the caller.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID, uuid4

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from billing_kernel.db.base import Base
from billing_kernel.exceptions import UnsupportedDialectError

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class EntityUpserter(Protocol):
    """Protocol for reconciling one canonical record against its natural key."""

    @property
    def entity_type(self) -> str:
        """Entity type this upserter handles (e.g. 'customer', 'invoice')."""
        ...

    def upsert(self, session: Session, *args: Any, **kwargs: Any) -> UUID:
        """Insert or update the row and return its database id."""
        ...


def upsert_returning_id(
    session: Session,
    model: type[Base],
    values: dict[str, Any],
    key_columns: list[str],
    update_columns: list[str],
) -> UUID:
    """
    Insert ``values`` or, on a natural-key conflict, update ``update_columns``.

    With no mutable columns the key column itself is rewritten to the same
    value, so RETURNING still yields the existing row's id.
    """
    dialect = session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise UnsupportedDialectError(dialect)

    stmt = insert(model).values(id=uuid4(), **values)
    targets = update_columns or key_columns
    set_ = {column: stmt.excluded[column] for column in targets}
    # ON CONFLICT updates bypass the ORM onupdate hook.
    set_["updated_at"] = func.now()

    stmt = stmt.on_conflict_do_update(index_elements=key_columns, set_=set_).returning(model.id)
    return session.execute(stmt).scalar_one()
