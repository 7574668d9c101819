"""
Persistence gateway: the only way services touch the database.

Offers select/insert/update/delete over the workspace tables with simple
filters, ordering and limits, and publishes a ChangeEvent for every row a
committed write touches.  Writes made inside ``atomic()`` commit together;
their events go out after the commit, and nothing is published on rollback.

Storage errors are rolled back and re-raised as UpstreamFailure
(ConstraintViolation for integrity errors) so callers never see SQLAlchemy
exceptions.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import func, inspect as sa_inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from huddle.core import events
from huddle.core.errors import ConstraintViolation, InvalidInput, UpstreamFailure
from huddle.gateway.changefeed import ChangeBus, ChangeEvent, bus
from huddle.models.auth_identity import AuthIdentity
from huddle.models.channel import Channel
from huddle.models.invite_code import InviteCode
from huddle.models.message import Message
from huddle.models.reaction import Reaction
from huddle.models.user import User

logger = logging.getLogger(__name__)

TABLES: dict[str, type] = {
    "auth_identities": AuthIdentity,
    "users": User,
    "channels": Channel,
    "messages": Message,
    "reactions": Reaction,
    "invite_codes": InviteCode,
}

# Credential rows never leave the process through change events.
_PRIVATE_TABLES = {"auth_identities"}


# ── Filters ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any = None


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def ieq(column: str, value: str) -> Filter:
    """Case-insensitive equality."""
    return Filter(column, "ieq", value)


def gt(column: str, value: Any) -> Filter:
    return Filter(column, "gt", value)


def lt(column: str, value: Any) -> Filter:
    return Filter(column, "lt", value)


def is_null(column: str) -> Filter:
    return Filter(column, "is_null")


def _clause(model: type, f: Filter):
    try:
        col = getattr(model, f.column)
    except AttributeError:
        raise InvalidInput(f"Unknown column {model.__tablename__}.{f.column}") from None
    if f.op == "eq":
        return col.is_(None) if f.value is None else col == f.value
    if f.op == "ieq":
        return func.lower(col) == str(f.value).lower()
    if f.op == "gt":
        return col > f.value
    if f.op == "lt":
        return col < f.value
    if f.op == "is_null":
        return col.is_(None)
    raise InvalidInput(f"Unsupported filter operator {f.op!r}")


# ── Row serialisation ─────────────────────────────────────────────────────────


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def row_to_dict(row: Any) -> dict:
    mapper = sa_inspect(row).mapper
    return {attr.key: _jsonable(getattr(row, attr.key)) for attr in mapper.column_attrs}


# ── Gateway ───────────────────────────────────────────────────────────────────


class PersistenceGateway:
    def __init__(self, db: Session, changes: ChangeBus | None = None) -> None:
        self.db = db
        self.changes = changes if changes is not None else bus
        self._pending: list[ChangeEvent] | None = None

    # Transactions ----------------------------------------------------------

    @contextmanager
    def atomic(self):
        """Commit everything written inside the block as one transaction."""
        if self._pending is not None:
            # Nested: the outermost block owns commit and rollback.
            yield
            return

        self._pending = []
        try:
            yield
            self.db.commit()
        except IntegrityError as exc:
            self._abort()
            logger.warning("Constraint violation, transaction rolled back: %s", exc.orig)
            raise ConstraintViolation(f"Constraint violation: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self._abort()
            logger.error("Database error, transaction rolled back: %s", exc)
            raise UpstreamFailure(f"Database error: {exc.__class__.__name__}") from exc
        except BaseException:
            self._abort()
            raise

        pending, self._pending = self._pending, None
        for event in pending:
            self.changes.publish(event)

    def _abort(self) -> None:
        self.db.rollback()
        self._pending = None

    def _emit(self, table: str, change: str, new: dict | None = None, old: dict | None = None) -> None:
        if table in _PRIVATE_TABLES:
            return
        self._pending.append(ChangeEvent(table=table, change=change, new=new or {}, old=old or {}))

    # Reads -----------------------------------------------------------------

    def _model(self, table: str) -> type:
        try:
            return TABLES[table]
        except KeyError:
            raise InvalidInput(f"Unknown table {table!r}") from None

    def select(
        self,
        table: str,
        *filters: Filter,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        load: tuple[str, ...] = (),
    ) -> list:
        model = self._model(table)
        query = self.db.query(model).filter(*[_clause(model, f) for f in filters])
        for rel in load:
            query = query.options(selectinload(getattr(model, rel)))
        if order_by:
            col = getattr(model, order_by)
            query = query.order_by(col.desc() if descending else col.asc())
        if limit is not None:
            query = query.limit(limit)
        try:
            return query.all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Select on %s failed: %s", table, exc)
            raise UpstreamFailure(f"Could not read {table}") from exc

    def first(self, table: str, *filters: Filter, **kwargs) -> Any | None:
        rows = self.select(table, *filters, limit=1, **kwargs)
        return rows[0] if rows else None

    # Writes ----------------------------------------------------------------

    def insert(self, table: str, values: dict) -> Any:
        row = self._model(table)(**values)
        with self.atomic():
            self.db.add(row)
            self.db.flush()
            self._emit(table, events.INSERT, new=row_to_dict(row))
        return row

    def update(self, table: str, values: dict, *filters: Filter) -> list:
        if not filters:
            raise InvalidInput("Refusing to update without a filter")
        with self.atomic():
            rows = self.select(table, *filters)
            for row in rows:
                old = row_to_dict(row)
                for key, value in values.items():
                    setattr(row, key, value)
                self.db.flush()
                self._emit(table, events.UPDATE, new=row_to_dict(row), old=old)
        return rows

    def delete(self, table: str, *filters: Filter) -> int:
        if not filters:
            raise InvalidInput("Refusing to delete without a filter")
        with self.atomic():
            rows = self.select(table, *filters)
            for row in rows:
                old = row_to_dict(row)
                self.db.delete(row)
                self.db.flush()
                self._emit(table, events.DELETE, old=old)
        return len(rows)
