"""
data_client.py
--------------
Narrow read/write interface over the relational store. Pages and services
talk to named collections (``wallets``, ``transactions``, ...) and get plain
dicts back, so nothing above this layer holds an ORM session.
"""

from __future__ import annotations

import contextvars
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from database import Category, ChatLog, Profile, SessionLocal, Transaction, Wallet
from errors import DataAccessError, LoadCancelled, NotFoundError
from logger import get_logger

log = get_logger("data_client")

COLLECTIONS = {
    "wallets": Wallet,
    "transactions": Transaction,
    "categories": Category,
    "profiles": Profile,
    "ai_chat_logs": ChatLog,
}

# Columns of the joined rows embedded in each transaction
WALLET_EMBED = ("name", "color")
CATEGORY_EMBED = ("name", "icon", "color")


def _column_values(obj) -> Dict[str, Any]:
    return {col.name: getattr(obj, col.name) for col in obj.__table__.columns}


def row_to_dict(obj) -> Dict[str, Any]:
    """Convert a model instance to a dict; transactions carry their wallet and category."""
    row = _column_values(obj)
    if isinstance(obj, Transaction):
        row["wallet"] = {k: getattr(obj.wallet, k) for k in WALLET_EMBED} if obj.wallet else None
        row["category"] = {k: getattr(obj.category, k) for k in CATEGORY_EMBED} if obj.category else None
    return row


def _filter_clause(column, value):
    # None -> IS NULL; list/tuple -> IN, with a None member meaning "or IS NULL"
    if value is None:
        return column.is_(None)
    if isinstance(value, (list, tuple, set)):
        values = [v for v in value if v is not None]
        clause = column.in_(values)
        if len(values) != len(value):
            clause = or_(clause, column.is_(None))
        return clause
    return column == value


class DataClient:
    """Query/mutation client over the tracker's collections."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            raise DataAccessError(str(exc)) from exc
        finally:
            db.close()

    @staticmethod
    def _model(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise DataAccessError(f"Unknown collection '{collection}'") from None

    @staticmethod
    def _column(model, name: str):
        column = model.__table__.columns.get(name)
        if column is None:
            raise DataAccessError(f"Unknown column '{name}' on {model.__tablename__}")
        return getattr(model, name)

    def select(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        columns: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows of ``collection`` matching ``filters`` as dicts.

        ``columns`` trims each returned dict to the named keys (joined
        ``wallet``/``category`` entries may be named too).
        """
        model = self._model(collection)
        stmt = select(model)
        for name, value in (filters or {}).items():
            stmt = stmt.where(_filter_clause(self._column(model, name), value))
        if order_by:
            column = self._column(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._session() as db:
            rows = [row_to_dict(obj) for obj in db.execute(stmt).unique().scalars().all()]

        if columns:
            keep = list(columns)
            rows = [{k: row.get(k) for k in keep} for row in rows]
        return rows

    def insert(self, collection: str, values: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(collection)
        with self._session() as db:
            try:
                obj = model(**values)
            except TypeError as exc:
                raise DataAccessError(str(exc)) from exc
            db.add(obj)
            db.commit()
            db.refresh(obj)
            return row_to_dict(obj)

    def _get(self, db, model, row_id: str, filters: Optional[Dict[str, Any]] = None):
        """Row by id, or None. ``filters`` must match too (e.g. the owner)."""
        if not filters:
            return db.get(model, row_id)
        stmt = select(model).where(self._column(model, "id") == row_id)
        for name, value in filters.items():
            stmt = stmt.where(_filter_clause(self._column(model, name), value))
        return db.execute(stmt).unique().scalars().first()

    def update(
        self,
        collection: str,
        row_id: str,
        values: Dict[str, Any],
        filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Update one row by id; a row outside ``filters`` counts as missing."""
        model = self._model(collection)
        with self._session() as db:
            obj = self._get(db, model, row_id, filters)
            if obj is None:
                raise NotFoundError(f"No row '{row_id}' in {collection}")
            for name, value in values.items():
                self._column(model, name)
                setattr(obj, name, value)
            db.commit()
            db.refresh(obj)
            return row_to_dict(obj)

    def delete(self, collection: str, row_id: str, filters: Optional[Dict[str, Any]] = None) -> None:
        """Hard delete by id.

        Without ``filters`` deleting a missing row is not an error. With them,
        a row that is missing or does not match raises ``NotFoundError``.
        """
        model = self._model(collection)
        with self._session() as db:
            obj = self._get(db, model, row_id, filters)
            if obj is None:
                if filters:
                    raise NotFoundError(f"No row '{row_id}' in {collection}")
                return
            db.delete(obj)
            db.commit()


class CancelToken:
    """Cancellation flag tied to the lifetime of the view consuming a load."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def fetch_concurrently(
    calls: Sequence[Callable[[], Any]],
    cancel: Optional[CancelToken] = None,
    poll_interval: float = 0.05,
) -> List[Any]:
    """Run several reads at once and wait for all of them.

    Results come back in the order of ``calls``. The first exception raised by
    any call fails the whole load. If ``cancel`` fires first, queued calls are
    dropped and ``LoadCancelled`` is raised.
    """
    if cancel is not None and cancel.cancelled:
        raise LoadCancelled("Load cancelled before it started")
    if not calls:
        return []

    pool = ThreadPoolExecutor(max_workers=len(calls), thread_name_prefix="fetch")
    try:
        # each worker runs in a copy of the caller's context (log user id)
        futures = [pool.submit(contextvars.copy_context().run, call) for call in calls]
        pending = set(futures)
        while pending:
            if cancel is not None and cancel.cancelled:
                raise LoadCancelled("Load cancelled while queries were in flight")
            done, pending = wait(pending, timeout=poll_interval, return_when=FIRST_EXCEPTION)
            for future in done:
                exc = future.exception()
                if exc is not None:
                    raise exc
        if cancel is not None and cancel.cancelled:
            raise LoadCancelled("Load cancelled after queries finished")
        return [future.result() for future in futures]
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def parse_date(value) -> Optional[date]:
    """Coerce an ISO string/datetime/date into a ``date``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
