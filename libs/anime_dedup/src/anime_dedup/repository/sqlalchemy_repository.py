"""SQLAlchemy implementation of the document repository."""

import copy
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from sqlalchemy import DateTime, create_engine, func, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from common.utils.id_generation import EntityType, generate_ulid

from ..exceptions import StoreUnavailableError
from .base import (
    ANIME,
    CUSTOM_LISTS,
    MERGE_BATCHES,
    REVIEWS,
    WATCHLIST,
    Document,
    DocumentRepository,
)
from .tables import (
    AnimeRow,
    Base,
    CustomListRow,
    MergeBatchRow,
    ReviewRow,
    WatchlistRow,
)

logger = logging.getLogger(__name__)

_MODELS: dict[str, type[Base]] = {
    ANIME: AnimeRow,
    WATCHLIST: WatchlistRow,
    REVIEWS: ReviewRow,
    CUSTOM_LISTS: CustomListRow,
    MERGE_BATCHES: MergeBatchRow,
}

_ENTITY_TYPES: dict[str, EntityType] = {
    ANIME: "anime",
    WATCHLIST: "watchlist",
    REVIEWS: "review",
    CUSTOM_LISTS: "custom_list",
    MERGE_BATCHES: "merge_batch",
}

# Derived columns that are queryable but never part of a returned document
_HIDDEN_COLUMNS = frozenset({"normalized_title"})


class SqlAlchemyRepository(DocumentRepository):
    """Repository backed by one SQLAlchemy engine.

    Each thread gets its own session while a ``transaction()`` is open;
    operations outside a transaction run in a short transaction of their own.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=True, expire_on_commit=False, class_=Session
        )
        self._local = threading.local()

    def create_schema(self) -> None:
        """Create any missing tables."""
        try:
            Base.metadata.create_all(self.engine)
        except OperationalError as e:
            raise StoreUnavailableError(f"Could not create schema: {e}") from e

    def dispose(self) -> None:
        self.engine.dispose()

    # ==================== Transactions ====================

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "session", None) is not None:
            yield
            return

        session = self._session_factory()
        self._local.session = session
        try:
            with session.begin():
                yield
        except OperationalError as e:
            logger.error(f"Store operation failed: {e}")
            raise StoreUnavailableError(f"Store unavailable: {e}") from e
        finally:
            self._local.session = None
            session.close()

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        active = getattr(self._local, "session", None)
        if active is not None:
            yield active
            return
        with self.transaction():
            yield self._local.session

    # ==================== Helpers ====================

    @staticmethod
    def _model(collection: str) -> type[Base]:
        try:
            return _MODELS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection '{collection}'") from None

    @staticmethod
    def _to_doc(row: Base) -> Document:
        return {
            column.name: copy.deepcopy(getattr(row, column.name))
            for column in row.__table__.columns
            if column.name not in _HIDDEN_COLUMNS
        }

    @staticmethod
    def _coerce(model: type[Base], fields: Document, allow_hidden: bool = False) -> Document:
        columns = model.__table__.columns
        coerced: Document = {}
        for name, value in fields.items():
            if name not in columns or (name in _HIDDEN_COLUMNS and not allow_hidden):
                raise ValueError(f"Unknown field '{name}' for table '{model.__tablename__}'")
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(columns[name].type, DateTime) and isinstance(value, str):
                # snapshots carry ISO strings
                value = datetime.fromisoformat(value)
            coerced[name] = copy.deepcopy(value)
        return coerced

    # ==================== Reads ====================

    def get(self, collection: str, doc_id: str) -> Document | None:
        model = self._model(collection)
        with self._session_scope() as session:
            row = session.get(model, doc_id)
            return self._to_doc(row) if row is not None else None

    def list_all(self, collection: str) -> list[Document]:
        model = self._model(collection)
        with self._session_scope() as session:
            rows = session.scalars(select(model).order_by(model.id)).all()
            return [self._to_doc(row) for row in rows]

    def query(self, collection: str, **equals: Any) -> list[Document]:
        model = self._model(collection)
        criteria = self._coerce(model, equals, allow_hidden=True)
        with self._session_scope() as session:
            stmt = select(model).filter_by(**criteria).order_by(model.id)
            return [self._to_doc(row) for row in session.scalars(stmt).all()]

    def query_contains(self, collection: str, field: str, value: Any) -> list[Document]:
        model = self._model(collection)
        if field not in model.__table__.columns:
            raise ValueError(f"Unknown field '{field}' for table '{model.__tablename__}'")
        # JSON containment is dialect specific, filter in Python
        return [
            doc
            for doc in self.list_all(collection)
            if isinstance(doc.get(field), list) and value in doc[field]
        ]

    def count(self, collection: str) -> int:
        model = self._model(collection)
        with self._session_scope() as session:
            return session.scalar(select(func.count()).select_from(model)) or 0

    # ==================== Writes ====================

    def insert(self, collection: str, doc: Document) -> str:
        model = self._model(collection)
        fields = {k: v for k, v in doc.items() if k not in _HIDDEN_COLUMNS}
        if not fields.get("id"):
            fields["id"] = generate_ulid(_ENTITY_TYPES[collection])
        row = model(**self._coerce(model, fields))
        with self._session_scope() as session:
            session.add(row)
            session.flush()
        return fields["id"]

    def patch(self, collection: str, doc_id: str, fields: Document) -> bool:
        model = self._model(collection)
        values = self._coerce(model, {k: v for k, v in fields.items() if k != "id"})
        with self._session_scope() as session:
            row = session.get(model, doc_id)
            if row is None:
                return False
            for name, value in values.items():
                setattr(row, name, value)
            session.flush()
            return True

    def delete(self, collection: str, doc_id: str) -> bool:
        model = self._model(collection)
        with self._session_scope() as session:
            row = session.get(model, doc_id)
            if row is None:
                return False
            session.delete(row)
            session.flush()
            return True


def create_repository(
    database_url: str, echo: bool = False, create_schema: bool = True
) -> SqlAlchemyRepository:
    """Build a repository for a database URL.

    SQLite files get a NullPool so file handles are released between
    sessions; in-memory SQLite shares one connection across threads.
    """
    url = make_url(database_url)
    engine_kwargs: dict[str, Any] = {"echo": echo}
    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            engine_kwargs["poolclass"] = NullPool

    engine = create_engine(url, **engine_kwargs)
    repository = SqlAlchemyRepository(engine)
    if create_schema:
        repository.create_schema()
    logger.info(f"Repository ready ({url.get_backend_name()}, schema created: {create_schema})")
    return repository
