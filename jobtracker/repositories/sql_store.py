"""SQL document store.

Stores each document as a JSON payload in the shared ``documents`` table,
keyed by (collection, id). Works with any SQLAlchemy async driver; tests run
it on in-memory SQLite through aiosqlite.

Example:
    engine = create_sql_engine("sqlite+aiosqlite:///tracker.db")
    await create_schema(engine)
    store = SqlDocumentStore(Application, "applications", engine)
"""

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from jobtracker.core.errors import PersistenceError
from jobtracker.models.base import Base
from jobtracker.models.document import DocumentRecord
from jobtracker.repositories.base import DocumentStore, T

logger = logging.getLogger(__name__)


def create_sql_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the document table.

    In-memory SQLite URLs get a StaticPool so every session shares the same
    connection (and therefore the same database).
    """
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the documents table if it does not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


class SqlDocumentStore(DocumentStore[T]):
    """Collection of JSON documents in a SQL table.

    Each method opens its own session and commits before returning, so a
    successful call is durable.

    Args:
        model: Model class used to rebuild documents on load.
        collection: Collection name stored in every row.
        engine: Async SQLAlchemy engine.
        actor_id: Identity stamped on rows this store writes.
    """

    backend_name = "sql"

    def __init__(
        self,
        model: type[T],
        collection: str,
        engine: AsyncEngine,
        *,
        actor_id: str | None = None,
    ) -> None:
        super().__init__(model, collection)
        self.engine = engine
        self.actor_id = actor_id
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def _failure(self, action: str, exc: SQLAlchemyError) -> PersistenceError:
        logger.error("SQL %s failed for %s: %s", action, self.collection, exc)
        return PersistenceError(
            f"Could not {action} {self.collection}: {exc.__class__.__name__}",
            backend=self.backend_name,
        )

    def _new_record(self, document: dict, position: int) -> DocumentRecord:
        return DocumentRecord(
            collection=self.collection,
            id=document["id"],
            payload=document,
            position=position,
            created_by=self.actor_id,
            last_modified_by=self.actor_id,
        )

    async def load(self) -> list[T]:
        stmt = (
            select(DocumentRecord.payload)
            .where(DocumentRecord.collection == self.collection)
            .order_by(DocumentRecord.position, DocumentRecord.id)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                documents = list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise self._failure("load", exc) from exc
        return self.from_documents(documents)

    async def save(self, items: list[T]) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    delete(DocumentRecord).where(
                        DocumentRecord.collection == self.collection
                    )
                )
                session.add_all(
                    self._new_record(self.to_document(item), position)
                    for position, item in enumerate(items)
                )
        except SQLAlchemyError as exc:
            raise self._failure("save", exc) from exc

    async def save_one(self, item: T, is_new: bool) -> None:
        document = self.to_document(item)
        try:
            async with self._session_factory() as session, session.begin():
                record = await session.get(
                    DocumentRecord, (self.collection, document["id"])
                )
                if record is not None:
                    record.payload = document
                    record.last_modified_by = self.actor_id
                    return
                next_position = await session.scalar(
                    select(func.coalesce(func.max(DocumentRecord.position) + 1, 0))
                    .where(DocumentRecord.collection == self.collection)
                )
                session.add(self._new_record(document, next_position or 0))
        except SQLAlchemyError as exc:
            raise self._failure("save", exc) from exc

    async def delete(self, item_id: str) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    delete(DocumentRecord).where(
                        DocumentRecord.collection == self.collection,
                        DocumentRecord.id == item_id,
                    )
                )
        except SQLAlchemyError as exc:
            raise self._failure("delete", exc) from exc
