"""EmbeddingStore — async SQL storage for per-chunk embedding records."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import Text, cast, delete, event, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from notewise.exceptions import MalformedRecordError, StorageUnavailableError
from notewise.models.embeddings import EmbeddingRecord, record_id

from .dialect import get_dialect, upsert

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_DB_FILE = "embeddings.db"
_COLUMNS = (
    EmbeddingRecord.id,
    EmbeddingRecord.document_id,
    EmbeddingRecord.chunk_text,
    cast(EmbeddingRecord.vector, Text).label("vector"),
    EmbeddingRecord.created_at,
)


def validate_record(record: EmbeddingRecord, dimensions: int | None = None) -> EmbeddingRecord:
    """Check the shape of *record*, returning it unchanged.

    Raises :class:`MalformedRecordError` when an id is missing, the vector
    is empty or holds non-numeric values, the timestamp is not an integer,
    or the vector arity differs from *dimensions*.
    """
    if not record.id or not record.document_id:
        raise MalformedRecordError(f"Embedding record {record.id!r} is missing its identifiers")
    if not isinstance(record.chunk_text, str) or not record.chunk_text:
        raise MalformedRecordError(f"Embedding record {record.id!r} has no chunk text")
    vector = record.vector
    if not isinstance(vector, list) or not vector:
        raise MalformedRecordError(f"Embedding record {record.id!r} has an empty vector")
    for value in vector:
        numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
        if not numeric or not math.isfinite(value):
            raise MalformedRecordError(f"Embedding record {record.id!r} has a non-numeric vector")
    if dimensions is not None and len(vector) != dimensions:
        msg = (
            f"Embedding record {record.id!r} has {len(vector)} dimensions, "
            f"expected {dimensions}"
        )
        raise MalformedRecordError(msg)
    if isinstance(record.created_at, bool) or not isinstance(record.created_at, int):
        raise MalformedRecordError(f"Embedding record {record.id!r} has an invalid timestamp")
    return record


def _row_to_record(row: Any) -> EmbeddingRecord:
    """Build a record from a raw row whose vector column is JSON text."""
    try:
        vector = json.loads(row.vector) if row.vector is not None else None
    except (TypeError, ValueError) as exc:
        raise MalformedRecordError(f"Embedding record {row.id!r} has an unreadable vector") from exc
    return EmbeddingRecord(
        id=row.id,
        document_id=row.document_id,
        chunk_text=row.chunk_text,
        vector=vector,
        created_at=row.created_at,
    )


def _record_values(record: EmbeddingRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "document_id": record.document_id,
        "chunk_text": record.chunk_text,
        "vector": [float(v) for v in record.vector],
        "created_at": int(record.created_at),
    }


class EmbeddingStore:
    """Durable keyed storage for :class:`EmbeddingRecord` rows.

    Owns a SQLite database at ``{data_dir}/embeddings.db`` unless an
    async engine is injected, in which case the caller owns the engine
    and ``close()`` leaves it alone.

    Every public method runs in its own transaction.  Writes are atomic
    per call: either all records of a call become visible or none do.
    The ``(document_id, chunk_text)`` pair is kept unique by upsert
    semantics rather than locking.
    """

    def __init__(
        self,
        *,
        engine: AsyncEngine | None = None,
        data_dir: str | Path | None = None,
        dimensions: int | None = None,
    ) -> None:
        if engine is None and data_dir is None:
            msg = "EmbeddingStore needs an engine or a data_dir"
            raise ValueError(msg)
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self.dimensions = dimensions
        self._engine: AsyncEngine | None = engine
        self._owns_engine = engine is None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self.dialect = get_dialect(engine) if engine is not None else "sqlite"
        self._init_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Create the engine if needed and ensure the table exists."""
        if self._session_factory is not None:
            return
        async with self._init_lock:
            if self._session_factory is not None:
                return
            try:
                if self._engine is None:
                    self._engine = self._create_engine()
                table = EmbeddingRecord.__table__  # type: ignore[attr-defined]
                async with self._engine.begin() as conn:
                    await conn.run_sync(lambda c: table.create(c, checkfirst=True))
            except (SQLAlchemyError, OSError) as exc:
                msg = f"Cannot open embedding storage: {exc}"
                raise StorageUnavailableError(msg) from exc

            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

    async def close(self) -> None:
        """Release the engine when this store created it."""
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()
            self._engine = None
        self._session_factory = None

    async def __aenter__(self) -> EmbeddingStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _create_engine(self) -> AsyncEngine:
        assert self.data_dir is not None
        self.data_dir.mkdir(parents=True, exist_ok=True)
        db_path = self.data_dir / _DB_FILE
        engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: object, connection_record: object) -> None:
            cursor = dbapi_connection.cursor()  # type: ignore[union-attr]
            cursor.execute("PRAGMA journal_mode=WAL")
            result = cursor.fetchone()
            if result[0].lower() != "wal":
                logger.warning("WAL mode not active, got: %s", result[0])
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        return engine

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Yield a session inside a transaction, translating driver errors."""
        if self._session_factory is None:
            msg = "Embedding storage is not open; call open() first"
            raise StorageUnavailableError(msg)
        try:
            async with self._session_factory() as session, session.begin():
                yield session
        except (SQLAlchemyError, OSError) as exc:
            msg = f"Embedding storage unavailable: {exc}"
            raise StorageUnavailableError(msg) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def put(self, records: Iterable[EmbeddingRecord]) -> int:
        """Upsert *records* by id in one transaction. Returns count written.

        Any other record already holding a record's
        ``(document_id, chunk_text)`` under a different id is removed
        first, so the compound key always maps to the latest write.
        """
        records = [validate_record(r, self.dimensions) for r in records]
        if not records:
            return 0
        async with self._transaction() as session:
            for record in records:
                await self._upsert(session, record)
        logger.debug("Stored %d embedding records", len(records))
        return len(records)

    async def replace_document(self, document_id: str, records: Iterable[EmbeddingRecord]) -> int:
        """Delete every record of *document_id* and store *records* in its place."""
        records = [validate_record(r, self.dimensions) for r in records]
        for record in records:
            if record.document_id != document_id:
                msg = f"Record {record.id!r} belongs to {record.document_id!r}, not {document_id!r}"
                raise ValueError(msg)
        async with self._transaction() as session:
            await self._delete_document(session, document_id)
            for record in records:
                await self._upsert(session, record)
        logger.debug("Replaced embeddings for %s with %d records", document_id, len(records))
        return len(records)

    async def delete_by_document(self, document_id: str) -> int:
        """Remove every record for *document_id*. Returns count deleted."""
        async with self._transaction() as session:
            return await self._delete_document(session, document_id)

    async def rename_document(self, old_document_id: str, new_document_id: str) -> int:
        """Move the records of *old_document_id* under *new_document_id*.

        Ids are rewritten to the new document path; vectors and
        timestamps are kept.  Returns the number of records moved.
        """
        if old_document_id == new_document_id:
            return 0
        async with self._transaction() as session:
            rows = await self._select(session, EmbeddingRecord.document_id == old_document_id)
            moved: list[EmbeddingRecord] = []
            for index, record in enumerate(sort_by_chunk(rows)):
                moved.append(
                    EmbeddingRecord(
                        id=record_id(new_document_id, _chunk_index(record, index)),
                        document_id=new_document_id,
                        chunk_text=record.chunk_text,
                        vector=record.vector,
                        created_at=record.created_at,
                    )
                )
            await self._delete_document(session, old_document_id)
            await self._delete_document(session, new_document_id)
            for record in moved:
                await self._upsert(session, record)
        return len(moved)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_document(self, document_id: str) -> list[EmbeddingRecord]:
        """Return all valid records of *document_id* (order unspecified)."""
        async with self._transaction() as session:
            return await self._select(session, EmbeddingRecord.document_id == document_id)

    async def get_by_document_and_chunk(
        self, document_id: str, chunk_text: str
    ) -> EmbeddingRecord | None:
        """Return the record for the exact ``(document_id, chunk_text)`` key."""
        async with self._transaction() as session:
            rows = await self._select(
                session,
                EmbeddingRecord.document_id == document_id,
                EmbeddingRecord.chunk_text == chunk_text,
            )
        return rows[0] if rows else None

    async def get_all(self) -> list[EmbeddingRecord]:
        """Return a snapshot of every valid record in the store."""
        async with self._transaction() as session:
            return await self._select(session)

    async def count(self) -> int:
        """Return the number of stored rows, valid or not."""
        async with self._transaction() as session:
            result = await session.execute(select(func.count()).select_from(EmbeddingRecord))
            return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _select(self, session: AsyncSession, *criteria: Any) -> list[EmbeddingRecord]:
        """Run a filtered scan, skipping rows that fail validation."""
        stmt = select(*_COLUMNS)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await session.execute(stmt)
        records: list[EmbeddingRecord] = []
        for row in result.all():
            try:
                records.append(validate_record(_row_to_record(row), self.dimensions))
            except MalformedRecordError as exc:
                logger.warning("Skipping malformed embedding record: %s", exc)
        return records

    async def _upsert(self, session: AsyncSession, record: EmbeddingRecord) -> None:
        model = EmbeddingRecord
        await session.execute(
            delete(model).where(
                model.document_id == record.document_id,  # type: ignore[arg-type]
                model.chunk_text == record.chunk_text,  # type: ignore[arg-type]
                model.id != record.id,  # type: ignore[arg-type]
            )
        )
        await upsert(session, self.dialect, model, _record_values(record), conflict_keys=["id"])

    @staticmethod
    async def _delete_document(session: AsyncSession, document_id: str) -> int:
        model = EmbeddingRecord
        result = await session.execute(
            delete(model).where(model.document_id == document_id)  # type: ignore[arg-type]
        )
        return result.rowcount or 0


def _chunk_index(record: EmbeddingRecord, fallback: int) -> int:
    """Recover the chunk ordinal from a record id, or use *fallback*."""
    _, _, suffix = record.id.rpartition("-")
    return int(suffix) if suffix.isdigit() else fallback


def _chunk_order(record: EmbeddingRecord) -> int:
    return _chunk_index(record, 0)


def sort_by_chunk(records: Sequence[EmbeddingRecord]) -> list[EmbeddingRecord]:
    """Return *records* ordered by their chunk ordinal."""
    return sorted(records, key=_chunk_order)
