"""
library/store.py -- SQLAlchemy-backed persistence for book collections.

Uses SQLAlchemy Core (not ORM) so the dataclasses in library/models.py stay
the domain representation.

Pattern: Repository + Data Mapper. CollectionStore is the repository;
_row_to_collection is the mapper.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CollectionStore()
    collection_id = store.create_collection(Collection(owner_id=1, title="To read"))
    store.list_public()
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.config import get_settings
from core.errors import BadRequestError
from library.models import Collection

metadata = MetaData()

_collections = Table(
    "collections",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("title", String(100), nullable=False),
    Column("is_private", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("owner_id", "title", name="uq_collection_owner_title"),
    sqlite_autoincrement=True,
)

_UPDATABLE_FIELDS = {"title", "is_private"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


class CollectionStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers in a thread pool, so one SQLite
            # connection may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_collection(self, collection: Collection) -> int:
        """Insert a collection and return its ID.

        Raises BadRequestError if the owner already has a collection with
        this title.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _collections.insert().values(
                        owner_id=collection.owner_id,
                        title=collection.title,
                        is_private=collection.is_private,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise BadRequestError("Collection name already exists on this account!") from exc

    def get_collection(self, collection_id: int) -> Optional[Collection]:
        """Fetch a single collection by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_collections.select().where(_collections.c.id == collection_id)).fetchone()
        return _row_to_collection(row) if row is not None else None

    def list_public(self) -> list[Collection]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _collections.select().where(_collections.c.is_private.is_(False)).order_by(_collections.c.id)
            ).fetchall()
        return [_row_to_collection(r) for r in rows]

    def list_for_owner(self, owner_id: int) -> list[Collection]:
        """All collections owned by owner_id, private ones included."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _collections.select().where(_collections.c.owner_id == owner_id).order_by(_collections.c.id)
            ).fetchall()
        return [_row_to_collection(r) for r in rows]

    def update_collection(self, collection_id: int, **fields) -> bool:
        """Update title and/or is_private. Returns False if the collection is missing."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown collection fields: {sorted(unknown)}")
        if not fields:
            return self.get_collection(collection_id) is not None
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _collections.update().where(_collections.c.id == collection_id).values(**fields)
                )
                conn.commit()
        except IntegrityError as exc:
            raise BadRequestError("Collection name already exists on this account!") from exc
        return result.rowcount > 0

    def delete_collection(self, collection_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_collections.delete().where(_collections.c.id == collection_id))
            conn.commit()
        return result.rowcount > 0

    def delete_for_owner(self, owner_id: int) -> int:
        """Remove every collection owned by owner_id. Returns the number removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_collections.delete().where(_collections.c.owner_id == owner_id))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_collection(row) -> Collection:
    return Collection(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        is_private=bool(row.is_private),
        created_at=row.created_at,
    )
