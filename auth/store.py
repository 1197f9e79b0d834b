"""
auth/store.py -- SQLAlchemy Core persistence layer for identities.

Pattern: Repository + Data Mapper (same as library/store.py).
UserStore is the repository; _row_to_user is the mapper. Route, flow and
dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The "token" column holds the single currently valid refresh JWT for the
  user. save_refresh_token() overwrites it, clear_refresh_token() nulls it,
  and get_by_refresh_token() is how the refresh/logout flows find the session
  owner -- a token that was validly signed but is no longer stored here is
  dead.

  email is UNIQUE in SQL. create_user() and update_user() translate the
  IntegrityError into DuplicateEmailError so callers see one error kind for
  both the pre-check and the race.

Layer rule: no imports from api/ or library/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.config import get_settings
from core.errors import DuplicateEmailError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("password", Text, nullable=False),  # bcrypt hash, never plaintext
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    Column("token", Text, index=True),  # current refresh JWT, NULL when logged out
    Column("created_at", String(32), nullable=False),
    # AUTOINCREMENT: a deleted user's id is never handed out again, so a
    # still-unexpired access token cannot act as the next account.
    sqlite_autoincrement=True,
)

# Columns update_user() accepts. Anything else is a programming error.
_UPDATABLE_FIELDS = {"email", "first_name", "last_name", "hashed_password", "is_admin"}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind writers.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User identities and their refresh-token binding.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(email="a@x.com", first_name="A", last_name="X",
                                         hashed_password=hash_password("pw1")))
        store.save_refresh_token(user_id, token)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Identity CRUD
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateEmailError if the email already exists.
        """
        if user.hashed_password is None:
            raise ValueError("create_user requires a hashed password")
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=user.email,
                        first_name=user.first_name,
                        last_name=user.last_name,
                        password=user.hashed_password,
                        is_admin=bool(user.is_admin),
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateEmailError(user.email) from exc

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> bool:
        """Partially update a user.

        Accepted fields: email, first_name, last_name, hashed_password,
        is_admin. hashed_password must already be a bcrypt hash.

        Returns True if a row was updated, False if user_id was not found.
        Raises DuplicateEmailError if the new email belongs to someone else.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")
        if not fields:
            return self.get_by_id(user_id) is not None
        values = dict(fields)
        if "hashed_password" in values:
            values["password"] = values.pop("hashed_password")
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmailError(fields.get("email", "")) from exc
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user. Returns True if deleted, False if not found.

        The refresh-token binding is cleared and the row removed inside one
        transaction, so no request can observe a deleted user whose session
        token still resolves.
        """
        with self.engine.begin() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(token=None))
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Refresh-token binding
    # ------------------------------------------------------------------

    def save_refresh_token(self, user_id: int, token: str) -> bool:
        """Bind token as the user's only valid refresh token, replacing any old one.

        Returns True if the user exists, False otherwise.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(token=token))
            conn.commit()
        return result.rowcount > 0

    def get_by_refresh_token(self, token: str) -> User | None:
        """Return the user currently holding this refresh token, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(select(_users).where(_users.c.token == token)).fetchone()
        return _row_to_user(row) if row is not None else None

    def clear_refresh_token(self, user_id: int) -> bool:
        """Unbind the user's refresh token (logout). Returns False if user not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(token=None))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        is_admin=bool(row.is_admin),
        hashed_password=row.password,
        refresh_token=row.token,
        created_at=row.created_at,
    )
