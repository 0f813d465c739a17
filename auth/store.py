"""
auth/store.py -- SQLAlchemy Core persistence layer for users and organisations.

Pattern: Repository + Data Mapper. CredentialStore exposes a small
document-style contract over named collections (find / find_one / insert_one /
update_one / count) plus typed lookups that map rows into the dataclasses in
auth/models.py. Services never touch SQL directly.

Collections:
  users          -- id, email (UNIQUE), password_hash, created_at
  organisations  -- id, name, description, owner_id, created_at

Uniqueness:
  users.email carries a UNIQUE constraint. Registration does an existence
  check first, but two concurrent requests can both pass it; the constraint
  is what actually holds the invariant. insert_one() raises
  sqlalchemy.exc.IntegrityError on a duplicate and callers treat that as
  "user exists".

Security:
  All queries use bound parameters. Collection and field names are checked
  against the table definitions before any SQL is built, so a caller-supplied
  filter can never name an arbitrary column.

Errors:
  sqlalchemy.exc.SQLAlchemyError propagates unchanged. The service layer owns
  the conversion into a storage_error Result.

Layer rule: no imports from api/, orgs/, or mail/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from auth.models import Organisation, User

USERS = "users"
ORGANISATIONS = "organisations"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    USERS,
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_organisations = Table(
    ORGANISATIONS,
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("owner_id", String(32), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)

_COLLECTIONS: dict[str, Table] = {
    USERS: _users,
    ORGANISATIONS: _organisations,
}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User and Organisation records.

    Usage:
        store = CredentialStore("sqlite:///orgkeeper.db")
        store.insert_one("users", {"id": "abc", "email": "a@x.com", "password_hash": digest})
        store.count("users", {"email": "a@x.com"})      # 1
        user = store.get_user_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        engine_args: dict = {}
        in_memory = ":memory:" in db_url or "mode=memory" in db_url
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if in_memory:
                # One connection shared by every thread, or each worker thread
                # would open its own empty database.
                engine_args["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_args)
        if db_url.startswith("sqlite") and not in_memory:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Document-style contract
    # ------------------------------------------------------------------

    def find(self, collection: str, filter: dict[str, Any]) -> list[dict[str, Any]]:
        """Return every record in collection whose fields equal filter's values."""
        table = _table(collection)
        stmt = _filtered(select(table), table, filter)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [dict(row._mapping) for row in rows]

    def find_one(self, collection: str, filter: dict[str, Any]) -> dict[str, Any] | None:
        """Return the first matching record, or None."""
        table = _table(collection)
        stmt = _filtered(select(table), table, filter).limit(1)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return dict(row._mapping) if row is not None else None

    def insert_one(self, collection: str, record: dict[str, Any]) -> None:
        """Insert a single record. created_at is stamped if absent.

        Raises sqlalchemy.exc.IntegrityError on a UNIQUE / PRIMARY KEY clash.
        """
        table = _table(collection)
        values = dict(record)
        values.setdefault("created_at", _now_iso())
        _check_fields(table, values)
        with self.engine.connect() as conn:
            conn.execute(table.insert().values(**values))
            conn.commit()

    def update_one(self, collection: str, filter: dict[str, Any], patch: dict[str, Any]) -> int:
        """Apply patch to the first record matching filter.

        Returns the number of rows updated (0 or 1). The primary key of the
        matched record is resolved first so the UPDATE can never touch more
        than one row, whatever the filter.
        """
        table = _table(collection)
        _check_fields(table, patch)
        if not patch:
            return 0
        pk = table.c.id
        with self.engine.connect() as conn:
            target = conn.execute(_filtered(select(pk), table, filter).limit(1)).scalar()
            if target is None:
                return 0
            result = conn.execute(table.update().where(pk == target).values(**patch))
            conn.commit()
        return result.rowcount

    def count(self, collection: str, filter: dict[str, Any]) -> int:
        """Return the number of records matching filter."""
        table = _table(collection)
        with self.engine.connect() as conn:
            result = conn.execute(_filtered(select(func.count()).select_from(table), table, filter)).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Typed lookups
    # ------------------------------------------------------------------

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        record = self.find_one(USERS, {"email": email})
        return _record_to_user(record) if record is not None else None

    def get_user_by_id(self, user_id: str) -> User | None:
        record = self.find_one(USERS, {"id": user_id})
        return _record_to_user(record) if record is not None else None

    def get_organisation(self, organisation_id: str) -> Organisation | None:
        record = self.find_one(ORGANISATIONS, {"id": organisation_id})
        return _record_to_organisation(record) if record is not None else None

    def list_organisations_by_owner(self, owner_id: str) -> list[Organisation]:
        """Return the organisations owned by owner_id, oldest first."""
        records = self.find(ORGANISATIONS, {"owner_id": owner_id})
        records.sort(key=lambda r: r["created_at"])
        return [_record_to_organisation(r) for r in records]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _table(collection: str) -> Table:
    try:
        return _COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection!r}") from None


def _check_fields(table: Table, fields: dict[str, Any]) -> None:
    unknown = set(fields) - set(table.c.keys())
    if unknown:
        raise ValueError(f"Unknown fields for {table.name}: {sorted(unknown)!r}")


def _filtered(stmt, table: Table, filter: dict[str, Any]):
    _check_fields(table, filter)
    for name, value in filter.items():
        stmt = stmt.where(table.c[name] == value)
    return stmt


# ---------------------------------------------------------------------------
# Record mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _record_to_user(record: dict[str, Any]) -> User:
    return User(
        id=record["id"],
        email=record["email"],
        password_hash=record["password_hash"],
        created_at=record.get("created_at"),
    )


def _record_to_organisation(record: dict[str, Any]) -> Organisation:
    return Organisation(
        id=record["id"],
        name=record["name"],
        description=record.get("description") or "",
        owner_id=record["owner_id"],
        created_at=record.get("created_at"),
    )
