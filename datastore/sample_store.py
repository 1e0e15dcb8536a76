from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Optional

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    delete,
    func,
    insert,
    inspect,
    select,
)
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError

from errors import ConfigurationError, StorageError, StoreConnectionError
from models.records import CapacityRecord
from settings import get_settings

logger = logging.getLogger(__name__)

TABLE_NAME = "diskfree"

metadata = MetaData()

diskfree_table = Table(
    TABLE_NAME,
    metadata,
    Column(
        "id",
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    ),
    Column("hostname", String(255)),
    Column("file_system_name", String(255)),
    Column("total_space", BigInteger),
    Column("space_used", BigInteger),
    Column("space_free", BigInteger),
    Column("percentage_used", Numeric(3, 2)),
    Column("file_system_root", String(255)),
    Column("when", DateTime),
    Index("file_system_name_key", "file_system_name", "hostname", "when", "id"),
    Index("file_system_root_key", "file_system_root", "hostname", "when", "id"),
    Index("when_key", "when", "hostname", "id"),
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_engine(url: URL | str) -> Engine:
    """Create an engine, making room for file-backed SQLite databases."""
    try:
        engine = create_engine(url, pool_pre_ping=True)
    except (ArgumentError, NoSuchModuleError, ImportError) as exc:
        raise ConfigurationError(f"Cannot use database URL {url!r}: {exc}") from exc

    if engine.dialect.name == "sqlite":
        database = engine.url.database
        if database and database != ":memory:" and not database.startswith("file:"):
            Path(database).parent.mkdir(parents=True, exist_ok=True)
    return engine


class SampleStore:
    """Relational persistence for capacity samples."""

    def __init__(
        self,
        engine: Engine,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.engine = engine
        self._clock = clock

    @property
    def display_url(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    def current_time(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc)

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Connection]:
        try:
            connection = self.engine.connect()
        except SQLAlchemyError as exc:
            raise StoreConnectionError(
                f"Could not connect to {self.display_url}: {exc}"
            ) from exc
        try:
            with connection.begin():
                yield connection
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not {action}: {exc}") from exc
        finally:
            connection.close()

    def has_schema(self) -> bool:
        with self._transaction("inspect schema") as connection:
            return inspect(connection).has_table(TABLE_NAME)

    def ensure_schema(self) -> bool:
        """Create the samples table and its indexes when absent.

        Returns ``True`` when the table was created by this call.
        """
        with self._transaction("create schema") as connection:
            if inspect(connection).has_table(TABLE_NAME):
                return False
            metadata.create_all(connection, tables=[diskfree_table])
        logger.info("Created table %s", TABLE_NAME)
        return True

    def insert_batch(
        self, records: Iterable[CapacityRecord], captured_at: datetime
    ) -> int:
        """Persist all records in one transaction stamped with ``captured_at``."""
        when = _to_db(captured_at)
        rows = [
            {
                "hostname": record.hostname,
                "file_system_name": record.file_system_name,
                "total_space": record.total_space_kb,
                "space_used": record.used_space_kb,
                "space_free": record.free_space_kb,
                "percentage_used": record.percentage_used,
                "file_system_root": record.mount_point,
                "when": when,
            }
            for record in records
        ]
        if not rows:
            return 0

        with self._transaction("insert samples") as connection:
            connection.execute(insert(diskfree_table), rows)
        return len(rows)

    def query_by_host_and_time(
        self, hostname: str, timestamp: datetime
    ) -> Dict[str, CapacityRecord]:
        """Return the snapshot for ``hostname`` at ``timestamp`` keyed by mount point."""
        statement = (
            select(diskfree_table)
            .where(
                diskfree_table.c.hostname == hostname,
                diskfree_table.c.when == _to_db(timestamp),
            )
            .order_by(diskfree_table.c.id)
        )
        snapshot: Dict[str, CapacityRecord] = {}
        with self._transaction("query samples") as connection:
            for row in connection.execute(statement).mappings():
                record = CapacityRecord(
                    id=row["id"],
                    hostname=row["hostname"],
                    file_system_name=row["file_system_name"],
                    total_space_kb=row["total_space"],
                    used_space_kb=row["space_used"],
                    free_space_kb=row["space_free"],
                    percentage_used=row["percentage_used"],
                    mount_point=row["file_system_root"],
                    captured_at=_from_db(row["when"]),
                )
                snapshot[record.mount_point] = record
        return snapshot

    def latest_capture(
        self, hostname: str, before: Optional[datetime] = None
    ) -> Optional[datetime]:
        """Most recent capture time for ``hostname``, strictly earlier than ``before``."""
        statement = select(func.max(diskfree_table.c.when)).where(
            diskfree_table.c.hostname == hostname
        )
        if before is not None:
            statement = statement.where(diskfree_table.c.when < _to_db(before))
        with self._transaction("query latest capture") as connection:
            return _from_db(connection.execute(statement).scalar())

    def earliest_capture(self, hostname: str) -> Optional[datetime]:
        statement = select(func.min(diskfree_table.c.when)).where(
            diskfree_table.c.hostname == hostname
        )
        with self._transaction("query earliest capture") as connection:
            return _from_db(connection.execute(statement).scalar())

    def delete_older_than(self, age_days: int) -> int:
        """Delete samples captured strictly before ``age_days`` days ago."""
        cutoff = self.current_time() - timedelta(days=age_days)
        statement = delete(diskfree_table).where(
            diskfree_table.c.when < _to_db(cutoff)
        )
        with self._transaction("delete old samples") as connection:
            removed = connection.execute(statement).rowcount
        return max(removed or 0, 0)


@lru_cache
def build_default_store(url: Optional[str] = None) -> SampleStore:
    settings = get_settings()
    database_url = settings.database_url if url is None else url
    return SampleStore(engine=build_engine(database_url))
