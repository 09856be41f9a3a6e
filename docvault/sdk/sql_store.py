"""SQL-backed key-value store.

Supports:
  - SQLite (local dev, single host)
  - PostgreSQL (shared store for multi-instance deployments)

Compare-and-swap is a conditional ``UPDATE ... WHERE version = :expected``;
the row count tells whether the swap won.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import JSON, Column, Integer, String, create_engine, delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from docvault.sdk.errors import StoreError
from docvault.sdk.store import Versioned

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class RecordRow(Base):
    __tablename__ = "docvault_records"

    namespace = Column(String(32), primary_key=True)
    key = Column(String(255), primary_key=True)
    version = Column(Integer, nullable=False, default=1)
    value = Column(JSON, nullable=False)


def create_db_engine(url: str):
    """Create SQLAlchemy engine."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(url, pool_size=10, max_overflow=20, pool_pre_ping=True, echo=False)


class SqlStore:
    """Durable store shared by every process pointing at the same database."""

    def __init__(self, url: str) -> None:
        try:
            self._engine = create_db_engine(url)
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Cannot open store: {e}") from e
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info(f"Store initialized: {url.split('@')[-1] if '@' in url else url}")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(str(e)) from e
        finally:
            session.close()

    def get(self, namespace: str, key: str) -> Versioned | None:
        with self._session() as session:
            row = session.get(RecordRow, (namespace, key))
            if row is None:
                return None
            return Versioned(dict(row.value), row.version)

    def insert(self, namespace: str, key: str, value: dict[str, Any]) -> bool:
        try:
            with self._session() as session:
                session.add(RecordRow(namespace=namespace, key=key, version=1, value=value))
        except IntegrityError:
            return False
        return True

    def compare_and_swap(self, namespace: str, key: str, expected_version: int, value: dict[str, Any]) -> bool:
        with self._session() as session:
            result = session.execute(
                update(RecordRow)
                .where(
                    RecordRow.namespace == namespace,
                    RecordRow.key == key,
                    RecordRow.version == expected_version,
                )
                .values(value=value, version=expected_version + 1)
            )
            return result.rowcount == 1

    def delete(self, namespace: str, key: str) -> bool:
        with self._session() as session:
            result = session.execute(
                delete(RecordRow).where(RecordRow.namespace == namespace, RecordRow.key == key)
            )
            return result.rowcount == 1

    def scan(self, namespace: str) -> Iterator[tuple[str, dict[str, Any]]]:
        with self._session() as session:
            rows = session.execute(
                select(RecordRow.key, RecordRow.value)
                .where(RecordRow.namespace == namespace)
                .order_by(RecordRow.key)
            ).all()
        for key, value in rows:
            yield key, dict(value)

    def close(self) -> None:
        self._engine.dispose()
