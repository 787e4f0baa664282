"""
store.py — Persisted teacher-to-class links (SQLAlchemy Core).

Every read and write goes through a connection obtained from
``LinkStore.transaction()``; the block commits when it exits normally and
rolls back on any exception.
"""

import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import (
    Column,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    delete,
    insert,
    select,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from academics.records import AssignmentLink

metadata = MetaData()

teacher_class_links = Table(
    "teacher_class_links",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("teacher_id", String(64), nullable=False, index=True),
    Column("class_id", String(64), nullable=False),
    UniqueConstraint("teacher_id", "class_id", name="uq_teacher_class"),
)


def _to_link(row) -> AssignmentLink:
    return AssignmentLink(id=row.id, teacher_id=row.teacher_id, class_id=row.class_id)


def make_engine(url: str) -> Engine:
    """Engine for ``url``; in-memory SQLite shares one connection across threads."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


class LinkStore:
    """Teacher-to-class links keyed by (teacher_id, class_id)."""

    def __init__(self, engine: Engine):
        self.engine = engine
        metadata.create_all(engine)

    @classmethod
    def from_url(cls, url: str) -> "LinkStore":
        return cls(make_engine(url))

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        with self.engine.begin() as conn:
            yield conn

    # Queries take the connection of the surrounding transaction.

    def links_for_teacher(self, conn: Connection, teacher_id: str) -> List[AssignmentLink]:
        rows = conn.execute(
            select(teacher_class_links)
            .where(teacher_class_links.c.teacher_id == teacher_id)
            .order_by(teacher_class_links.c.class_id)
        )
        return [_to_link(r) for r in rows]

    def list_links(self, conn: Connection, class_id: Optional[str] = None) -> List[AssignmentLink]:
        query = select(teacher_class_links)
        if class_id:
            query = query.where(teacher_class_links.c.class_id == class_id)
        query = query.order_by(teacher_class_links.c.class_id, teacher_class_links.c.teacher_id)
        return [_to_link(r) for r in conn.execute(query)]

    def find(self, conn: Connection, teacher_id: str, class_id: str) -> Optional[AssignmentLink]:
        row = conn.execute(
            select(teacher_class_links).where(
                teacher_class_links.c.teacher_id == teacher_id,
                teacher_class_links.c.class_id == class_id,
            )
        ).first()
        return _to_link(row) if row is not None else None

    def insert(self, conn: Connection, teacher_id: str, class_id: str) -> AssignmentLink:
        link = AssignmentLink(id=str(uuid.uuid4()), teacher_id=teacher_id, class_id=class_id)
        conn.execute(
            insert(teacher_class_links).values(
                id=link.id, teacher_id=link.teacher_id, class_id=link.class_id,
            )
        )
        return link

    def delete(self, conn: Connection, link_id: str) -> int:
        result = conn.execute(
            delete(teacher_class_links).where(teacher_class_links.c.id == link_id)
        )
        return result.rowcount
