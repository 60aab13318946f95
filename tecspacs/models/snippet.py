"""
Tecspacs: Snippet SQLAlchemy Model
==================================

What:  ORM model for the `snippets` table.
Who:   Queried and mutated by DatabaseManager; created by Alembic revision 001.

Table Design:
    - INTEGER AUTOINCREMENT id: ids strictly increase and are never reused,
      so `<id>.<ext>` mirror file names never collide with a deleted row's file
    - name: UNIQUE, exact (case-sensitive) lookups
    - content: authoritative copy of the snippet; the file on disk mirrors it
    - usage_count: only changed by DatabaseManager.increment_snippet_usage()
    - online_id: set only by DatabaseManager.set_snippet_online_id()
"""

from sqlalchemy import Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from tecspacs.database import Base


class Snippet(Base):
    """A named code snippet mirrored to a single content file."""

    __tablename__ = "snippets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    language: Mapped[str] = mapped_column(String, nullable=False)

    category: Mapped[str | None] = mapped_column(String, nullable=True, default=None)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    usage_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    # Correlates to a published copy; null for purely local snippets
    online_id: Mapped[str | None] = mapped_column(String, nullable=True, default=None)

    __table_args__ = (
        Index("idx_snippets_language", "language"),
        Index("idx_snippets_category", "category"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Snippet(id={self.id}, name='{self.name}', language='{self.language}')>"
