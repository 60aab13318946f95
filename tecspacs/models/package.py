"""
Tecspacs: Package SQLAlchemy Model
==================================

What:  ORM model for the `packages` table.
Who:   Queried and mutated by DatabaseManager; created by Alembic revision 001.

Table Design:
    - version / author: NOT NULL; DatabaseManager substitutes "1.0.0" and "N/A"
    - package_path: directory holding the package mirror
    - manifest_path: JSON manifest inside that directory
    - usage_count: drives the default ordering (usage_count DESC, name ASC)

Query Patterns:
    - Ranked listing: ORDER BY usage_count DESC, name ASC
    - Filter by language/category: idx_packages_language / idx_packages_category
"""

from sqlalchemy import Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from tecspacs.database import Base

DEFAULT_VERSION = "1.0.0"
DEFAULT_AUTHOR = "N/A"


class Package(Base):
    """A named, versioned package mirrored to a directory on disk."""

    __tablename__ = "packages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)

    version: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=DEFAULT_VERSION,
        server_default=text(f"'{DEFAULT_VERSION}'"),
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    author: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=DEFAULT_AUTHOR,
        server_default=text(f"'{DEFAULT_AUTHOR}'"),
    )

    language: Mapped[str] = mapped_column(String, nullable=False)

    category: Mapped[str | None] = mapped_column(String, nullable=True, default=None)

    package_path: Mapped[str] = mapped_column(String, nullable=False)

    manifest_path: Mapped[str] = mapped_column(String, nullable=False)

    usage_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    online_id: Mapped[str | None] = mapped_column(String, nullable=True, default=None)

    __table_args__ = (
        Index("idx_packages_language", "language"),
        Index("idx_packages_category", "category"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<Package(id={self.id}, name='{self.name}', "
            f"version='{self.version}', usage_count={self.usage_count})>"
        )
