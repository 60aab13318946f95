"""
Tecspacs: Database Manager (Typed CRUD for Snippets and Packages)
=================================================================

What:  The only component that reads or writes the snippets/packages tables.
How:   Each operation opens one `Database.session()` (one transaction),
       validates its payload first, then runs parameterized ORM statements.
       Rows are returned as pydantic records, never as ORM objects.
Who:   StorageManager (mirror coordination) and tests.

Rules enforced here:
    - name/language(/content) required and non-empty on create
    - package version → "1.0.0", author → "N/A" when absent, None or ""
    - update: omitted or None keeps the stored value; usage_count, id and
      online_id are never touched by update
    - name uniqueness → ConflictError, raised before the row changes
    - snippet get on a missing name → None, package get → NotFoundError

Ordering:
    get_all_snippets(): id ASC (insertion order)
    packages and every search: usage_count DESC, name ASC
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Type, Union

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tecspacs.database import Base, Database
from tecspacs.exceptions import (
    ConflictError,
    NotFoundError,
    StoreError,
    TecspacsError,
    ValidationError,
)
from tecspacs.models.package import DEFAULT_AUTHOR, DEFAULT_VERSION, Package
from tecspacs.models.snippet import Snippet
from tecspacs.schemas.package import PackageCreate, PackageRecord, PackageUpdate
from tecspacs.schemas.snippet import SnippetCreate, SnippetRecord, SnippetUpdate
from tecspacs.services.validation import (
    parse_payload,
    provided_fields,
    reject_empty,
    require_name,
    require_text,
)

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("name", "description", "category")
FILTER_FIELDS = ("language", "category")

SnippetPayload = Union[SnippetCreate, Mapping[str, Any]]
PackagePayload = Union[PackageCreate, Mapping[str, Any]]


@contextmanager
def _translate_errors(action: str, resource: str, name: Optional[str]) -> Iterator[None]:
    """
    Map library exceptions raised inside a store operation to our hierarchy.

    TecspacsError passes through untouched; a unique-constraint violation
    becomes ConflictError; any other SQLAlchemy or OS error becomes StoreError.
    """
    try:
        yield
    except TecspacsError:
        raise
    except IntegrityError as e:
        logger.info("Conflict on %s %s: %s", action, resource, name)
        raise ConflictError(resource=resource, name=name) from e
    except (SQLAlchemyError, OSError) as e:
        logger.error("Store failure during %s %s %s: %s", action, resource, name, str(e))
        raise StoreError(
            message=f"Could not {action} {resource}: {e}",
            context={"resource": resource, "name": name, "error_type": type(e).__name__},
        ) from e


def _check_field(field: str, allowed: tuple, resource: str) -> None:
    if field not in allowed:
        raise ValidationError(
            message=(
                f"Cannot search {resource}s by '{field}'. "
                f"Allowed fields: {', '.join(allowed)}"
            ),
            field="field",
            context={"allowed": list(allowed)},
        )


class DatabaseManager:
    """
    Typed CRUD, search and usage counters over an injected `Database`.

    Every method is a coroutine and runs in its own transaction; a failure
    rolls the transaction back, so no operation leaves a half-applied row.
    """

    def __init__(self, db: Database):
        self.db = db

    # ── Shared helpers ────────────────────────────────────────────────────

    @staticmethod
    async def _fetch(session, model: Type[Base], name: str):
        result = await session.execute(select(model).where(model.name == name))
        return result.scalar_one_or_none()

    @staticmethod
    def _ranked(model: Type[Base]):
        return select(model).order_by(model.usage_count.desc(), model.name.asc())

    async def _search(self, model, record_cls, resource: str, field: str, pattern: str):
        _check_field(field, SEARCH_FIELDS, resource)
        if pattern is None:
            raise ValidationError(message="Search pattern is required", field="pattern")

        column = getattr(model, field)
        # autoescape: % and _ in the pattern match literally
        query = self._ranked(model).where(column.contains(pattern, autoescape=True))
        with _translate_errors("search", resource, pattern):
            async with self.db.session() as session:
                result = await session.execute(query)
                return [record_cls.model_validate(row) for row in result.scalars().all()]

    async def _filter_by(self, model, record_cls, resource: str, field: str, value: str):
        _check_field(field, FILTER_FIELDS, resource)
        query = self._ranked(model).where(getattr(model, field) == value)
        with _translate_errors("list", resource, value):
            async with self.db.session() as session:
                result = await session.execute(query)
                return [record_cls.model_validate(row) for row in result.scalars().all()]

    async def _increment(self, model, resource: str, name: str) -> bool:
        with _translate_errors("increment usage of", resource, name):
            async with self.db.session() as session:
                result = await session.execute(
                    update(model)
                    .where(model.name == name)
                    .values(usage_count=model.usage_count + 1)
                )
                return result.rowcount > 0

    async def _set_online_id(self, model, record_cls, resource: str, name: str, online_id):
        require_name(name, resource)
        with _translate_errors("update", resource, name):
            async with self.db.session() as session:
                row = await self._fetch(session, model, name)
                if row is None:
                    raise NotFoundError(resource=resource, name=name)
                row.online_id = online_id
                await session.flush()
                return record_cls.model_validate(row)

    async def _delete(self, model, resource: str, name: str) -> None:
        require_name(name, resource)
        with _translate_errors("delete", resource, name):
            async with self.db.session() as session:
                row = await self._fetch(session, model, name)
                if row is None:
                    raise NotFoundError(resource=resource, name=name)
                await session.delete(row)
        logger.info("Deleted %s %s", resource, name)

    async def _apply_update(self, model, record_cls, resource: str, name: str, changes):
        with _translate_errors("update", resource, name):
            async with self.db.session() as session:
                row = await self._fetch(session, model, name)
                if row is None:
                    raise NotFoundError(resource=resource, name=name)

                new_name = changes.get("name")
                if new_name is not None and new_name != name:
                    if await self._fetch(session, model, new_name) is not None:
                        raise ConflictError(resource=resource, name=new_name)

                for key, value in changes.items():
                    setattr(row, key, value)
                await session.flush()
                record = record_cls.model_validate(row)

        if changes:
            logger.info("Updated %s %s: %s", resource, name, ", ".join(sorted(changes)))
        return record

    # ── Snippets ──────────────────────────────────────────────────────────

    async def create_snippet(self, fields: SnippetPayload) -> int:
        """
        Insert a snippet and return its new id.

        Raises:
            ValidationError: name, language or content missing or empty
            ConflictError:   a snippet with this exact name exists
        """
        payload = parse_payload(SnippetCreate, fields, "snippet")
        require_text(payload.name, "name", "snippet")
        require_text(payload.language, "language", "snippet")
        require_text(payload.content, "content", "snippet", strip=False)

        with _translate_errors("create", "snippet", payload.name):
            async with self.db.session() as session:
                snippet = Snippet(
                    name=payload.name,
                    description=payload.description,
                    language=payload.language,
                    category=payload.category,
                    content=payload.content,
                )
                session.add(snippet)
                await session.flush()
                snippet_id = snippet.id

        logger.info("Created snippet %s (id=%d)", payload.name, snippet_id)
        return snippet_id

    async def get_snippet(self, name: str) -> Optional[SnippetRecord]:
        """Return the snippet called `name`, or None when there is none."""
        require_name(name, "snippet")
        with _translate_errors("read", "snippet", name):
            async with self.db.session() as session:
                row = await self._fetch(session, Snippet, name)
                return SnippetRecord.model_validate(row) if row is not None else None

    async def get_all_snippets(self, limit: Optional[int] = None) -> List[SnippetRecord]:
        if limit is not None and limit <= 0:
            raise ValidationError(
                message="Limit must be a positive integer",
                field="limit",
                context={"limit": limit},
            )

        query = select(Snippet).order_by(Snippet.id.asc())
        if limit is not None:
            query = query.limit(limit)

        with _translate_errors("list", "snippet", None):
            async with self.db.session() as session:
                result = await session.execute(query)
                return [SnippetRecord.model_validate(row) for row in result.scalars().all()]

    async def update_snippet(
        self,
        name: str,
        updates: Union[SnippetUpdate, Mapping[str, Any], None],
    ) -> SnippetRecord:
        """
        Apply a partial update and return the resulting row.

        Provided non-None fields replace stored values; "" clears description
        or category but is rejected for name, language and content.

        Raises:
            ValidationError: empty name/language/content in `updates`
            NotFoundError:   no snippet called `name`
            ConflictError:   renaming onto an existing snippet
        """
        require_name(name, "snippet")
        payload = parse_payload(SnippetUpdate, updates if updates is not None else {}, "snippet")
        changes = provided_fields(payload)
        reject_empty(
            changes,
            ("name", "language", "content"),
            "snippet",
            unstripped=("content",),
        )
        return await self._apply_update(Snippet, SnippetRecord, "snippet", name, changes)

    async def delete_snippet(self, name: str) -> None:
        await self._delete(Snippet, "snippet", name)

    async def increment_snippet_usage(self, name: str) -> bool:
        """Add one to usage_count; a missing name is a silent no-op (False)."""
        return await self._increment(Snippet, "snippet", name)

    async def search_snippets(self, field: str, pattern: str) -> List[SnippetRecord]:
        return await self._search(Snippet, SnippetRecord, "snippet", field, pattern)

    async def get_snippets_by(self, field: str, value: str) -> List[SnippetRecord]:
        return await self._filter_by(Snippet, SnippetRecord, "snippet", field, value)

    async def set_snippet_online_id(self, name: str, online_id: Optional[str]) -> SnippetRecord:
        return await self._set_online_id(Snippet, SnippetRecord, "snippet", name, online_id)

    # ── Packages ──────────────────────────────────────────────────────────

    async def create_package(self, fields: PackagePayload) -> int:
        """
        Insert a package and return its new id.

        version and author fall back to "1.0.0" and "N/A".

        Raises:
            ValidationError: name, language, package_path or manifest_path
                             missing or empty
            ConflictError:   a package with this exact name exists
        """
        payload = parse_payload(PackageCreate, fields, "package")
        for field in ("name", "language", "package_path", "manifest_path"):
            require_text(getattr(payload, field), field, "package")

        with _translate_errors("create", "package", payload.name):
            async with self.db.session() as session:
                package = Package(
                    name=payload.name,
                    version=payload.version or DEFAULT_VERSION,
                    description=payload.description,
                    author=payload.author or DEFAULT_AUTHOR,
                    language=payload.language,
                    category=payload.category,
                    package_path=payload.package_path,
                    manifest_path=payload.manifest_path,
                )
                session.add(package)
                await session.flush()
                package_id = package.id

        logger.info("Created package %s (id=%d)", payload.name, package_id)
        return package_id

    async def get_package(self, name: str) -> PackageRecord:
        """Return the package called `name`; raises NotFoundError if absent."""
        require_name(name, "package")
        with _translate_errors("read", "package", name):
            async with self.db.session() as session:
                row = await self._fetch(session, Package, name)
                if row is None:
                    raise NotFoundError(resource="package", name=name)
                return PackageRecord.model_validate(row)

    async def package_exists(self, name: str) -> bool:
        require_name(name, "package")
        with _translate_errors("read", "package", name):
            async with self.db.session() as session:
                return await self._fetch(session, Package, name) is not None

    async def get_all_packages(self) -> List[PackageRecord]:
        with _translate_errors("list", "package", None):
            async with self.db.session() as session:
                result = await session.execute(self._ranked(Package))
                return [PackageRecord.model_validate(row) for row in result.scalars().all()]

    async def update_package(
        self,
        name: str,
        updates: Union[PackageUpdate, Mapping[str, Any], None],
    ) -> PackageRecord:
        """
        Apply a partial update and return the resulting row.

        Keys outside PackageUpdate (usage_count, id, online_id, ...) are
        ignored. None means "do not change".

        Raises:
            ValidationError: empty name, version or language in `updates`
            NotFoundError:   no package called `name`
            ConflictError:   renaming onto an existing package
        """
        require_name(name, "package")
        payload = parse_payload(PackageUpdate, updates if updates is not None else {}, "package")
        changes = provided_fields(payload)
        reject_empty(changes, ("name", "version", "language"), "package")
        return await self._apply_update(Package, PackageRecord, "package", name, changes)

    async def delete_package(self, name: str) -> None:
        await self._delete(Package, "package", name)

    async def search_packages(self, field: str, pattern: str) -> List[PackageRecord]:
        return await self._search(Package, PackageRecord, "package", field, pattern)

    async def get_packages_by(self, field: str, value: str) -> List[PackageRecord]:
        return await self._filter_by(Package, PackageRecord, "package", field, value)

    async def increment_package_usage(self, name: str) -> bool:
        return await self._increment(Package, "package", name)

    async def set_package_online_id(self, name: str, online_id: Optional[str]) -> PackageRecord:
        return await self._set_online_id(Package, PackageRecord, "package", name, online_id)
