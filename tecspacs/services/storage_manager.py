"""
Tecspacs: Storage Manager (Database Rows + Filesystem Mirror)
=============================================================

What:  Creates, reads, updates and deletes snippets and packages as a pair
       of (database row, on-disk artifact).
How:   Composes DatabaseManager (rows) and FileService (artifacts).
Who:   The command layer; one instance per process, built by main.lifespan().

Mirror Layout (under the data root):
    snippets/<id>.<ext>                 snippet content, ext from language
    packages/<name>/package.json        package manifest
    packages/<name>/content/...         copied sources, when any
    .staging/                           artifacts not yet committed

Write Protocol:
    ┌────────────┐   ┌──────────────┐   ┌────────────┐   ┌──────────────┐
    │ Validate + │──▶│ Stage file / │──▶│ Commit row │──▶│ Move staged  │
    │ conflicts  │   │ directory    │   │ (database) │   │ into place   │
    └────────────┘   └──────────────┘   └────────────┘   └──────────────┘

    Validation or conflict failure → nothing written.
    Commit failure → staged artifact removed, error re-raised.
    Staging or move failure → row kept, warning returned on the result;
    check_consistency(repair=True) rebuilds what is missing.

The database row is authoritative. Deletes remove the row first; a mirror
that cannot be removed afterwards is reported, not rolled back.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from tecspacs.config import settings
from tecspacs.exceptions import (
    ConflictError,
    FileStorageError,
    NotFoundError,
    TecspacsError,
    ValidationError,
)
from tecspacs.models.package import DEFAULT_AUTHOR, DEFAULT_VERSION
from tecspacs.schemas.package import PackageCreate, PackageRecord, PackageUpdate
from tecspacs.schemas.snippet import SnippetCreate, SnippetRecord, SnippetUpdate
from tecspacs.schemas.storage import (
    ConsistencyReport,
    DeleteResult,
    PackageResult,
    SnippetResult,
)
from tecspacs.services.db_manager import DatabaseManager
from tecspacs.services.file_service import FileService, PathLike
from tecspacs.services.validation import (
    parse_payload,
    provided_fields,
    reject_empty,
    require_name,
    require_text,
)

logger = logging.getLogger(__name__)

# ── Snippet file extensions ───────────────────────────────────────────────
# Unknown languages fall back to "txt"
LANGUAGE_EXTENSIONS = {
    "javascript": "js",
    "typescript": "ts",
    "python": "py",
    "java": "java",
    "csharp": "cs",
    "cpp": "cpp",
    "c": "c",
    "html": "html",
    "css": "css",
    "json": "json",
    "yaml": "yml",
    "markdown": "md",
    "sql": "sql",
    "bash": "sh",
    "powershell": "ps1",
}

CONTENT_DIRNAME = "content"


def extension_for(language: Optional[str]) -> str:
    return LANGUAGE_EXTENSIONS.get((language or "").strip().lower(), "txt")


def validate_package_name(name: Optional[str]) -> str:
    """
    A package name doubles as its directory name.

    Raises ValidationError for names with path separators, "." / "..",
    or a leading dot (which would collide with .staging).
    """
    require_name(name, "package")
    if name in (".", "..") or name.startswith(".") or "/" in name or "\\" in name:
        raise ValidationError(
            message=f'Package name "{name}" cannot be used as a directory name',
            field="name",
        )
    return name


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_dict(data: Union[BaseModel, Mapping[str, Any], None]) -> Dict[str, Any]:
    if data is None:
        return {}
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    return dict(data)


class StorageManager:
    """
    Keeps database rows and their mirrored artifacts in step.

    Args:
        db_manager:   Row access (injected)
        file_service: Filesystem primitives rooted at the data directory
        snippets_dir: Defaults to <data root>/snippets
        packages_dir: Defaults to <data root>/packages
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        file_service: FileService,
        snippets_dir: Optional[PathLike] = None,
        packages_dir: Optional[PathLike] = None,
        manifest_filename: Optional[str] = None,
        local_packages_dirname: Optional[str] = None,
    ):
        self.db = db_manager
        self.files = file_service
        self.snippets_dir = Path(snippets_dir) if snippets_dir else file_service.root / "snippets"
        self.packages_dir = Path(packages_dir) if packages_dir else file_service.root / "packages"
        self.manifest_filename = manifest_filename or settings.manifest_filename
        self.local_packages_dirname = local_packages_dirname or settings.local_packages_dirname

    # ── Paths ─────────────────────────────────────────────────────────────

    def snippet_path(self, snippet_id: int, language: str) -> Path:
        return self.snippets_dir / f"{snippet_id}.{extension_for(language)}"

    def package_dir(self, name: str) -> Path:
        return self.packages_dir / name

    def manifest_path(self, name: str) -> Path:
        return self.package_dir(name) / self.manifest_filename

    @staticmethod
    def _warn(warnings: List[str], message: str) -> None:
        logger.warning(message)
        warnings.append(message)

    # ── Snippets ──────────────────────────────────────────────────────────

    async def store_snippet(
        self, fields: Union[SnippetCreate, Mapping[str, Any]]
    ) -> SnippetResult:
        """
        Create a snippet row and its content file.

        Raises ValidationError / ConflictError before anything is written.
        File problems are returned as warnings; the row stands.
        """
        payload = parse_payload(SnippetCreate, fields, "snippet")
        require_text(payload.name, "name", "snippet")
        require_text(payload.language, "language", "snippet")
        require_text(payload.content, "content", "snippet", strip=False)
        if await self.db.get_snippet(payload.name) is not None:
            raise ConflictError(resource="snippet", name=payload.name)

        warnings: List[str] = []
        staged = await self._stage_text(payload.content, warnings)

        try:
            snippet_id = await self.db.create_snippet(payload)
        except TecspacsError:
            if staged:
                await self.files.cleanup_file(staged)
            raise

        target = self.snippet_path(snippet_id, payload.language)
        if staged:
            await self._place(staged, target, warnings)

        record = await self.db.get_snippet(payload.name)
        return SnippetResult(
            snippet=record,
            file_path=str(target),
            content=record.content,
            warnings=warnings,
        )

    async def get_snippet(self, name: str) -> Optional[SnippetResult]:
        """
        Return the snippet with its file content, or None if there is no row.

        An unreadable file falls back to the database column with a warning.
        """
        record = await self.db.get_snippet(name)
        if record is None:
            return None

        warnings: List[str] = []
        path = self.snippet_path(record.id, record.language)
        try:
            content = await self.files.read_text(path)
        except FileStorageError as e:
            self._warn(warnings, f"Snippet file unreadable, using stored content: {e.message}")
            content = record.content

        return SnippetResult(snippet=record, file_path=str(path), content=content, warnings=warnings)

    async def update_snippet(
        self,
        name: str,
        updates: Union[SnippetUpdate, Mapping[str, Any], None],
    ) -> SnippetResult:
        """
        Partially update a snippet; content/language changes rewrite the file.

        A language change that alters the extension removes the old file.
        """
        current = await self.db.get_snippet(name)
        if current is None:
            raise NotFoundError(resource="snippet", name=name)

        payload = parse_payload(SnippetUpdate, updates if updates is not None else {}, "snippet")
        changes = provided_fields(payload)
        reject_empty(changes, ("name", "language", "content"), "snippet", unstripped=("content",))

        new_content = changes.get("content", current.content)
        new_language = changes.get("language", current.language)
        rewrite = "content" in changes or "language" in changes

        warnings: List[str] = []
        staged = await self._stage_text(new_content, warnings) if rewrite else None

        try:
            record = await self.db.update_snippet(name, payload)
        except TecspacsError:
            if staged:
                await self.files.cleanup_file(staged)
            raise

        old_path = self.snippet_path(current.id, current.language)
        new_path = self.snippet_path(record.id, new_language)
        if staged and await self._place(staged, new_path, warnings):
            if old_path != new_path:
                await self._remove_file(old_path, warnings)

        return SnippetResult(
            snippet=record,
            file_path=str(new_path),
            content=record.content,
            warnings=warnings,
        )

    async def delete_snippet(self, name: str) -> DeleteResult:
        record = await self.db.get_snippet(name)
        if record is None:
            raise NotFoundError(resource="snippet", name=name)

        await self.db.delete_snippet(name)

        warnings: List[str] = []
        removed = await self._remove_file(self.snippet_path(record.id, record.language), warnings)
        return DeleteResult(name=name, mirror_removed=removed, warnings=warnings)

    # ── Packages ──────────────────────────────────────────────────────────

    async def store_package(
        self,
        fields: Union[PackageCreate, Mapping[str, Any]],
        source_path: Optional[PathLike] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> PackageResult:
        """
        Create a package row and its directory mirror.

        `fields` carries name, language and the optional version, author,
        description and category; package_path and manifest_path are derived
        from the name. `source_path` (file or directory) is copied into
        content/; if that copy fails the package is still created, with
        sources_copied=False and a warning.
        """
        data = _as_dict(fields)
        name = validate_package_name(data.get("name"))
        data["package_path"] = str(self.package_dir(name))
        data["manifest_path"] = str(self.manifest_path(name))
        payload = parse_payload(PackageCreate, data, "package")
        require_text(payload.language, "language", "package")
        if await self.db.package_exists(name):
            raise ConflictError(resource="package", name=name)

        warnings: List[str] = []
        staged = self.files.staging_path()
        sources_copied = False
        manifest: Optional[Dict[str, Any]] = None
        try:
            await self.files.ensure_directory(staged)
            if source_path:
                try:
                    await self.files.copy_path(source_path, staged / CONTENT_DIRNAME)
                    sources_copied = True
                except FileStorageError as e:
                    self._warn(warnings, f"Sources not copied: {e.message}")

            manifest = dict(metadata or {})
            manifest.update(
                name=name,
                version=payload.version or DEFAULT_VERSION,
                description=payload.description,
                author=payload.author or DEFAULT_AUTHOR,
                language=payload.language,
                category=payload.category,
                created_at=_utc_now(),
                source_path=str(source_path) if source_path else None,
                has_content=sources_copied,
            )
            await self.files.write_json(staged / self.manifest_filename, manifest)
        except FileStorageError as e:
            self._warn(warnings, f"Package directory not staged: {e.message}")
            await self.files.cleanup_file(staged)
            staged, manifest, sources_copied = None, None, False

        try:
            await self.db.create_package(payload)
        except TecspacsError:
            if staged:
                await self.files.cleanup_file(staged)
            raise

        if staged:
            target = self.package_dir(name)
            if not await self._place_directory(staged, target, warnings):
                manifest, sources_copied = None, False

        record = await self.db.get_package(name)
        logger.info("Stored package %s at %s", name, record.package_path)
        return PackageResult(
            package=record,
            manifest=manifest,
            sources_copied=sources_copied,
            warnings=warnings,
        )

    async def get_package(self, name: str, copy_to: Optional[PathLike] = None) -> PackageResult:
        """
        Return a package and its manifest; raises NotFoundError if absent.

        With `copy_to`, the package directory is also replicated to
        <copy_to>/pacs/<name>/. A failed copy is a warning.
        """
        record = await self.db.get_package(name)
        warnings: List[str] = []

        manifest = None
        try:
            manifest = await self.files.read_json(record.manifest_path)
        except FileStorageError as e:
            self._warn(warnings, f"Manifest unreadable: {e.message}")

        local_path = None
        if copy_to is not None:
            try:
                local_path = str(await self._copy_record(record, copy_to))
            except FileStorageError as e:
                self._warn(warnings, f"Package not copied locally: {e.message}")

        has_content = await self.files.is_directory(Path(record.package_path) / CONTENT_DIRNAME)
        return PackageResult(
            package=record,
            manifest=manifest,
            sources_copied=has_content,
            local_path=local_path,
            warnings=warnings,
        )

    async def copy_package_to(self, name: str, destination: PathLike) -> Path:
        """Replicate a package into <destination>/pacs/<name>/; raises on failure."""
        record = await self.db.get_package(name)
        return await self._copy_record(record, destination)

    async def _copy_record(self, record: PackageRecord, destination: PathLike) -> Path:
        target = Path(destination) / self.local_packages_dirname / record.name
        await self.files.copy_directory(record.package_path, target)
        logger.info("Copied package %s to %s", record.name, target)
        return target

    async def update_package(
        self,
        name: str,
        updates: Union[PackageUpdate, Mapping[str, Any], None],
        source_path: Optional[PathLike] = None,
    ) -> PackageResult:
        """
        Partially update a package and bring its mirror along.

        A rename moves the directory and rewrites package_path/manifest_path
        (caller-supplied paths are ignored; the mirror owns them). Metadata
        changes are merged into the manifest with a modified_at stamp.
        `source_path` replaces content/.
        """
        current = await self.db.get_package(name)

        payload = parse_payload(PackageUpdate, updates if updates is not None else {}, "package")
        changes = provided_fields(payload)
        changes.pop("package_path", None)
        changes.pop("manifest_path", None)
        reject_empty(changes, ("name", "version", "language"), "package")

        new_name = changes.get("name", name)
        renamed = new_name != name
        if renamed:
            validate_package_name(new_name)
            if await self.db.package_exists(new_name):
                raise ConflictError(resource="package", name=new_name)
            changes["package_path"] = str(self.package_dir(new_name))
            changes["manifest_path"] = str(self.manifest_path(new_name))

        warnings: List[str] = []
        staged_content = None
        if source_path:
            staged_content = self.files.staging_path()
            try:
                await self.files.copy_path(source_path, staged_content)
            except FileStorageError as e:
                self._warn(warnings, f"Sources not copied: {e.message}")
                await self.files.cleanup_file(staged_content)
                staged_content = None

        try:
            record = await self.db.update_package(name, changes)
        except TecspacsError:
            if staged_content:
                await self.files.cleanup_file(staged_content)
            raise

        package_dir = Path(record.package_path)
        if renamed:
            old_dir = Path(current.package_path)
            if not await self.files.exists(old_dir):
                self._warn(warnings, f"Package directory missing, nothing to move: {old_dir}")
            elif not await self._place_directory(old_dir, package_dir, warnings):
                # The row must keep pointing at the directory that holds content/
                record = await self.db.update_package(
                    new_name,
                    {
                        "name": name,
                        "package_path": current.package_path,
                        "manifest_path": current.manifest_path,
                    },
                )
                package_dir = old_dir
                self._warn(warnings, f'Rename reverted, package is still "{name}"')

        sources_copied = False
        if staged_content:
            content_dir = package_dir / CONTENT_DIRNAME
            sources_copied = await self._place_directory(staged_content, content_dir, warnings)

        manifest = None
        if changes or source_path:
            manifest = await self._rewrite_manifest(record, source_path, sources_copied, warnings)
        else:
            try:
                manifest = await self.files.read_json(record.manifest_path)
            except FileStorageError as e:
                self._warn(warnings, f"Manifest unreadable: {e.message}")

        return PackageResult(
            package=record,
            manifest=manifest,
            sources_copied=sources_copied,
            warnings=warnings,
        )

    async def _rewrite_manifest(
        self,
        record: PackageRecord,
        source_path: Optional[PathLike],
        sources_copied: bool,
        warnings: List[str],
    ) -> Optional[Dict[str, Any]]:
        try:
            manifest = await self.files.read_json(record.manifest_path)
        except FileStorageError as e:
            self._warn(warnings, f"Manifest unreadable, writing a new one: {e.message}")
            manifest = {"created_at": _utc_now()}

        manifest.update(
            name=record.name,
            version=record.version,
            description=record.description,
            author=record.author,
            language=record.language,
            category=record.category,
            modified_at=_utc_now(),
        )
        if source_path and sources_copied:
            manifest["source_path"] = str(source_path)
            manifest["has_content"] = sources_copied

        staged = self.files.staging_path(".json")
        try:
            await self.files.write_json(staged, manifest)
        except FileStorageError as e:
            self._warn(warnings, f"Manifest not updated: {e.message}")
            await self.files.cleanup_file(staged)
            return None
        if not await self._place(staged, Path(record.manifest_path), warnings):
            return None
        return manifest

    async def delete_package(self, name: str) -> DeleteResult:
        """
        Delete the row, then the directory.

        If the directory cannot be removed the row stays deleted and the
        failure is reported on the result.
        """
        record = await self.db.get_package(name)
        await self.db.delete_package(name)

        warnings: List[str] = []
        try:
            await self.files.delete_directory(record.package_path)
            removed = True
        except FileStorageError as e:
            self._warn(warnings, f"Package directory not removed: {e.message}")
            removed = False
        return DeleteResult(name=name, mirror_removed=removed, warnings=warnings)

    # ── Consistency ───────────────────────────────────────────────────────

    async def check_consistency(self, repair: bool = False) -> ConsistencyReport:
        """
        Compare rows with the mirror and optionally repair the differences.

        Repair rewrites missing snippet files from the database. An orphan
        package directory whose manifest names a package with no directory
        is moved back into place; other missing package directories are
        recreated with a fresh manifest. Remaining orphan files, orphan
        directories and staging leftovers are removed.
        """
        report = ConsistencyReport()

        snippets = await self.db.get_all_snippets()
        expected_files = {self.snippet_path(s.id, s.language).name: s for s in snippets}
        present_files = set(await self.files.list_directory(self.snippets_dir))

        for filename, snippet in expected_files.items():
            if filename in present_files:
                continue
            report.missing_snippet_files.append(snippet.name)
            if repair:
                path = self.snippets_dir / filename
                try:
                    await self.files.write_text(path, snippet.content)
                    report.repaired.append(f"rewrote snippet file {path}")
                except FileStorageError as e:
                    self._warn(report.warnings, e.message)

        for filename in sorted(present_files - set(expected_files)):
            path = self.snippets_dir / filename
            report.orphan_snippet_files.append(str(path))
            if repair:
                try:
                    await self.files.delete_file(path)
                    report.repaired.append(f"removed orphan file {path}")
                except FileStorageError as e:
                    self._warn(report.warnings, e.message)

        packages = await self.db.get_all_packages()
        missing: Dict[str, PackageRecord] = {}
        for package in packages:
            if await self.files.is_directory(package.package_path):
                continue
            report.missing_package_dirs.append(package.name)
            missing[package.name] = package

        known = {Path(p.package_path).name for p in packages}
        for entry in await self.files.list_directory(self.packages_dir):
            if entry in known:
                continue
            path = self.packages_dir / entry
            report.orphan_package_dirs.append(str(path))
            if not repair:
                continue

            # A directory whose manifest names a row without a directory is
            # that package's mirror under a stale name
            owner = missing.pop(await self._manifest_name(path), None)
            if owner is not None:
                target = Path(owner.package_path)
                if await self._place_directory(path, target, report.warnings):
                    report.repaired.append(f"moved orphan directory {path} to {target}")
                continue
            try:
                await self.files.delete_directory(path)
                report.repaired.append(f"removed orphan directory {path}")
            except FileStorageError as e:
                self._warn(report.warnings, e.message)

        if repair:
            for package in missing.values():
                await self._recreate_package_dir(package, report)

        for path in await self.files.list_staging():
            report.stale_staging.append(str(path))
            if repair:
                await self.files.cleanup_file(path)
                report.repaired.append(f"removed staging leftover {path}")

        logger.info(
            "Consistency check (repair=%s): %s",
            repair,
            "consistent" if report.is_consistent else "differences found",
        )
        return report

    async def _manifest_name(self, package_dir: Path) -> Optional[str]:
        try:
            manifest = await self.files.read_json(package_dir / self.manifest_filename)
        except FileStorageError:
            return None
        if not isinstance(manifest, dict):
            return None
        name = manifest.get("name")
        return name if isinstance(name, str) else None

    async def _recreate_package_dir(self, package: PackageRecord, report: ConsistencyReport) -> None:
        manifest = {
            "name": package.name,
            "version": package.version,
            "description": package.description,
            "author": package.author,
            "language": package.language,
            "category": package.category,
            "created_at": _utc_now(),
            "source_path": None,
            "has_content": False,
        }
        try:
            await self.files.ensure_directory(package.package_path)
            await self.files.write_json(package.manifest_path, manifest)
            report.repaired.append(f"recreated package directory {package.package_path}")
        except FileStorageError as e:
            self._warn(report.warnings, e.message)

    # ── Mirror helpers ────────────────────────────────────────────────────

    async def _stage_text(self, content: str, warnings: List[str]) -> Optional[Path]:
        staged = self.files.staging_path(".tmp")
        try:
            await self.files.write_text(staged, content)
        except FileStorageError as e:
            self._warn(warnings, f"Content file not staged: {e.message}")
            await self.files.cleanup_file(staged)
            return None
        return staged

    async def _place(self, staged: Path, target: Path, warnings: List[str]) -> bool:
        try:
            await self.files.move(staged, target)
            return True
        except FileStorageError as e:
            self._warn(warnings, f"Mirror not updated: {e.message}")
            await self.files.cleanup_file(staged)
            return False

    async def _place_directory(self, source: Path, target: Path, warnings: List[str]) -> bool:
        """
        Move a directory to `target`, replacing whatever is there.

        The old target is parked in staging until the move succeeds and put
        back if it fails. When `source` and `target` are one directory (a
        case-only rename on a case-insensitive filesystem) the source goes
        through staging first.
        """
        original = source
        interim = previous = None
        try:
            if await self.files.same_path(source, target):
                interim = self.files.staging_path()
                source = await self.files.move(source, interim)
            if await self.files.exists(target):
                previous = self.files.staging_path()
                await self.files.move(target, previous)
            await self.files.move(source, target)
        except FileStorageError as e:
            self._warn(warnings, f"Mirror not updated: {e.message}")
            await self._restore(previous, target, warnings)
            await self._restore(interim, original, warnings)
            return False

        if previous is not None:
            await self.files.cleanup_file(previous)
        return True

    async def _restore(self, parked: Optional[Path], home: Path, warnings: List[str]) -> None:
        if parked is None or not await self.files.exists(parked):
            return
        try:
            await self.files.move(parked, home)
        except FileStorageError as e:
            self._warn(warnings, f"Left in staging: {e.message}")

    async def _remove_file(self, path: Path, warnings: List[str]) -> bool:
        if not await self.files.exists(path):
            return True
        try:
            await self.files.delete_file(path)
            return True
        except FileStorageError as e:
            self._warn(warnings, f"Mirror not removed: {e.message}")
            return False
