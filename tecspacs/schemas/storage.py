"""
Tecspacs: Storage Result Schemas
================================

What:  Return types of StorageManager operations.
Why:   Mirror failures are reported, not raised, for most operations; every
       result therefore carries a `warnings` list next to the database data.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tecspacs.schemas.package import PackageRecord
from tecspacs.schemas.snippet import SnippetRecord


class SnippetResult(BaseModel):
    """A snippet row plus the state of its content file."""

    snippet: SnippetRecord
    file_path: str = Field(description="Mirror file derived from id and language")
    content: str = Field(description="Content read from the mirror (or the row)")
    warnings: List[str] = Field(default_factory=list)


class PackageResult(BaseModel):
    """A package row plus the state of its directory mirror."""

    package: PackageRecord
    manifest: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Parsed manifest; None when it could not be read",
    )
    sources_copied: bool = Field(default=False)
    local_path: Optional[str] = Field(
        default=None,
        description="Working-directory copy made by get_package(copy_to=...)",
    )
    warnings: List[str] = Field(default_factory=list)


class DeleteResult(BaseModel):
    """Outcome of a delete: the row is gone; the mirror may not be."""

    name: str
    mirror_removed: bool
    warnings: List[str] = Field(default_factory=list)


class ConsistencyReport(BaseModel):
    """
    Differences between database rows and the on-disk mirror.

    missing_*: rows whose artifact is absent
    orphan_*:  artifacts with no row
    stale_staging: leftovers of interrupted writes
    repaired:  actions taken when check_consistency(repair=True)
    """

    missing_snippet_files: List[str] = Field(default_factory=list)
    orphan_snippet_files: List[str] = Field(default_factory=list)
    missing_package_dirs: List[str] = Field(default_factory=list)
    orphan_package_dirs: List[str] = Field(default_factory=list)
    stale_staging: List[str] = Field(default_factory=list)
    repaired: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (
            self.missing_snippet_files
            or self.orphan_snippet_files
            or self.missing_package_dirs
            or self.orphan_package_dirs
            or self.stale_staging
        )
