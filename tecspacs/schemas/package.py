"""
Tecspacs: Package Schemas
=========================

What:  Pydantic models for package payloads (create/update) and rows (record).

Defaults (applied by DatabaseManager.create_package):
    version → "1.0.0" and author → "N/A" when absent, None or "".
    description / category → None when absent.

Update semantics match SnippetUpdate: omitted or None means "do not change".
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PackageCreate(BaseModel):
    """Fields accepted by DatabaseManager.create_package()."""

    name: str = Field(description="Unique package name (case-sensitive)")
    language: str = Field(description="Programming language of the package")
    package_path: str = Field(description="Directory holding the package mirror")
    manifest_path: str = Field(description="JSON manifest inside package_path")
    version: Optional[str] = Field(default=None)
    author: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    category: Optional[str] = Field(default=None)

    model_config = ConfigDict(extra="ignore")


class PackageUpdate(BaseModel):
    """
    Partial update.

    usage_count, id and online_id are not fields here, so payloads carrying
    them are accepted and those keys ignored.
    """

    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    language: Optional[str] = None
    category: Optional[str] = None
    package_path: Optional[str] = None
    manifest_path: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class PackageRecord(BaseModel):
    """A row of the packages table."""

    id: int
    name: str
    version: str
    description: Optional[str] = None
    author: str
    language: str
    category: Optional[str] = None
    package_path: str
    manifest_path: str
    usage_count: int = 0
    online_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
