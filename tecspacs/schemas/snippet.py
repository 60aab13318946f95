"""
Tecspacs: Snippet Schemas
=========================

What:  Pydantic models for snippet payloads (create/update) and rows (record).
How:   DatabaseManager validates caller input into these models; rows leave
       the store as SnippetRecord instances (never as live ORM objects).

Update semantics:
    SnippetUpdate.model_fields_set tells "provided" from "omitted".
    A field that is omitted, or provided as None, leaves the stored value alone.
    A provided string is applied, so description="" clears the description.
    content/name/language may not be provided as "" (DatabaseManager rejects).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SnippetCreate(BaseModel):
    """Fields accepted by DatabaseManager.create_snippet()."""

    name: str = Field(description="Unique snippet name (case-sensitive)")
    language: str = Field(description="Programming language, e.g. 'python'")
    content: str = Field(description="Snippet body; mirrored to a file")
    description: Optional[str] = Field(default=None)
    category: Optional[str] = Field(default=None)

    # online_id and usage_count are not settable through create
    model_config = ConfigDict(extra="ignore")


class SnippetUpdate(BaseModel):
    """Partial update; see module docstring for omitted vs None vs ""."""

    name: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    category: Optional[str] = None
    content: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SnippetRecord(BaseModel):
    """A row of the snippets table."""

    id: int
    name: str
    description: Optional[str] = None
    language: str
    category: Optional[str] = None
    content: str
    usage_count: int = 0
    online_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
