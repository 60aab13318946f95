"""
Tecspacs: Snippet Commands (get-tec, create-tec, update-tec, delete-tec,
list-tecs, search-tecs)
"""

from typing import Optional

from tecspacs.commands import (
    clean_name,
    collect_updates,
    print_fields,
    print_table,
    print_warnings,
)
from tecspacs.exceptions import NotFoundError, ValidationError
from tecspacs.schemas.snippet import SnippetRecord
from tecspacs.services.storage_manager import StorageManager

LIST_COLUMNS = ["id", "name", "language", "category", "usage_count"]


def _details(snippet: SnippetRecord, file_path: str) -> None:
    print_fields(
        f"Snippet: {snippet.name}",
        [
            ("Language", snippet.language),
            ("Category", snippet.category),
            ("Description", snippet.description),
            ("Used", snippet.usage_count),
            ("File", file_path),
        ],
    )


async def _read_content(storage: StorageManager, content: Optional[str], file: Optional[str]):
    if content is not None and file is not None:
        raise ValidationError(message="Use either --content or --file, not both", field="content")
    if file is not None:
        return await storage.files.read_text(file)
    return content


async def get_tec(storage: StorageManager, name: str) -> int:
    """Print a snippet and its content, then count the use."""
    name = clean_name(name, "snippet")
    result = await storage.get_snippet(name)
    if result is None:
        raise NotFoundError(resource="snippet", name=name)

    await storage.db.increment_snippet_usage(name)
    _details(result.snippet, result.file_path)
    print_warnings(result.warnings)
    print()
    print(result.content)
    return 0


async def create_tec(
    storage: StorageManager,
    name: str,
    language: str,
    content: Optional[str] = None,
    file: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
) -> int:
    name = clean_name(name, "snippet")
    body = await _read_content(storage, content, file)
    result = await storage.store_snippet(
        {
            "name": name,
            "language": (language or "").strip(),
            "content": body,
            "description": description,
            "category": category,
        }
    )
    print(f'Created snippet "{name}" (id {result.snippet.id})')
    print(f"  File: {result.file_path}")
    print_warnings(result.warnings)
    return 0


async def update_tec(
    storage: StorageManager,
    name: str,
    new_name: Optional[str] = None,
    language: Optional[str] = None,
    content: Optional[str] = None,
    file: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
) -> int:
    name = clean_name(name, "snippet")
    updates = collect_updates(
        name=new_name.strip() if new_name is not None else None,
        language=language,
        content=await _read_content(storage, content, file),
        description=description,
        category=category,
    )
    if not updates:
        print("No updates provided")
        return 0

    result = await storage.update_snippet(name, updates)
    print(f'Updated snippet "{result.snippet.name}": {", ".join(sorted(updates))}')
    print_warnings(result.warnings)
    return 0


async def delete_tec(storage: StorageManager, name: str, force: bool = False) -> int:
    """Delete a snippet; without force only report what would be deleted."""
    name = clean_name(name, "snippet")
    if not force:
        result = await storage.get_snippet(name)
        if result is None:
            raise NotFoundError(resource="snippet", name=name)
        print(f'Would delete snippet "{name}" and {result.file_path}')
        print("Use --force to delete")
        return 1

    result = await storage.delete_snippet(name)
    print(f'Deleted snippet "{name}"')
    print_warnings(result.warnings)
    return 0


async def list_tecs(storage: StorageManager, limit: Optional[int] = None) -> int:
    snippets = await storage.db.get_all_snippets(limit=limit)
    if not snippets:
        print("No snippets stored")
        return 0
    print_table([s.model_dump() for s in snippets], LIST_COLUMNS)
    return 0


async def search_tecs(storage: StorageManager, pattern: str, field: str = "name") -> int:
    snippets = await storage.db.search_snippets(field, pattern)
    if not snippets:
        print(f'No snippets with {field} matching "{pattern}"')
        return 0
    print_table([s.model_dump() for s in snippets], LIST_COLUMNS)
    return 0
