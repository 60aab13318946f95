"""
Tecspacs: Package Commands (get-pac, create-pac, update-pac, delete-pac,
list-pacs, search-pacs)
"""

from pathlib import Path
from typing import Optional

from tecspacs.commands import (
    clean_name,
    collect_updates,
    print_fields,
    print_table,
    print_warnings,
)
from tecspacs.schemas.package import PackageRecord
from tecspacs.services.storage_manager import StorageManager

LIST_COLUMNS = ["name", "version", "language", "category", "author", "usage_count"]


def _details(package: PackageRecord) -> None:
    print_fields(
        f"Package: {package.name}",
        [
            ("Version", package.version),
            ("Author", package.author),
            ("Language", package.language),
            ("Category", package.category),
            ("Description", package.description),
            ("Used", package.usage_count),
            ("Directory", package.package_path),
        ],
    )


async def get_pac(
    storage: StorageManager,
    name: str,
    dest: Optional[str] = None,
    copy: bool = True,
) -> int:
    """
    Print a package and copy it into <dest>/pacs/<name>/ (dest defaults to
    the current directory), then count the use.
    """
    name = clean_name(name, "package")
    copy_to = (dest or str(Path.cwd())) if copy else None
    result = await storage.get_package(name, copy_to=copy_to)
    await storage.db.increment_package_usage(name)

    _details(result.package)
    if result.local_path:
        print(f"  Copied to:    {result.local_path}")
    print_warnings(result.warnings)
    return 0


async def create_pac(
    storage: StorageManager,
    name: str,
    language: str,
    source: Optional[str] = None,
    version: Optional[str] = None,
    author: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
) -> int:
    name = clean_name(name, "package")
    result = await storage.store_package(
        {
            "name": name,
            "language": (language or "").strip(),
            "version": version,
            "author": author,
            "description": description,
            "category": category,
        },
        source_path=source,
    )
    package = result.package
    print(f'Created package "{package.name}" {package.version} by {package.author}')
    print(f"  Directory: {package.package_path}")
    if source:
        print(f"  Sources copied: {'yes' if result.sources_copied else 'no'}")
    print_warnings(result.warnings)
    return 0


async def update_pac(
    storage: StorageManager,
    name: str,
    new_name: Optional[str] = None,
    version: Optional[str] = None,
    author: Optional[str] = None,
    language: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
    source: Optional[str] = None,
) -> int:
    name = clean_name(name, "package")
    updates = collect_updates(
        name=new_name.strip() if new_name is not None else None,
        version=version,
        author=author,
        language=language,
        description=description,
        category=category,
    )
    if not updates and not source:
        print("No updates provided")
        return 0

    result = await storage.update_package(name, updates, source_path=source)
    changed = sorted(updates) + (["sources"] if source else [])
    print(f'Updated package "{result.package.name}": {", ".join(changed)}')
    print_warnings(result.warnings)
    return 0


async def delete_pac(storage: StorageManager, name: str, force: bool = False) -> int:
    name = clean_name(name, "package")
    if not force:
        package = await storage.db.get_package(name)
        print(f'Would delete package "{name}" and {package.package_path}')
        print("Use --force to delete")
        return 1

    result = await storage.delete_package(name)
    print(f'Deleted package "{name}"')
    print_warnings(result.warnings)
    return 0


async def list_pacs(storage: StorageManager) -> int:
    packages = await storage.db.get_all_packages()
    if not packages:
        print("No packages stored")
        return 0
    print_table([p.model_dump() for p in packages], LIST_COLUMNS)
    return 0


async def search_pacs(storage: StorageManager, pattern: str, field: str = "name") -> int:
    packages = await storage.db.search_packages(field, pattern)
    if not packages:
        print(f'No packages with {field} matching "{pattern}"')
        return 0
    print_table([p.model_dump() for p in packages], LIST_COLUMNS)
    return 0
