"""
Tecspacs: Maintenance Commands (check)
"""

from tecspacs.services.storage_manager import StorageManager


async def check(storage: StorageManager, repair: bool = False) -> int:
    """
    Report differences between the database and the mirror.

    Exit code 0 when consistent (or when repair fixed everything), 1 otherwise.
    """
    report = await storage.check_consistency(repair=repair)

    sections = [
        ("Snippets without a file", report.missing_snippet_files),
        ("Orphan snippet files", report.orphan_snippet_files),
        ("Packages without a directory", report.missing_package_dirs),
        ("Orphan package directories", report.orphan_package_dirs),
        ("Stale staging entries", report.stale_staging),
    ]
    if report.is_consistent:
        print("Store is consistent")
        return 0

    for title, items in sections:
        if items:
            print(f"{title}:")
            for item in items:
                print(f"  {item}")

    if not repair:
        print("Run with --repair to fix")
        return 1

    for action in report.repaired:
        print(f"Repaired: {action}")
    for warning in report.warnings:
        print(f"Warning: {warning}")
    return 1 if report.warnings else 0
