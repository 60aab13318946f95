"""
Tecspacs: Local Snippet & Package Store
=======================================

What: Marks the `tecspacs` directory as a Python package.
Who:  Imported by the CLI entry point, Alembic and pytest.

Architecture Note:
    The store follows a layered architecture:

    ┌─────────────────────────────────────┐
    │      Commands (CLI handlers)        │  ← argument checks, rendering
    ├─────────────────────────────────────┤
    │   StorageManager (mirror coord.)    │  ← DB row + files on disk
    ├─────────────────────────────────────┤
    │   DatabaseManager (queries)         │  ← validation, defaults, conflicts
    ├─────────────────────────────────────┤
    │   Models & Schemas (data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (persistence)            │  ← async SQLAlchemy + aiosqlite
    └─────────────────────────────────────┘

    Each layer receives the one below it through its constructor; nothing
    holds a process-wide database handle.
"""

__version__ = "1.0.0"
