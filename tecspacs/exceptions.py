"""
Tecspacs: Custom Exception Hierarchy
====================================

What:  Application-specific exceptions for each failure kind of the store.
How:   Each exception carries a human-readable message and a context dict.
       The CLI entry point maps each type to an exit code and suggestions.
Who:   Raised by DatabaseManager, FileService and StorageManager.

Exception Hierarchy:
    TecspacsError (base)          → exit 1
    ├── ValidationError           → exit 2  (required field missing/empty)
    ├── ConflictError             → exit 3  (name already exists)
    ├── NotFoundError             → exit 4  (name does not exist)
    ├── FileStorageError          → exit 5  (mirror read/write/copy/delete)
    └── StoreError                → exit 6  (database unavailable/corrupt)

Propagation:
    ValidationError and ConflictError are raised before anything is written.
    FileStorageError is usually caught by StorageManager and reported as a
    warning on the result; StoreError always reaches the caller.
"""

from typing import Any, Dict, Optional


class TecspacsError(Exception):
    """
    Base exception for all store errors.

    Attributes:
        message:  User-facing error description
        context:  Additional debug info (logged, shown by the CLI as details)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TecspacsError):
    """
    Raised when caller input fails validation.

    When:    Empty name, missing language/content, empty update values,
             unsupported search field, invalid limit.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(TecspacsError):
    """
    Raised when a name is already taken.

    When:    create with an existing name, or rename onto another row's name.
    The colliding name is part of the message; no row is mutated.
    """

    def __init__(
        self,
        resource: str = "resource",
        name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} \"{name}\" already exists"
        ctx = context or {}
        ctx["resource"] = resource
        ctx["name"] = name
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.name = name


class NotFoundError(TecspacsError):
    """
    Raised when a named row does not exist.

    Snippets only raise this from update/delete (get returns None);
    packages raise it from get, update and delete.
    """

    def __init__(
        self,
        resource: str = "resource",
        name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} \"{name}\" does not exist"
        ctx = context or {}
        ctx["resource"] = resource
        ctx["name"] = name
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.name = name


class FileStorageError(TecspacsError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, missing source path, I/O error.
    Context always includes the path(s) involved.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if path:
            ctx["path"] = path
        super().__init__(message=message, context=ctx)
        self.path = path


class StoreError(TecspacsError):
    """
    Raised when the embedded database itself fails.

    When:    Database file cannot be opened, malformed SQL, corrupt file,
             store used before initialize() or after close().
    Fatal:   Never retried by the store; the original exception is chained.
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
