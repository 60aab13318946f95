"""
Tecspacs: CLI Entry Point and Lifecycle
=======================================

What:  Builds the argument parser, wires the store, runs one command and
       turns errors into exit codes.
How:   main() parses argv, then runs the command inside lifespan(), which
       constructs Database → DatabaseManager → FileService → StorageManager,
       initializes the store on entry and closes it on exit.
Who:   The `tecspacs` console script and `python -m tecspacs`.

Exit Codes:
    0  success
    1  TecspacsError (base) / command declined (delete without --force)
    2  ValidationError
    3  ConflictError
    4  NotFoundError
    5  FileStorageError
    6  StoreError
    70 unexpected exception (logged with traceback)
"""

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from tecspacs import __version__
from tecspacs.commands import maintenance, packages, snippets
from tecspacs.config import Settings, settings
from tecspacs.database import Database
from tecspacs.exceptions import (
    ConflictError,
    FileStorageError,
    NotFoundError,
    StoreError,
    TecspacsError,
    ValidationError,
)
from tecspacs.services.db_manager import SEARCH_FIELDS, DatabaseManager
from tecspacs.services.file_service import FileService
from tecspacs.services.storage_manager import StorageManager

logger = logging.getLogger(__name__)

EXIT_UNEXPECTED = 70

# Most specific first; the first isinstance match wins
ERROR_EXIT_CODES = [
    (ValidationError, 2, "Check the command arguments; names, language and content cannot be empty."),
    (ConflictError, 3, "Choose a different name, or update the existing entry instead."),
    (NotFoundError, 4, "List what is stored with list-tecs or list-pacs."),
    (FileStorageError, 5, "Check that the path exists and that you have permission to read and write it."),
    (StoreError, 6, "Check TECSPACS_DATA_DIR / TECSPACS_DATABASE_URL; run `tecspacs check` after fixing."),
    (TecspacsError, 1, None),
]


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the whole process.

    Logs go to stderr so command output on stdout stays clean.
    """
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )

    # Both log every statement at INFO/DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Store Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app_settings: Optional[Settings] = None) -> AsyncIterator[StorageManager]:
    """
    Build the store, yield a ready StorageManager, close the store on exit.

    Startup:
        1. Create the Database for the configured URL
        2. initialize() (creates tables; StoreError if the file is unusable)
        3. Wire DatabaseManager, FileService and StorageManager
    Shutdown:
        Dispose the engine, also when the command raised.
    """
    app_settings = app_settings or settings
    db = Database(url=app_settings.sqlalchemy_url, echo=app_settings.db_echo)
    try:
        await db.initialize()
        file_service = FileService(app_settings.data_path)
        storage = StorageManager(
            DatabaseManager(db),
            file_service,
            snippets_dir=app_settings.snippets_dir,
            packages_dir=app_settings.packages_dir,
            manifest_filename=app_settings.manifest_filename,
            local_packages_dirname=app_settings.local_packages_dirname,
        )
        logger.info("Store ready at %s", app_settings.data_path)
        yield storage
    finally:
        await db.close()


# ══════════════════════════════════════════════════════════════════════════
# Argument Parser
# ══════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tecspacs",
        description="Local store for code snippets (tecs) and packages (pacs).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: TECSPACS_LOG_LEVEL or WARNING)",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Data directory (default: TECSPACS_DATA_DIR or ~/.tecspacs)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ── Snippets ──────────────────────────────────────────────────────────
    p = sub.add_parser("get-tec", help="Show a snippet and its content")
    p.add_argument("name")

    p = sub.add_parser("create-tec", help="Store a new snippet")
    p.add_argument("name")
    p.add_argument("--language", "-l", required=True)
    p.add_argument("--content", "-c", default=None)
    p.add_argument("--file", "-f", default=None, help="Read the content from a file")
    p.add_argument("--description", "-d", default=None)
    p.add_argument("--category", default=None)

    p = sub.add_parser("update-tec", help="Change fields of a snippet")
    p.add_argument("name")
    p.add_argument("--new-name", default=None)
    p.add_argument("--language", "-l", default=None)
    p.add_argument("--content", "-c", default=None)
    p.add_argument("--file", "-f", default=None)
    p.add_argument("--description", "-d", default=None)
    p.add_argument("--category", default=None)

    p = sub.add_parser("delete-tec", help="Delete a snippet")
    p.add_argument("name")
    p.add_argument("--force", action="store_true")

    p = sub.add_parser("list-tecs", help="List snippets in creation order")
    p.add_argument("--limit", type=int, default=None)

    p = sub.add_parser("search-tecs", help="Search snippets")
    p.add_argument("pattern")
    p.add_argument("--by", dest="field", choices=SEARCH_FIELDS, default="name")

    # ── Packages ──────────────────────────────────────────────────────────
    p = sub.add_parser("get-pac", help="Show a package and copy it to ./pacs/")
    p.add_argument("name")
    p.add_argument("--dest", default=None, help="Directory receiving pacs/<name>")
    p.add_argument("--no-copy", dest="copy", action="store_false")

    p = sub.add_parser("create-pac", help="Store a new package")
    p.add_argument("name")
    p.add_argument("--language", "-l", required=True)
    p.add_argument("--source", "-s", default=None, help="File or directory to copy in")
    p.add_argument("--version", "-v", dest="pkg_version", default=None)
    p.add_argument("--author", "-a", default=None)
    p.add_argument("--description", "-d", default=None)
    p.add_argument("--category", default=None)

    p = sub.add_parser("update-pac", help="Change fields of a package")
    p.add_argument("name")
    p.add_argument("--new-name", default=None)
    p.add_argument("--version", "-v", dest="pkg_version", default=None)
    p.add_argument("--author", "-a", default=None)
    p.add_argument("--language", "-l", default=None)
    p.add_argument("--description", "-d", default=None)
    p.add_argument("--category", default=None)
    p.add_argument("--source", "-s", default=None, help="Replace the copied sources")

    p = sub.add_parser("delete-pac", help="Delete a package")
    p.add_argument("name")
    p.add_argument("--force", action="store_true")

    sub.add_parser("list-pacs", help="List packages by usage")

    p = sub.add_parser("search-pacs", help="Search packages")
    p.add_argument("pattern")
    p.add_argument("--by", dest="field", choices=SEARCH_FIELDS, default="name")

    # ── Maintenance ───────────────────────────────────────────────────────
    p = sub.add_parser("check", help="Compare the database with the files on disk")
    p.add_argument("--repair", action="store_true")

    return parser


async def dispatch(storage: StorageManager, args: argparse.Namespace) -> int:
    """Run the handler for `args.command`."""
    command = args.command

    if command == "get-tec":
        return await snippets.get_tec(storage, args.name)
    if command == "create-tec":
        return await snippets.create_tec(
            storage, args.name, args.language,
            content=args.content, file=args.file,
            description=args.description, category=args.category,
        )
    if command == "update-tec":
        return await snippets.update_tec(
            storage, args.name,
            new_name=args.new_name, language=args.language,
            content=args.content, file=args.file,
            description=args.description, category=args.category,
        )
    if command == "delete-tec":
        return await snippets.delete_tec(storage, args.name, force=args.force)
    if command == "list-tecs":
        return await snippets.list_tecs(storage, limit=args.limit)
    if command == "search-tecs":
        return await snippets.search_tecs(storage, args.pattern, field=args.field)

    if command == "get-pac":
        return await packages.get_pac(storage, args.name, dest=args.dest, copy=args.copy)
    if command == "create-pac":
        return await packages.create_pac(
            storage, args.name, args.language,
            source=args.source, version=args.pkg_version, author=args.author,
            description=args.description, category=args.category,
        )
    if command == "update-pac":
        return await packages.update_pac(
            storage, args.name,
            new_name=args.new_name, version=args.pkg_version, author=args.author,
            language=args.language, description=args.description,
            category=args.category, source=args.source,
        )
    if command == "delete-pac":
        return await packages.delete_pac(storage, args.name, force=args.force)
    if command == "list-pacs":
        return await packages.list_pacs(storage)
    if command == "search-pacs":
        return await packages.search_pacs(storage, args.pattern, field=args.field)

    if command == "check":
        return await maintenance.check(storage, repair=args.repair)

    raise ValidationError(message=f"Unknown command: {command}", field="command")


# ══════════════════════════════════════════════════════════════════════════
# Error Reporting
# ══════════════════════════════════════════════════════════════════════════

def report_error(exc: TecspacsError) -> int:
    """Print a store error with its suggestion to stderr; return its exit code."""
    for error_type, code, suggestion in ERROR_EXIT_CODES:
        if isinstance(exc, error_type):
            break
    else:
        code, suggestion = 1, None

    print(f"Error: {exc.message}", file=sys.stderr)
    if suggestion:
        print(f"Hint: {suggestion}", file=sys.stderr)
    logger.debug("Error context: %s", exc.context)
    return code


async def run(args: argparse.Namespace, app_settings: Settings) -> int:
    async with lifespan(app_settings) as storage:
        return await dispatch(storage, args)


def main(argv: Optional[List[str]] = None, app_settings: Optional[Settings] = None) -> int:
    """
    Parse `argv`, run the command and return the exit code.

    `app_settings` overrides the module settings (tests pass a Settings
    pointing at tmp_path); --data-dir overrides its data_dir.
    """
    args = build_parser().parse_args(argv)
    app_settings = app_settings or settings
    if args.data_dir:
        app_settings = app_settings.model_copy(update={"data_dir": args.data_dir})

    setup_logging(args.log_level or app_settings.log_level)

    try:
        return asyncio.run(run(args, app_settings))
    except TecspacsError as e:
        return report_error(e)
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    except Exception as e:
        logger.error("Unexpected error: %s", str(e), exc_info=True)
        print(f"Unexpected error: {e}", file=sys.stderr)
        return EXIT_UNEXPECTED


if __name__ == "__main__":
    sys.exit(main())
