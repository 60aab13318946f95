"""
Tecspacs: File Service (Filesystem Primitives for the Mirror)
=============================================================

What:  Async file and directory operations used by StorageManager.
How:   File contents go through aiofiles; metadata calls through aiofiles.os;
       tree copies/removals (shutil) run in a worker thread so the event loop
       is never blocked.
Who:   StorageManager only.

Error Model:
    Every failing primitive raises FileStorageError with the path(s) in its
    context. The one exception is cleanup_file(), which is best effort and
    only logs.

Staging:
    staging_path() hands out unique paths under <root>/.staging/. Writers
    build an artifact there, commit the database row, then move() it into
    place. move() is os.replace, atomic while both paths share a filesystem
    (they do: .staging lives under the same data root).
"""

import asyncio
import json
import logging
import shutil
import uuid
from pathlib import Path
from typing import Any, List, Optional, Union

import aiofiles
import aiofiles.os

from tecspacs.config import settings
from tecspacs.exceptions import FileStorageError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

STAGING_DIRNAME = ".staging"


def _error(action: str, path: PathLike, e: Exception, **context) -> FileStorageError:
    logger.warning("Failed to %s %s: %s", action, path, str(e))
    return FileStorageError(
        message=f"Failed to {action} {path}: {e}",
        path=str(path),
        context={"os_error": str(e), **context},
    )


class FileService:
    """
    Filesystem access rooted at the data directory.

    Args:
        root: Data root holding snippets/, packages/ and .staging/.
              Defaults to settings.data_path (tests pass tmp_path).
    """

    def __init__(self, root: Optional[PathLike] = None):
        self.root = Path(root).expanduser().resolve() if root else settings.data_path
        self.staging_dir = self.root / STAGING_DIRNAME

    # ── Files ─────────────────────────────────────────────────────────────

    async def read_text(self, path: PathLike) -> str:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise _error("read", path, e) from e

    async def write_text(self, path: PathLike, content: str) -> None:
        """Write `content` to `path`, creating parent directories."""
        path = Path(path)
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(content)
        except OSError as e:
            raise _error("write", path, e) from e
        logger.debug("Wrote %d chars to %s", len(content), path)

    async def read_json(self, path: PathLike) -> Any:
        text = await self.read_text(path)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise _error("parse JSON in", path, e) from e

    async def write_json(self, path: PathLike, data: Any) -> None:
        await self.write_text(path, json.dumps(data, indent=2) + "\n")

    async def delete_file(self, path: PathLike) -> None:
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            raise _error("delete", path, e) from e

    async def cleanup_file(self, path: PathLike) -> None:
        """
        Remove a file or directory if it exists.

        Best effort: used to discard staged artifacts after a failed write,
        so problems are logged and never raised.
        """
        path = Path(path)
        try:
            if await aiofiles.os.path.isdir(path):
                await asyncio.to_thread(shutil.rmtree, path)
            elif await aiofiles.os.path.exists(path):
                await aiofiles.os.remove(path)
            else:
                logger.debug("Cleanup: already gone: %s", path)
                return
            logger.debug("Cleaned up %s", path)
        except OSError as e:
            logger.warning("Failed to clean up %s: %s", path, str(e))

    # ── Paths and directories ─────────────────────────────────────────────

    async def exists(self, path: PathLike) -> bool:
        return await aiofiles.os.path.exists(path)

    async def is_directory(self, path: PathLike) -> bool:
        return await aiofiles.os.path.isdir(path)

    async def same_path(self, first: PathLike, second: PathLike) -> bool:
        """
        True when both paths exist and name the same file or directory.

        Case-insensitive filesystems resolve `pkg` and `Pkg` to one entry.
        """
        if not (await self.exists(first) and await self.exists(second)):
            return False
        try:
            return await aiofiles.os.path.samefile(first, second)
        except OSError as e:
            raise _error("compare", first, e, other=str(second)) from e

    async def ensure_directory(self, path: PathLike) -> Path:
        path = Path(path)
        try:
            await aiofiles.os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise _error("create directory", path, e) from e
        return path

    async def list_directory(self, path: PathLike) -> List[str]:
        """Sorted entry names of `path`; a missing directory lists as empty."""
        if not await self.exists(path):
            return []
        try:
            return sorted(await aiofiles.os.listdir(path))
        except OSError as e:
            raise _error("list", path, e) from e

    async def delete_directory(self, path: PathLike) -> None:
        """Remove a directory tree. A directory that is already gone is fine."""
        path = Path(path)
        if not await self.exists(path):
            logger.debug("Directory already absent: %s", path)
            return
        try:
            await asyncio.to_thread(shutil.rmtree, path)
        except OSError as e:
            raise _error("delete directory", path, e) from e

    async def copy_directory(self, source: PathLike, destination: PathLike) -> Path:
        """
        Replicate the tree at `source` as `destination`.

        An existing `destination` is replaced.
        """
        source, destination = Path(source), Path(destination)
        if not await self.is_directory(source):
            raise FileStorageError(
                message=f"Source directory does not exist: {source}",
                path=str(source),
            )
        try:
            if await self.exists(destination):
                await asyncio.to_thread(shutil.rmtree, destination)
            await aiofiles.os.makedirs(destination.parent, exist_ok=True)
            await asyncio.to_thread(shutil.copytree, source, destination)
        except (OSError, shutil.Error) as e:
            raise _error("copy", source, e, destination=str(destination)) from e
        return destination

    async def copy_path(self, source: PathLike, destination_dir: PathLike) -> Path:
        """
        Copy a file or a directory's contents into `destination_dir`.

        A directory source has its children copied into `destination_dir`
        (which is created); a file source keeps its file name.
        """
        source, destination_dir = Path(source), Path(destination_dir)
        if not await self.exists(source):
            raise FileStorageError(
                message=f"Source path does not exist: {source}",
                path=str(source),
            )
        try:
            if await self.is_directory(source):
                await asyncio.to_thread(
                    shutil.copytree, source, destination_dir, dirs_exist_ok=True
                )
            else:
                await aiofiles.os.makedirs(destination_dir, exist_ok=True)
                await asyncio.to_thread(shutil.copy2, source, destination_dir / source.name)
        except (OSError, shutil.Error) as e:
            raise _error("copy", source, e, destination=str(destination_dir)) from e
        return destination_dir

    async def move(self, source: PathLike, destination: PathLike) -> Path:
        """
        Atomically put `source` at `destination`.

        A file destination is overwritten. A directory destination must not
        exist (callers remove it first); os.replace cannot overwrite a
        non-empty directory.
        """
        source, destination = Path(source), Path(destination)
        try:
            await aiofiles.os.makedirs(destination.parent, exist_ok=True)
            await aiofiles.os.replace(source, destination)
        except OSError as e:
            raise _error("move", source, e, destination=str(destination)) from e
        return destination

    # ── Staging ───────────────────────────────────────────────────────────

    def staging_path(self, suffix: str = "") -> Path:
        """A fresh, unused path under <root>/.staging/ (not created)."""
        return self.staging_dir / f"{uuid.uuid4().hex}{suffix}"

    async def list_staging(self) -> List[Path]:
        return [self.staging_dir / entry for entry in await self.list_directory(self.staging_dir)]
