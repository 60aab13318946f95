"""
Tecspacs: Test Configuration (conftest.py)
==========================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets its own data root under tmp_path with a real SQLite
       file; nothing touches ~/.tecspacs.

Fixture Hierarchy:
    data_root ─┬─ database ── db_manager ─┐
               └─ file_service ───────────┴─ storage
    source_dir: a small source tree for package tests
    sample_snippet_data / sample_package_data: creation payloads
"""

import os
import tempfile

# Override settings BEFORE any tecspacs import so the module-level
# Settings instance never points at the real home directory
os.environ["TECSPACS_DATA_DIR"] = tempfile.mkdtemp(prefix="tecspacs_test_")
os.environ["TECSPACS_LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio

from tecspacs.config import Settings
from tecspacs.database import Database
from tecspacs.services.db_manager import DatabaseManager
from tecspacs.services.file_service import FileService
from tecspacs.services.storage_manager import StorageManager


@pytest.fixture
def data_root(tmp_path):
    """A fresh data directory for each test."""
    root = tmp_path / "data"
    root.mkdir()
    return root


@pytest.fixture
def test_settings(data_root):
    """Settings whose data_dir is the per-test data root."""
    return Settings(data_dir=str(data_root))


@pytest_asyncio.fixture
async def database(data_root):
    """
    An initialized Database on <data_root>/tecspacs.db.

    Closed after the test so the file handle is released.
    """
    db = Database(url=f"sqlite+aiosqlite:///{data_root / 'tecspacs.db'}")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def db_manager(database):
    return DatabaseManager(database)


@pytest.fixture
def file_service(data_root):
    return FileService(data_root)


@pytest.fixture
def storage(db_manager, file_service):
    return StorageManager(db_manager, file_service)


@pytest.fixture
def source_dir(tmp_path):
    """
    A package source tree:

        src/
        ├── main.py
        └── lib/util.py
    """
    src = tmp_path / "src"
    (src / "lib").mkdir(parents=True)
    (src / "main.py").write_text("print('hello')\n")
    (src / "lib" / "util.py").write_text("def util():\n    return 42\n")
    return src


@pytest.fixture
def sample_snippet_data():
    return {
        "name": "debounce",
        "language": "javascript",
        "content": "const debounce = (fn, ms) => { /* ... */ };\n",
        "description": "Debounce a function",
        "category": "utils",
    }


@pytest.fixture
def sample_package_data():
    return {
        "name": "react-components",
        "language": "typescript",
        "description": "Shared React components",
        "category": "frontend",
    }
