# Services package init
"""
Tecspacs: Services Layer
========================

What:  Everything between the command layer and the database/filesystem.
How:   Services are plain classes with injected collaborators; main.lifespan()
       wires one of each per process, tests wire them against tmp_path.

Service Inventory:
    - DatabaseManager: typed CRUD, search and usage counters (rows only)
    - FileService: async filesystem primitives rooted at the data directory
    - StorageManager: keeps rows and their on-disk mirror in step
    - validation: payload parsing and non-empty rules shared by the above
"""

from tecspacs.services.db_manager import DatabaseManager
from tecspacs.services.file_service import FileService
from tecspacs.services.storage_manager import StorageManager

__all__ = ["DatabaseManager", "FileService", "StorageManager"]
