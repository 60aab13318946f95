# Schemas package init
from tecspacs.schemas.package import PackageCreate, PackageRecord, PackageUpdate
from tecspacs.schemas.snippet import SnippetCreate, SnippetRecord, SnippetUpdate
from tecspacs.schemas.storage import (
    ConsistencyReport,
    DeleteResult,
    PackageResult,
    SnippetResult,
)

__all__ = [
    "ConsistencyReport",
    "DeleteResult",
    "PackageCreate",
    "PackageRecord",
    "PackageResult",
    "PackageUpdate",
    "SnippetCreate",
    "SnippetRecord",
    "SnippetResult",
    "SnippetUpdate",
]
