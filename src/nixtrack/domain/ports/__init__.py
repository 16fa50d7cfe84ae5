"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import PackageRepository
from .unit_of_work import PackageRepositories, PackageUnitOfWork

__all__ = [
    "PackageRepositories",
    "PackageRepository",
    "PackageUnitOfWork",
]
