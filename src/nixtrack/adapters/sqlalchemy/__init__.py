"""SQLAlchemy adapter package for nixtrack."""

from __future__ import annotations

from .mappings import metadata, package_table
from .repositories import SqlAlchemyPackageRepository
from .unit_of_work import SqlAlchemyUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyPackageRepository",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "metadata",
    "package_table",
    "shutdown",
    "startup",
]
