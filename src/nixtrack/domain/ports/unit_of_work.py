"""Unit-of-work boundary around the package repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from nixtrack.domain.ports.persistence import PackageRepository


@dataclass(slots=True)
class PackageRepositories:
    """Repositories available inside one unit of work."""

    packages: PackageRepository


@runtime_checkable
class PackageUnitOfWork(Protocol):
    """One transaction: reads see a consistent view, writes land on ``commit``."""

    @property
    def repositories(self) -> PackageRepositories: ...

    def __enter__(self) -> PackageUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
