"""In-process package store.

Records are kept as immutable ``Package`` values keyed by id. Writes are staged
on the unit of work and applied on commit; each staged save is checked against
the stored revision under a short lock, so concurrent units of work touching
the same record serialise while different records never wait on each other
for longer than a dictionary update.
"""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from nixtrack.domain.errors import (
    ConcurrentModificationError,
    DuplicatePackageError,
    PackageNotFoundError,
)
from nixtrack.domain.ports.unit_of_work import PackageRepositories

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from types import TracebackType

    from nixtrack.domain.model import Package

log = getLogger(__name__)


class InMemoryPackageStore:
    """Thread-safe revisioned map of package records."""

    def __init__(self, packages: Iterable[Package] = ()) -> None:
        self._records: dict[str, Package] = {}
        self._lock = threading.Lock()
        for package in packages:
            self._records[package.id] = package

    def get(self, package_id: str) -> Package | None:
        with self._lock:
            return self._records.get(package_id)

    def snapshot(self) -> list[Package]:
        with self._lock:
            return sorted(self._records.values(), key=lambda package: package.id)

    def apply(self, inserts: Sequence[Package], updates: Sequence[Package]) -> None:
        """Apply staged writes atomically, or none of them."""

        with self._lock:
            for package in inserts:
                if package.id in self._records:
                    raise DuplicatePackageError(package.id)
            for package in updates:
                stored = self._records.get(package.id)
                if stored is None:
                    raise PackageNotFoundError(package.id)
                if stored.revision != package.revision:
                    log.debug(
                        "Rejecting write to %s: stored revision %s, loaded %s",
                        package.id,
                        stored.revision,
                        package.revision,
                    )
                    raise ConcurrentModificationError(package.id, package.revision)
            for package in inserts:
                self._records[package.id] = package
            for package in updates:
                self._records[package.id] = package.with_revision(package.revision + 1)


class InMemoryPackageRepository:
    def __init__(self, store: InMemoryPackageStore) -> None:
        self._store = store
        self._inserts: dict[str, Package] = {}
        self._updates: dict[str, Package] = {}

    def load(self, package_id: str) -> Package:
        staged = self._inserts.get(package_id) or self._updates.get(package_id)
        if staged is not None:
            return staged
        package = self._store.get(package_id)
        if package is None:
            raise PackageNotFoundError(package_id)
        return package

    def exists(self, package_id: str) -> bool:
        return package_id in self._inserts or self._store.get(package_id) is not None

    def add(self, package: Package) -> None:
        if self.exists(package.id):
            raise DuplicatePackageError(package.id)
        self._inserts[package.id] = package

    def save(self, package: Package) -> None:
        if package.id in self._inserts:
            self._inserts[package.id] = package
            return
        if self._store.get(package.id) is None:
            raise PackageNotFoundError(package.id)
        self._updates[package.id] = package

    def list_all(self) -> Sequence[Package]:
        merged = {package.id: package for package in self._store.snapshot()}
        merged.update(self._updates)
        merged.update(self._inserts)
        return [merged[key] for key in sorted(merged)]

    def flush(self) -> None:
        self._store.apply(tuple(self._inserts.values()), tuple(self._updates.values()))
        self.discard()

    def discard(self) -> None:
        self._inserts.clear()
        self._updates.clear()


class InMemoryUnitOfWork:
    """Unit of work over an ``InMemoryPackageStore``."""

    def __init__(self, store: InMemoryPackageStore) -> None:
        self.store = store
        self._repository: InMemoryPackageRepository | None = None
        self._repositories: PackageRepositories | None = None

    def __enter__(self) -> InMemoryUnitOfWork:
        self._repository = InMemoryPackageRepository(self.store)
        self._repositories = PackageRepositories(packages=self._repository)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self._repository = None
        self._repositories = None
        return False

    @property
    def repositories(self) -> PackageRepositories:
        if self._repositories is None:
            raise RuntimeError("Unit of work used outside of its context")
        return self._repositories

    def commit(self) -> None:
        if self._repository is not None:
            self._repository.flush()

    def rollback(self) -> None:
        if self._repository is not None:
            self._repository.discard()


if TYPE_CHECKING:
    from nixtrack.domain.ports.persistence import PackageRepository
    from nixtrack.domain.ports.unit_of_work import PackageUnitOfWork

    _repo_check: PackageRepository = InMemoryPackageRepository(InMemoryPackageStore())
    _uow_check: PackageUnitOfWork = InMemoryUnitOfWork(InMemoryPackageStore())
