"""Ports for persisting package records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from nixtrack.domain.model import Package


@runtime_checkable
class PackageRepository(Protocol):
    """Read-modify-write access to package records keyed by id.

    ``save`` is a compare-and-swap on ``Package.revision``: it succeeds only if
    the stored revision still equals the revision the record was loaded with,
    and bumps the stored revision by one. Otherwise it raises
    ``ConcurrentModificationError`` (either immediately or on commit).
    """

    def load(self, package_id: str) -> Package: ...

    def save(self, package: Package) -> None: ...

    def add(self, package: Package) -> None: ...

    def exists(self, package_id: str) -> bool: ...

    def list_all(self) -> Sequence[Package]: ...
