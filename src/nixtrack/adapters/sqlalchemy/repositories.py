"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import exists, insert, select, update
from sqlalchemy.exc import IntegrityError

from nixtrack.adapters.sqlalchemy.mappings import package_table, package_to_row, row_to_package
from nixtrack.domain.errors import (
    ConcurrentModificationError,
    DuplicatePackageError,
    PackageNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.orm import Session

    from nixtrack.domain.model import Package


class SqlAlchemyPackageRepository:
    """Package store on the flat ``packages`` table.

    ``save`` issues ``UPDATE ... WHERE id = :id AND revision = :loaded`` and treats
    an unmatched row as a concurrent modification.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def load(self, package_id: str) -> Package:
        stmt = select(package_table).where(package_table.c.id == package_id)
        row = self.session.execute(stmt).mappings().one_or_none()
        if row is None:
            raise PackageNotFoundError(package_id)
        return row_to_package(row)

    def exists(self, package_id: str) -> bool:
        stmt = select(exists().where(package_table.c.id == package_id))
        return bool(self.session.execute(stmt).scalar())

    def add(self, package: Package) -> None:
        if self.exists(package.id):
            raise DuplicatePackageError(package.id)
        values = package_to_row(package)
        values["revision"] = package.revision
        try:
            self.session.execute(insert(package_table).values(**values))
        except IntegrityError as exc:
            # inserted by another session after the existence check
            raise DuplicatePackageError(package.id) from exc

    def save(self, package: Package) -> None:
        values = package_to_row(package)
        del values["id"]
        stmt = (
            update(package_table)
            .where(package_table.c.id == package.id)
            .where(package_table.c.revision == package.revision)
            .values(**values, revision=package.revision + 1)
        )
        result = self.session.execute(stmt)
        if cast("int", getattr(result, "rowcount", 0)) == 1:
            return
        if not self.exists(package.id):
            raise PackageNotFoundError(package.id)
        raise ConcurrentModificationError(package.id, package.revision)

    def list_all(self) -> Sequence[Package]:
        stmt = select(package_table).order_by(package_table.c.id)
        return [row_to_package(row) for row in self.session.execute(stmt).mappings()]


if TYPE_CHECKING:
    from nixtrack.domain.ports.persistence import PackageRepository

    _session_stub = cast("Session", object())
    _repo_check: PackageRepository = SqlAlchemyPackageRepository(_session_stub)
