"""SQLAlchemy table metadata and the flat row projection of ``Package``."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Dialect,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
)

from nixtrack.domain.model import Package, ProposalRef, Source, SourceState, UpstreamIdentity

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

# (version column, last-checked column) per source
SOURCE_COLUMNS: Final[dict[Source, tuple[str, str]]] = {
    Source.NIXPKGS_MASTER: ("version_nixpkgs_master", "last_checked_nixpkgs_master"),
    Source.NIXPKGS_STAGING: ("version_nixpkgs_staging", "last_checked_nixpkgs_staging"),
    Source.NIXPKGS_STAGING_NEXT: (
        "version_nixpkgs_staging_next",
        "last_checked_nixpkgs_staging_next",
    ),
    Source.REPOLOGY: ("version_repology", "last_checked_repology"),
    Source.GITHUB: ("version_github", "last_checked_github"),
    Source.GITLAB: ("version_gitlab", "last_checked_gitlab"),
    Source.PYPI: ("version_pypi", "last_checked_pypi"),
    Source.PENDING_PR: ("state_pending_pr", "last_checked_pending_pr"),
}

IDENTITY_COLUMNS: Final[tuple[str, ...]] = (
    "project_repology",
    "nixpkgs_name_repology",
    "owner_github",
    "repo_github",
    "owner_gitlab",
    "repo_gitlab",
)

PENDING_COLUMNS: Final[tuple[str, str, str]] = (
    "pending_pr",
    "pending_pr_owner",
    "pending_pr_branch_name",
)


_version_columns = [
    Column(version, String, nullable=True) for version, _ in SOURCE_COLUMNS.values()
]
_checked_columns = [
    Column(checked, UTCDateTime(), nullable=True) for _, checked in SOURCE_COLUMNS.values()
]

package_table = Table(
    "packages",
    metadata,
    Column("id", String, primary_key=True),
    Column("attr_path", String, nullable=False),
    *_version_columns,
    *(Column(name, String, nullable=True) for name in IDENTITY_COLUMNS),
    *_checked_columns,
    Column("last_update_attempt", UTCDateTime(), nullable=True),
    *(Column(name, String, nullable=True) for name in PENDING_COLUMNS),
    Column("last_update_log", Text, nullable=True),
    Column("revision", Integer, nullable=False, default=0),
    CheckConstraint(
        "(pending_pr IS NULL AND pending_pr_owner IS NULL AND pending_pr_branch_name IS NULL)"
        " OR (pending_pr IS NOT NULL AND pending_pr_owner IS NOT NULL"
        " AND pending_pr_branch_name IS NOT NULL)",
        name="pending_pr_all_or_nothing",
    ),
)


def package_to_row(package: Package) -> dict[str, Any]:
    """Flatten a package into column values (excluding ``revision``)."""

    row: dict[str, Any] = {"id": package.id, "attr_path": package.attr_path}
    for source, (version_column, checked_column) in SOURCE_COLUMNS.items():
        state = package.state_of(source)
        row[version_column] = state.version if state is not None else None
        row[checked_column] = state.last_checked if state is not None else None
    for name in IDENTITY_COLUMNS:
        row[name] = getattr(package.identity, name)
    pending = package.pending
    row["pending_pr"] = pending.proposal_id if pending is not None else None
    row["pending_pr_owner"] = pending.owner if pending is not None else None
    row["pending_pr_branch_name"] = pending.branch_name if pending is not None else None
    row["last_update_attempt"] = package.last_update_attempt
    row["last_update_log"] = package.last_update_log
    return row


def _source_state(version: str | None, checked: datetime | None) -> SourceState | None:
    if version is None and checked is None:
        return None
    if version is None or checked is None:
        # a half-written pair is unusable; treat the source as never observed
        log.warning("Ignoring source columns with only one of version/timestamp set")
        return None
    return SourceState(version=version, last_checked=checked)


def row_to_package(row: Mapping[str, Any]) -> Package:
    sources: dict[Source, SourceState] = {}
    for source, (version_column, checked_column) in SOURCE_COLUMNS.items():
        state = _source_state(row[version_column], row[checked_column])
        if state is not None:
            sources[source] = state

    pending: ProposalRef | None = None
    if row["pending_pr"] is not None:
        pending = ProposalRef(
            proposal_id=row["pending_pr"],
            owner=row["pending_pr_owner"],
            branch_name=row["pending_pr_branch_name"],
        )

    return Package(
        id=row["id"],
        attr_path=row["attr_path"],
        identity=UpstreamIdentity(**{name: row[name] for name in IDENTITY_COLUMNS}),
        sources=sources,
        last_update_attempt=row["last_update_attempt"],
        pending=pending,
        last_update_log=row["last_update_log"],
        revision=row["revision"],
    )
