"""
Canonical package record.

The record is structured: per-source state lives in one mapping keyed by
``Source`` and the pending proposal is a single optional value. Adapters flatten
it into columns at the storage boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from nixtrack.domain.model.enums import Source

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class SourceState:
    """Last value reported by one source, together with when it was checked."""

    version: str
    last_checked: datetime


@dataclass(frozen=True, slots=True)
class ProposalRef:
    """An in-flight update proposal (pull request on a branch)."""

    proposal_id: str
    owner: str
    branch_name: str

    def __post_init__(self) -> None:
        for name in ("proposal_id", "owner", "branch_name"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"ProposalRef.{name} must be a non-empty string")


@dataclass(frozen=True, slots=True, kw_only=True)
class UpstreamIdentity:
    """Coordinates used by upstream clients to look a package up."""

    project_repology: str | None = None
    nixpkgs_name_repology: str | None = None
    owner_github: str | None = None
    repo_github: str | None = None
    owner_gitlab: str | None = None
    repo_gitlab: str | None = None

    @property
    def github_coordinates(self) -> tuple[str, str] | None:
        if self.owner_github and self.repo_github:
            return self.owner_github, self.repo_github
        return None

    @property
    def gitlab_coordinates(self) -> tuple[str, str] | None:
        if self.owner_gitlab and self.repo_gitlab:
            return self.owner_gitlab, self.repo_gitlab
        return None


@dataclass(frozen=True, kw_only=True)
class Package:
    """A tracked package.

    Instances are never mutated in place; every change produces a new record via
    ``with_source_state``/``with_pending``/``with_log``. ``revision`` is owned by
    the store and bumped by exactly one on every successful save.
    """

    id: str
    attr_path: str
    identity: UpstreamIdentity = field(default_factory=UpstreamIdentity)
    sources: Mapping[Source, SourceState] = field(default_factory=dict["Source", "SourceState"])
    last_update_attempt: datetime | None = None
    pending: ProposalRef | None = None
    last_update_log: str | None = None
    revision: int = 0

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Package.id must be non-empty")
        # freeze a private copy so callers cannot mutate the mapping behind our back
        object.__setattr__(self, "sources", dict(self.sources))

    # Per-source access -------------------------------------------------------

    def state_of(self, source: Source) -> SourceState | None:
        return self.sources.get(source)

    def version_of(self, source: Source) -> str | None:
        state = self.sources.get(source)
        return state.version if state is not None else None

    def last_checked(self, source: Source) -> datetime | None:
        state = self.sources.get(source)
        return state.last_checked if state is not None else None

    # Copy-on-write updates ---------------------------------------------------

    def with_source_state(
        self,
        source: Source,
        state: SourceState,
        *,
        attempted_at: datetime | None = None,
    ) -> Package:
        sources = dict(self.sources)
        sources[source] = state
        return replace(
            self,
            sources=sources,
            last_update_attempt=attempted_at or self.last_update_attempt,
        )

    def with_pending(self, pending: ProposalRef | None) -> Package:
        return replace(self, pending=pending)

    def with_log(self, message: str | None) -> Package:
        return replace(self, last_update_log=message)

    def with_identity(self, *, attr_path: str, identity: UpstreamIdentity) -> Package:
        return replace(self, attr_path=attr_path, identity=identity)

    def with_revision(self, revision: int) -> Package:
        return replace(self, revision=revision)

    # Flat views, named after the storage columns ----------------------------

    @property
    def version_nixpkgs_master(self) -> str | None:
        return self.version_of(Source.NIXPKGS_MASTER)

    @property
    def version_nixpkgs_staging(self) -> str | None:
        return self.version_of(Source.NIXPKGS_STAGING)

    @property
    def version_nixpkgs_staging_next(self) -> str | None:
        return self.version_of(Source.NIXPKGS_STAGING_NEXT)

    @property
    def version_repology(self) -> str | None:
        return self.version_of(Source.REPOLOGY)

    @property
    def version_github(self) -> str | None:
        return self.version_of(Source.GITHUB)

    @property
    def version_gitlab(self) -> str | None:
        return self.version_of(Source.GITLAB)

    @property
    def version_pypi(self) -> str | None:
        return self.version_of(Source.PYPI)

    @property
    def last_checked_repology(self) -> datetime | None:
        return self.last_checked(Source.REPOLOGY)

    @property
    def last_checked_github(self) -> datetime | None:
        return self.last_checked(Source.GITHUB)

    @property
    def last_checked_gitlab(self) -> datetime | None:
        return self.last_checked(Source.GITLAB)

    @property
    def last_checked_pypi(self) -> datetime | None:
        return self.last_checked(Source.PYPI)

    @property
    def last_checked_pending_pr(self) -> datetime | None:
        return self.last_checked(Source.PENDING_PR)

    @property
    def pending_pr(self) -> str | None:
        return self.pending.proposal_id if self.pending is not None else None

    @property
    def pending_pr_owner(self) -> str | None:
        return self.pending.owner if self.pending is not None else None

    @property
    def pending_pr_branch_name(self) -> str | None:
        return self.pending.branch_name if self.pending is not None else None

    @property
    def has_pending_proposal(self) -> bool:
        return self.pending is not None
