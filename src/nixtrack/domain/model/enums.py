"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Source(StrEnum):
    """Upstream providers that report versions for a package."""

    NIXPKGS_MASTER = "nixpkgs-master"
    NIXPKGS_STAGING = "nixpkgs-staging"
    NIXPKGS_STAGING_NEXT = "nixpkgs-staging-next"

    REPOLOGY = "repology"
    GITHUB = "github"
    GITLAB = "gitlab"
    PYPI = "pypi"

    PENDING_PR = "pending-pr-status"


class SourceKind(StrEnum):
    # version currently packaged on a branch of the packaging tree
    CHANNEL = "channel"
    # latest version known to an upstream tracker
    UPSTREAM = "upstream"
    # state of the outstanding update proposal
    PROPOSAL_STATUS = "proposal_status"


class ReconciliationAction(StrEnum):
    """Outcome of merging one observation into a package record."""

    NOOP = "noop"
    UPDATED = "updated"
    BECAME_OUTDATED = "became_outdated"
    STILL_OUTDATED = "still_outdated"
