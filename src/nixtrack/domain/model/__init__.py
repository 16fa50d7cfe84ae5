"""Domain model for tracked packages."""

from __future__ import annotations

from .enums import ReconciliationAction, Source, SourceKind
from .observation import VersionObservation
from .package import Package, ProposalRef, SourceState, UpstreamIdentity

__all__ = [
    "Package",
    "ProposalRef",
    "ReconciliationAction",
    "Source",
    "SourceKind",
    "SourceState",
    "UpstreamIdentity",
    "VersionObservation",
]
