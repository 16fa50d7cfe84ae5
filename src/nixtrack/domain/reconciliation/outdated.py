"""Outdated assessment: packaged version against the best known upstream version."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from nixtrack.domain.versions import best_version, is_older

if TYPE_CHECKING:
    from nixtrack.domain.model import Package, Source
    from nixtrack.domain.sources import SourceRegistry


@dataclass(frozen=True, slots=True)
class OutdatedAssessment:
    packaged_version: str | None
    best_upstream: tuple[Source, str] | None
    outdated: bool

    @property
    def best_upstream_version(self) -> str | None:
        return self.best_upstream[1] if self.best_upstream is not None else None

    @property
    def best_upstream_source(self) -> Source | None:
        return self.best_upstream[0] if self.best_upstream is not None else None


def assess(package: Package, registry: SourceRegistry) -> OutdatedAssessment:
    """Compare the primary channel's version with every upstream source."""

    packaged = package.version_of(registry.primary_channel)
    candidates = [
        (source, version)
        for source in registry.upstream_sources()
        if (version := package.version_of(source)) is not None
    ]
    best = best_version(candidates, anchor=packaged)
    outdated = packaged is not None and best is not None and is_older(packaged, best[1])
    return OutdatedAssessment(packaged_version=packaged, best_upstream=best, outdated=outdated)
