"""Registry of upstream sources and their trust order."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from nixtrack.domain.errors import UnknownSourceError
from nixtrack.domain.model import Source, SourceKind

if TYPE_CHECKING:
    from collections.abc import Iterable

    from nixtrack.config.reconcile import ReconcileConfig


@dataclass(frozen=True, slots=True)
class SourceSpec:
    source: Source
    kind: SourceKind
    # lower value = more trusted; breaks ties between equal upstream versions
    priority: int


DEFAULT_SOURCE_SPECS: tuple[SourceSpec, ...] = (
    SourceSpec(Source.NIXPKGS_MASTER, SourceKind.CHANNEL, 0),
    SourceSpec(Source.NIXPKGS_STAGING, SourceKind.CHANNEL, 1),
    SourceSpec(Source.NIXPKGS_STAGING_NEXT, SourceKind.CHANNEL, 2),
    SourceSpec(Source.REPOLOGY, SourceKind.UPSTREAM, 10),
    SourceSpec(Source.GITHUB, SourceKind.UPSTREAM, 11),
    SourceSpec(Source.GITLAB, SourceKind.UPSTREAM, 12),
    SourceSpec(Source.PYPI, SourceKind.UPSTREAM, 13),
    SourceSpec(Source.PENDING_PR, SourceKind.PROPOSAL_STATUS, 20),
)


@dataclass(frozen=True, slots=True)
class SourceRegistry:
    """Known sources, ordered by priority."""

    specs: tuple[SourceSpec, ...] = DEFAULT_SOURCE_SPECS
    primary_channel: Source = Source.NIXPKGS_MASTER
    _by_source: dict[Source, SourceSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.specs, key=lambda spec: spec.priority))
        by_source = {spec.source: spec for spec in ordered}
        if len(by_source) != len(ordered):
            raise ValueError("SourceRegistry specs must not repeat a source")
        primary = by_source.get(self.primary_channel)
        if primary is None or primary.kind is not SourceKind.CHANNEL:
            raise ValueError(f"Primary channel {self.primary_channel} is not a registered channel")
        object.__setattr__(self, "specs", ordered)
        object.__setattr__(self, "_by_source", by_source)

    def resolve(self, source: Source | str) -> SourceSpec:
        """Return the spec for ``source`` or raise ``UnknownSourceError``."""

        try:
            key = Source(source)
        except ValueError:
            raise UnknownSourceError(source) from None
        spec = self._by_source.get(key)
        if spec is None:
            raise UnknownSourceError(source)
        return spec

    def __contains__(self, source: Source | str) -> bool:
        try:
            self.resolve(source)
        except UnknownSourceError:
            return False
        return True

    def sources_of_kind(self, kind: SourceKind) -> tuple[Source, ...]:
        return tuple(spec.source for spec in self.specs if spec.kind is kind)

    def upstream_sources(self) -> tuple[Source, ...]:
        return self.sources_of_kind(SourceKind.UPSTREAM)

    def channel_sources(self) -> tuple[Source, ...]:
        return self.sources_of_kind(SourceKind.CHANNEL)

    def restricted_to(
        self,
        sources: Iterable[Source],
        *,
        primary_channel: Source | None = None,
    ) -> SourceRegistry:
        wanted = set(sources)
        return SourceRegistry(
            specs=tuple(spec for spec in self.specs if spec.source in wanted),
            primary_channel=primary_channel or self.primary_channel,
        )


def default_registry() -> SourceRegistry:
    return SourceRegistry()


def registry_from_config(config: ReconcileConfig) -> SourceRegistry:
    registry = default_registry()
    if config.enabled_sources is None and config.primary_channel == registry.primary_channel:
        return registry
    enabled = (
        config.enabled_sources
        if config.enabled_sources is not None
        else tuple(spec.source for spec in registry.specs)
    )
    return registry.restricted_to(enabled, primary_channel=config.primary_channel)
