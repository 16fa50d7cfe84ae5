from __future__ import annotations

import pytest

from nixtrack.config import ReconcileConfig
from nixtrack.domain.errors import UnknownSourceError
from nixtrack.domain.model import Source, SourceKind
from nixtrack.domain.sources import (
    SourceRegistry,
    SourceSpec,
    default_registry,
    registry_from_config,
)


def test_default_registry_orders_upstreams_by_priority() -> None:
    registry = default_registry()

    assert registry.upstream_sources() == (
        Source.REPOLOGY,
        Source.GITHUB,
        Source.GITLAB,
        Source.PYPI,
    )
    assert registry.channel_sources()[0] is Source.NIXPKGS_MASTER
    assert registry.resolve("pending-pr-status").kind is SourceKind.PROPOSAL_STATUS


def test_resolve_rejects_unknown_sources() -> None:
    registry = default_registry()

    with pytest.raises(UnknownSourceError):
        registry.resolve("sourceforge")
    assert "sourceforge" not in registry
    assert "pypi" in registry


def test_restricted_registry_forgets_dropped_sources() -> None:
    registry = default_registry().restricted_to([Source.NIXPKGS_MASTER, Source.PYPI])

    assert registry.upstream_sources() == (Source.PYPI,)
    with pytest.raises(UnknownSourceError):
        registry.resolve(Source.GITHUB)


def test_primary_channel_must_be_a_registered_channel() -> None:
    with pytest.raises(ValueError, match="Primary channel"):
        SourceRegistry(primary_channel=Source.PYPI)
    with pytest.raises(ValueError, match="Primary channel"):
        SourceRegistry(specs=(SourceSpec(Source.PYPI, SourceKind.UPSTREAM, 0),))


def test_registry_from_config() -> None:
    assert registry_from_config(ReconcileConfig()) == default_registry()

    registry = registry_from_config(
        ReconcileConfig(
            enabled_sources=(Source.NIXPKGS_STAGING, Source.GITHUB),
            primary_channel=Source.NIXPKGS_STAGING,
        )
    )

    assert registry.primary_channel is Source.NIXPKGS_STAGING
    assert registry.upstream_sources() == (Source.GITHUB,)
