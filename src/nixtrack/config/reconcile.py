"""Reconciliation settings."""

from __future__ import annotations

from dataclasses import dataclass

from nixtrack.domain.model import Source
from nixtrack.domain.update_tracking import DEFAULT_MAX_SAVE_ATTEMPTS

from .env import optional_env_var, optional_int_env_var
from .errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    # None means every known source
    enabled_sources: tuple[Source, ...] | None = None
    primary_channel: Source = Source.NIXPKGS_MASTER
    max_save_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS


def _parse_source(name: str, value: str) -> Source:
    try:
        return Source(value.strip())
    except ValueError as exc:
        known = ", ".join(source.value for source in Source)
        raise ConfigurationError(f"{name}: unknown source {value!r} (known: {known})") from exc


def get_reconcile_config() -> ReconcileConfig:
    raw_sources = optional_env_var("NIXTRACK_SOURCES")
    enabled: tuple[Source, ...] | None = None
    if raw_sources is not None:
        items = [item for item in raw_sources.split(",") if item.strip()]
        enabled = tuple(_parse_source("NIXTRACK_SOURCES", item) for item in items)

    raw_primary = optional_env_var("NIXTRACK_PRIMARY_CHANNEL")
    primary = (
        _parse_source("NIXTRACK_PRIMARY_CHANNEL", raw_primary)
        if raw_primary is not None
        else Source.NIXPKGS_MASTER
    )
    if enabled is not None and primary not in enabled:
        raise ConfigurationError(
            f"NIXTRACK_PRIMARY_CHANNEL {primary} must be one of NIXTRACK_SOURCES"
        )

    attempts = optional_int_env_var("NIXTRACK_MAX_SAVE_ATTEMPTS", minimum=1)
    return ReconcileConfig(
        enabled_sources=enabled,
        primary_channel=primary,
        max_save_attempts=attempts if attempts is not None else DEFAULT_MAX_SAVE_ATTEMPTS,
    )
