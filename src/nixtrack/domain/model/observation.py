"""Normalised version observation delivered by upstream clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from nixtrack.domain.model.enums import Source


@dataclass(frozen=True, slots=True, kw_only=True)
class VersionObservation:
    """Source ``source`` reports package ``package_id`` at ``reported_version``.

    No validation happens here; the reconciliation engine rejects malformed
    observations so that routing bugs surface at the point of use.
    """

    package_id: str
    source: Source | str
    reported_version: str
    observed_at: datetime
