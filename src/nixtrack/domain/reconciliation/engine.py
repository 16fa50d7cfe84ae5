"""Reconciliation of version observations into package records.

The engine is pure: it never touches storage and never mutates its inputs. A
call either returns a fully formed new record or raises before building one,
so a failed call cannot leave a half-applied update behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC
from logging import getLogger
from typing import TYPE_CHECKING

from nixtrack.domain.errors import InvalidObservationError, MismatchedPackageError
from nixtrack.domain.model import ReconciliationAction, SourceState
from nixtrack.domain.reconciliation.outdated import OutdatedAssessment, assess
from nixtrack.domain.sources import SourceRegistry, default_registry

if TYPE_CHECKING:
    from datetime import datetime

    from nixtrack.domain.model import Package, VersionObservation

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    package: Package
    action: ReconciliationAction
    assessment: OutdatedAssessment

    @property
    def changed(self) -> bool:
        return self.action is not ReconciliationAction.NOOP


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(slots=True)
class ReconciliationEngine:
    """Merge one observation at a time into the matching package record."""

    registry: SourceRegistry = field(default_factory=default_registry)

    def reconcile(self, current: Package, observation: VersionObservation) -> ReconciliationResult:
        self._validate(current, observation)
        spec = self.registry.resolve(observation.source)
        observed_at = _as_utc(observation.observed_at)

        previous_check = current.last_checked(spec.source)
        before = assess(current, self.registry)
        if previous_check is not None and observed_at <= _as_utc(previous_check):
            log.debug(
                "Ignoring stale %s observation for %s: %s <= %s",
                spec.source,
                current.id,
                observed_at,
                previous_check,
            )
            return ReconciliationResult(
                package=current, action=ReconciliationAction.NOOP, assessment=before
            )

        updated = current.with_source_state(
            spec.source,
            SourceState(version=observation.reported_version.strip(), last_checked=observed_at),
            attempted_at=observed_at,
        )
        after = assess(updated, self.registry)
        action = self._classify(updated, before=before, after=after)
        return ReconciliationResult(package=updated, action=action, assessment=after)

    def assess(self, package: Package) -> OutdatedAssessment:
        return assess(package, self.registry)

    @staticmethod
    def _validate(current: Package, observation: VersionObservation) -> None:
        if not observation.package_id:
            raise InvalidObservationError("Observation is missing a package id")
        if observation.package_id != current.id:
            raise MismatchedPackageError(current.id, observation.package_id)
        if not observation.reported_version or not observation.reported_version.strip():
            raise InvalidObservationError(
                f"Observation for {observation.package_id!r} has an empty version"
            )

    @staticmethod
    def _classify(
        updated: Package,
        *,
        before: OutdatedAssessment,
        after: OutdatedAssessment,
    ) -> ReconciliationAction:
        if not after.outdated or updated.has_pending_proposal:
            return ReconciliationAction.UPDATED
        if before.outdated:
            return ReconciliationAction.STILL_OUTDATED
        return ReconciliationAction.BECAME_OUTDATED
