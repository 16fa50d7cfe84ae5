"""Application services that run reconciliation against a package store.

Every mutation follows the same read-modify-write cycle: load the record inside
a unit of work, compute the new record with the pure domain objects, save it
with a compare-and-swap on ``Package.revision`` and commit. A conflicting
concurrent writer makes the save fail; the cycle is then retried from a fresh
load. Storage failures other than conflicts are propagated unmodified.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from nixtrack.domain.errors import (
    ConcurrentModificationError,
    DuplicatePackageError,
    RetryLimitExceededError,
)
from nixtrack.domain.model import Package, ReconciliationAction, UpstreamIdentity
from nixtrack.domain.pending import PendingUpdateTracker
from nixtrack.domain.reconciliation import ReconciliationEngine

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from nixtrack.domain.model import VersionObservation
    from nixtrack.domain.ports import PackageUnitOfWork
    from nixtrack.domain.reconciliation import OutdatedAssessment, ReconciliationResult

    type UnitOfWorkFactory = Callable[[], PackageUnitOfWork]

DEFAULT_MAX_SAVE_ATTEMPTS = 5

log = getLogger(__name__)


@dataclass(slots=True)
class ReconciliationOutcome:
    """Result of reconciling one observation against the store."""

    package: Package
    action: ReconciliationAction
    assessment: OutdatedAssessment
    attempts: int

    @property
    def package_id(self) -> str:
        return self.package.id


@dataclass(slots=True)
class ReconcileBatchResult:
    processed: int = 0
    counts: Counter[ReconciliationAction] = field(default_factory=Counter["ReconciliationAction"])
    became_outdated: list[str] = field(default_factory=list[str])
    still_outdated: list[str] = field(default_factory=list[str])

    def record(self, outcome: ReconciliationOutcome) -> None:
        self.processed += 1
        self.counts[outcome.action] += 1
        if outcome.action is ReconciliationAction.BECAME_OUTDATED:
            self.became_outdated.append(outcome.package_id)
        elif outcome.action is ReconciliationAction.STILL_OUTDATED:
            self.still_outdated.append(outcome.package_id)


@dataclass(frozen=True, slots=True)
class PackageListingEntry:
    """One package as listed by the canonical packaging tree."""

    package_id: str
    attr_path: str
    identity: UpstreamIdentity = field(default_factory=UpstreamIdentity)


@dataclass(slots=True)
class SyncListingResult:
    created: int = 0
    refreshed: int = 0
    unchanged: int = 0


def _mutate_with_retry[R](
    package_id: str,
    mutation: Callable[[Package], tuple[Package, R]],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    max_attempts: int,
) -> tuple[Package, R, int]:
    """Run ``mutation`` on a fresh copy of the record until the CAS save sticks.

    ``mutation`` returns the record to store together with a caller payload.
    Returning the loaded record itself means "nothing to write".
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            with unit_of_work_factory() as uow:
                repository = uow.repositories.packages
                current = repository.load(package_id)
                updated, payload = mutation(current)
                if updated is current:
                    return current, payload, attempt
                repository.save(updated)
                uow.commit()
                return updated.with_revision(current.revision + 1), payload, attempt
        except ConcurrentModificationError:
            log.warning(
                "Concurrent modification of %s (attempt %s/%s), retrying",
                package_id,
                attempt,
                max_attempts,
            )
    raise RetryLimitExceededError(package_id, max_attempts)


def reconcile_observation(
    observation: VersionObservation,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    engine: ReconciliationEngine | None = None,
    max_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
) -> ReconciliationOutcome:
    """Merge one observation into the stored record of its package."""

    effective_engine = engine or ReconciliationEngine()

    def _apply(current: Package) -> tuple[Package, ReconciliationResult]:
        result = effective_engine.reconcile(current, observation)
        return result.package, result

    package, result, attempts = _mutate_with_retry(
        observation.package_id,
        _apply,
        unit_of_work_factory=unit_of_work_factory,
        max_attempts=max_attempts,
    )
    if result.changed:
        log.info(
            "Reconciled %s from %s: %s (%s)",
            observation.package_id,
            observation.source,
            result.action,
            observation.reported_version,
        )
    return ReconciliationOutcome(
        package=package,
        action=result.action,
        assessment=result.assessment,
        attempts=attempts,
    )


def reconcile_observations(
    observations: Iterable[VersionObservation],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    engine: ReconciliationEngine | None = None,
    max_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
) -> ReconcileBatchResult:
    """Reconcile observations one by one, each in its own transaction.

    Errors stop the batch; observations processed before the failure stay
    committed, and re-running the batch is safe since stale observations are
    ignored.
    """

    effective_engine = engine or ReconciliationEngine()
    result = ReconcileBatchResult()
    for observation in observations:
        outcome = reconcile_observation(
            observation,
            unit_of_work_factory=unit_of_work_factory,
            engine=effective_engine,
            max_attempts=max_attempts,
        )
        result.record(outcome)

    log.info(
        "Reconciled %s observations: %s",
        result.processed,
        ", ".join(f"{action}={count}" for action, count in sorted(result.counts.items())),
    )
    return result


def attach_pending_update(
    package_id: str,
    proposal_id: str,
    owner: str,
    branch_name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    tracker: PendingUpdateTracker | None = None,
    max_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
) -> Package:
    effective_tracker = tracker or PendingUpdateTracker()

    def _attach(current: Package) -> tuple[Package, None]:
        return (
            effective_tracker.attach_pending_update(current, proposal_id, owner, branch_name),
            None,
        )

    package, _, _ = _mutate_with_retry(
        package_id,
        _attach,
        unit_of_work_factory=unit_of_work_factory,
        max_attempts=max_attempts,
    )
    log.info("Proposal %s pending for %s on %s/%s", proposal_id, package_id, owner, branch_name)
    return package


def clear_pending_update(
    package_id: str,
    proposal_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    tracker: PendingUpdateTracker | None = None,
    max_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
) -> Package:
    effective_tracker = tracker or PendingUpdateTracker()

    def _clear(current: Package) -> tuple[Package, None]:
        return effective_tracker.clear_pending_update(current, proposal_id), None

    package, _, _ = _mutate_with_retry(
        package_id,
        _clear,
        unit_of_work_factory=unit_of_work_factory,
        max_attempts=max_attempts,
    )
    log.info("Proposal %s cleared from %s", proposal_id, package_id)
    return package


def record_update_log(
    package_id: str,
    message: str | None,
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    max_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
) -> Package:
    """Store the operator-visible outcome of the latest update attempt."""

    def _log(current: Package) -> tuple[Package, None]:
        if current.last_update_log == message:
            return current, None
        return current.with_log(message), None

    package, _, _ = _mutate_with_retry(
        package_id,
        _log,
        unit_of_work_factory=unit_of_work_factory,
        max_attempts=max_attempts,
    )
    return package


def load_package(package_id: str, *, unit_of_work_factory: UnitOfWorkFactory) -> Package:
    with unit_of_work_factory() as uow:
        return uow.repositories.packages.load(package_id)


def list_outdated_packages(
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    engine: ReconciliationEngine | None = None,
) -> list[tuple[Package, OutdatedAssessment]]:
    effective_engine = engine or ReconciliationEngine()
    with unit_of_work_factory() as uow:
        packages = uow.repositories.packages.list_all()
    assessed = ((package, effective_engine.assess(package)) for package in packages)
    return [(package, assessment) for package, assessment in assessed if assessment.outdated]


def list_eligible_packages(
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    tracker: PendingUpdateTracker | None = None,
) -> list[Package]:
    """Packages that are outdated and have no proposal in flight."""

    effective_tracker = tracker or PendingUpdateTracker()
    with unit_of_work_factory() as uow:
        packages = uow.repositories.packages.list_all()
    return [
        package for package in packages if effective_tracker.is_eligible_for_new_proposal(package)
    ]


def sync_package_listing(
    entries: Iterable[PackageListingEntry],
    *,
    unit_of_work_factory: UnitOfWorkFactory,
    max_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
) -> SyncListingResult:
    """Create records for newly listed packages and refresh identity of known ones.

    Version, timestamp and pending fields are never touched here, and packages
    missing from the listing are left alone.
    """

    result = SyncListingResult()
    for entry in entries:
        try:
            with unit_of_work_factory() as uow:
                repository = uow.repositories.packages
                if not repository.exists(entry.package_id):
                    repository.add(
                        Package(
                            id=entry.package_id,
                            attr_path=entry.attr_path,
                            identity=entry.identity,
                        )
                    )
                    uow.commit()
                    result.created += 1
                    continue
        except DuplicatePackageError:
            log.info("Package %s was added concurrently, refreshing it", entry.package_id)

        def _refresh(current: Package, entry: PackageListingEntry = entry) -> tuple[Package, bool]:
            if current.attr_path == entry.attr_path and current.identity == entry.identity:
                return current, False
            return current.with_identity(attr_path=entry.attr_path, identity=entry.identity), True

        _, refreshed, _ = _mutate_with_retry(
            entry.package_id,
            _refresh,
            unit_of_work_factory=unit_of_work_factory,
            max_attempts=max_attempts,
        )
        if refreshed:
            result.refreshed += 1
        else:
            result.unchanged += 1

    log.info(
        "Package listing synced: created=%s, refreshed=%s, unchanged=%s",
        result.created,
        result.refreshed,
        result.unchanged,
    )
    return result
