"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from nixtrack.adapters.listing import parse_listing_lines
from nixtrack.adapters.observations import parse_observation_lines
from nixtrack.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from nixtrack.config import ReconcileConfig, get_reconcile_config
from nixtrack.domain import update_tracking
from nixtrack.domain.pending import PendingUpdateTracker
from nixtrack.domain.reconciliation import ReconciliationEngine
from nixtrack.domain.sources import registry_from_config

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from nixtrack.domain.model import Package
    from nixtrack.domain.ports import PackageUnitOfWork
    from nixtrack.domain.reconciliation import OutdatedAssessment
    from nixtrack.domain.update_tracking import ReconcileBatchResult, SyncListingResult

    type UnitOfWorkFactory = Callable[[], PackageUnitOfWork]


log = getLogger(__name__)


@dataclass(slots=True)
class PackageStatus:
    package: Package
    assessment: OutdatedAssessment
    eligible: bool


@dataclass(slots=True)
class _Services:
    config: ReconcileConfig
    engine: ReconciliationEngine
    tracker: PendingUpdateTracker
    unit_of_work_factory: UnitOfWorkFactory


def _services(
    unit_of_work_factory: UnitOfWorkFactory | None,
    config: ReconcileConfig | None,
) -> _Services:
    effective_config = config or get_reconcile_config()
    registry = registry_from_config(effective_config)
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyUnitOfWork
    return _Services(
        config=effective_config,
        engine=ReconciliationEngine(registry=registry),
        tracker=PendingUpdateTracker(registry=registry),
        unit_of_work_factory=unit_of_work_factory,
    )


def ingest_observations(
    path: Path,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> ReconcileBatchResult:
    """Reconcile every observation in a JSON-lines file."""

    services = _services(unit_of_work_factory, config)
    log.info("Ingesting observations from %s", path)
    with path.open(encoding="utf-8") as handle:
        return update_tracking.reconcile_observations(
            parse_observation_lines(handle),
            unit_of_work_factory=services.unit_of_work_factory,
            engine=services.engine,
            max_attempts=services.config.max_save_attempts,
        )


def sync_listing(
    path: Path,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> SyncListingResult:
    """Register packages from a JSON-lines listing of the packaging tree."""

    services = _services(unit_of_work_factory, config)
    log.info("Syncing package listing from %s", path)
    with path.open(encoding="utf-8") as handle:
        return update_tracking.sync_package_listing(
            parse_listing_lines(handle),
            unit_of_work_factory=services.unit_of_work_factory,
            max_attempts=services.config.max_save_attempts,
        )


def package_status(
    package_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> PackageStatus:
    services = _services(unit_of_work_factory, config)
    package = update_tracking.load_package(
        package_id, unit_of_work_factory=services.unit_of_work_factory
    )
    return PackageStatus(
        package=package,
        assessment=services.engine.assess(package),
        eligible=services.tracker.is_eligible_for_new_proposal(package),
    )


def outdated_packages(
    *,
    eligible_only: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> list[PackageStatus]:
    services = _services(unit_of_work_factory, config)
    outdated = update_tracking.list_outdated_packages(
        unit_of_work_factory=services.unit_of_work_factory,
        engine=services.engine,
    )
    statuses = [
        PackageStatus(
            package=package,
            assessment=assessment,
            eligible=services.tracker.is_eligible_for_new_proposal(package),
        )
        for package, assessment in outdated
    ]
    if eligible_only:
        return [status for status in statuses if status.eligible]
    return statuses


def attach_proposal(
    package_id: str,
    proposal_id: str,
    owner: str,
    branch_name: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> Package:
    services = _services(unit_of_work_factory, config)
    return update_tracking.attach_pending_update(
        package_id,
        proposal_id,
        owner,
        branch_name,
        unit_of_work_factory=services.unit_of_work_factory,
        tracker=services.tracker,
        max_attempts=services.config.max_save_attempts,
    )


def clear_proposal(
    package_id: str,
    proposal_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> Package:
    services = _services(unit_of_work_factory, config)
    return update_tracking.clear_pending_update(
        package_id,
        proposal_id,
        unit_of_work_factory=services.unit_of_work_factory,
        tracker=services.tracker,
        max_attempts=services.config.max_save_attempts,
    )


def set_update_log(
    package_id: str,
    message: str | None,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ReconcileConfig | None = None,
) -> Package:
    services = _services(unit_of_work_factory, config)
    return update_tracking.record_update_log(
        package_id,
        message,
        unit_of_work_factory=services.unit_of_work_factory,
        max_attempts=services.config.max_save_attempts,
    )
