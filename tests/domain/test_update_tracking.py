from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from nixtrack.adapters.memory import InMemoryPackageStore, InMemoryUnitOfWork
from nixtrack.domain import update_tracking
from nixtrack.domain.errors import (
    AlreadyPendingError,
    PackageNotFoundError,
    ProposalMismatchError,
    RetryLimitExceededError,
    UnknownSourceError,
)
from nixtrack.domain.model import ReconciliationAction, Source, UpstreamIdentity
from nixtrack.domain.update_tracking import PackageListingEntry
from tests.helpers.packages import at, make_observation, make_package

if TYPE_CHECKING:
    from collections.abc import Callable

PACKAGE_ID = "python3Packages.requests"


class _InterferingUnitOfWork(InMemoryUnitOfWork):
    """Lets another writer commit to the same record right before each commit."""

    def __init__(self, store: InMemoryPackageStore, interferences: list[int]) -> None:
        super().__init__(store)
        self._interferences = interferences

    def commit(self) -> None:
        if self._interferences[0] > 0:
            self._interferences[0] -= 1
            with InMemoryUnitOfWork(self.store) as other:
                packages = other.repositories.packages
                current = packages.load(PACKAGE_ID)
                packages.save(current.with_log(f"concurrent write {current.revision}"))
                other.commit()
        super().commit()


def _interfering_factory(
    store: InMemoryPackageStore, times: int
) -> Callable[[], InMemoryUnitOfWork]:
    remaining = [times]
    return lambda: _InterferingUnitOfWork(store, remaining)


def test_reconcile_observation_persists_new_state(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    memory_store.apply([make_package(versions={Source.NIXPKGS_MASTER: "1.2.0"})], [])

    outcome = update_tracking.reconcile_observation(
        make_observation(Source.PYPI, "1.3.0"),
        unit_of_work_factory=memory_unit_of_work,
    )

    stored = memory_store.get(PACKAGE_ID)
    assert outcome.action is ReconciliationAction.BECAME_OUTDATED
    assert outcome.attempts == 1
    assert stored is not None
    assert stored.version_pypi == "1.3.0"
    assert stored.revision == 1
    assert outcome.package == stored


def test_noop_observation_does_not_bump_revision(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    memory_store.apply([make_package(versions={Source.NIXPKGS_MASTER: "1.2.0"})], [])
    observation = make_observation(Source.PYPI, "1.3.0")

    update_tracking.reconcile_observation(observation, unit_of_work_factory=memory_unit_of_work)
    again = update_tracking.reconcile_observation(
        observation, unit_of_work_factory=memory_unit_of_work
    )

    stored = memory_store.get(PACKAGE_ID)
    assert again.action is ReconciliationAction.NOOP
    assert stored is not None
    assert stored.revision == 1


def test_unknown_source_leaves_store_untouched(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    original = make_package(versions={Source.NIXPKGS_MASTER: "1.2.0"})
    memory_store.apply([original], [])

    with pytest.raises(UnknownSourceError):
        update_tracking.reconcile_observation(
            make_observation("sourceforge", "1.3.0"),
            unit_of_work_factory=memory_unit_of_work,
        )

    assert memory_store.get(PACKAGE_ID) == original


def test_reconcile_retries_after_concurrent_write(memory_store: InMemoryPackageStore) -> None:
    memory_store.apply([make_package(versions={Source.NIXPKGS_MASTER: "1.2.0"})], [])

    outcome = update_tracking.reconcile_observation(
        make_observation(Source.PYPI, "1.3.0"),
        unit_of_work_factory=_interfering_factory(memory_store, times=1),
    )

    stored = memory_store.get(PACKAGE_ID)
    assert outcome.attempts == 2
    assert stored is not None
    assert stored.version_pypi == "1.3.0"
    assert stored.last_update_log == "concurrent write 0"
    assert stored.revision == 2


def test_reconcile_gives_up_after_max_attempts(memory_store: InMemoryPackageStore) -> None:
    memory_store.apply([make_package(versions={Source.NIXPKGS_MASTER: "1.2.0"})], [])

    with pytest.raises(RetryLimitExceededError) as exc:
        update_tracking.reconcile_observation(
            make_observation(Source.PYPI, "1.3.0"),
            unit_of_work_factory=_interfering_factory(memory_store, times=10),
            max_attempts=3,
        )

    stored = memory_store.get(PACKAGE_ID)
    assert exc.value.attempts == 3
    assert stored is not None
    assert stored.version_pypi is None


def test_reconcile_missing_package_raises(
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    with pytest.raises(PackageNotFoundError):
        update_tracking.reconcile_observation(
            make_observation(Source.PYPI, "1.3.0"),
            unit_of_work_factory=memory_unit_of_work,
        )


def test_concurrent_reconciliations_keep_every_source(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    memory_store.apply([make_package()], [])
    sources = [source for source in Source if source is not Source.PENDING_PR]
    barrier = threading.Barrier(len(sources))
    errors: list[BaseException] = []

    def worker(index: int, source: Source) -> None:
        barrier.wait()
        try:
            update_tracking.reconcile_observation(
                make_observation(source, f"1.{index}", observed_at=at(index + 1)),
                unit_of_work_factory=memory_unit_of_work,
                max_attempts=len(sources) * 4,
            )
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [
        threading.Thread(target=worker, args=(index, source))
        for index, source in enumerate(sources)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stored = memory_store.get(PACKAGE_ID)
    assert errors == []
    assert stored is not None
    assert stored.revision == len(sources)
    for index, source in enumerate(sources):
        assert stored.version_of(source) == f"1.{index}"
        assert stored.last_checked(source) == at(index + 1)


def test_reconcile_observations_counts_actions(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    memory_store.apply(
        [
            make_package(versions={Source.NIXPKGS_MASTER: "1.2.0"}),
            make_package("hello", versions={Source.NIXPKGS_MASTER: "2.12"}),
        ],
        [],
    )
    observations = [
        make_observation(Source.PYPI, "1.3.0", observed_at=at(1)),
        make_observation(Source.GITHUB, "1.4.0", observed_at=at(2)),
        make_observation(Source.GITHUB, "1.4.0", observed_at=at(2)),
        make_observation(Source.REPOLOGY, "2.12", package_id="hello"),
    ]

    result = update_tracking.reconcile_observations(
        observations, unit_of_work_factory=memory_unit_of_work
    )

    assert result.processed == 4
    assert result.counts[ReconciliationAction.BECAME_OUTDATED] == 1
    assert result.counts[ReconciliationAction.STILL_OUTDATED] == 1
    assert result.counts[ReconciliationAction.NOOP] == 1
    assert result.counts[ReconciliationAction.UPDATED] == 1
    assert result.became_outdated == [PACKAGE_ID]
    assert result.still_outdated == [PACKAGE_ID]


def test_pending_update_services(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    memory_store.apply(
        [make_package(versions={Source.NIXPKGS_MASTER: "1.2.0", Source.PYPI: "1.3.0"})], []
    )

    assert [
        package.id
        for package in update_tracking.list_eligible_packages(
            unit_of_work_factory=memory_unit_of_work
        )
    ] == [PACKAGE_ID]

    attached = update_tracking.attach_pending_update(
        PACKAGE_ID, "PR-42", "r-ryantm", "auto-update", unit_of_work_factory=memory_unit_of_work
    )
    assert attached.pending_pr == "PR-42"
    assert update_tracking.list_eligible_packages(unit_of_work_factory=memory_unit_of_work) == []

    with pytest.raises(AlreadyPendingError):
        update_tracking.attach_pending_update(
            PACKAGE_ID, "PR-99", "r-ryantm", "other", unit_of_work_factory=memory_unit_of_work
        )

    update_tracking.clear_pending_update(
        PACKAGE_ID, "PR-42", unit_of_work_factory=memory_unit_of_work
    )
    with pytest.raises(ProposalMismatchError):
        update_tracking.clear_pending_update(
            PACKAGE_ID, "PR-42", unit_of_work_factory=memory_unit_of_work
        )

    stored = memory_store.get(PACKAGE_ID)
    assert stored is not None
    assert stored.pending is None
    assert stored.revision == 2


def test_record_update_log(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    memory_store.apply([make_package()], [])

    update_tracking.record_update_log(
        PACKAGE_ID, "build failed", unit_of_work_factory=memory_unit_of_work
    )
    update_tracking.record_update_log(
        PACKAGE_ID, "build failed", unit_of_work_factory=memory_unit_of_work
    )

    stored = memory_store.get(PACKAGE_ID)
    assert stored is not None
    assert stored.last_update_log == "build failed"
    assert stored.revision == 1


def test_list_outdated_packages_returns_assessments(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    memory_store.apply(
        [
            make_package(versions={Source.NIXPKGS_MASTER: "1.2.0", Source.GITHUB: "1.5.0"}),
            make_package("hello", versions={Source.NIXPKGS_MASTER: "2.12", Source.PYPI: "2.12"}),
        ],
        [],
    )

    outdated = update_tracking.list_outdated_packages(unit_of_work_factory=memory_unit_of_work)

    assert [(package.id, assessment.best_upstream_version) for package, assessment in outdated] == [
        (PACKAGE_ID, "1.5.0")
    ]


def test_sync_package_listing_creates_and_refreshes(
    memory_store: InMemoryPackageStore,
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    memory_store.apply(
        [
            make_package(versions={Source.NIXPKGS_MASTER: "1.2.0"}),
            make_package("hello"),
        ],
        [],
    )
    identity = UpstreamIdentity(owner_github="psf", repo_github="requests")
    entries = [
        PackageListingEntry(PACKAGE_ID, "python3Packages.requests", identity),
        PackageListingEntry("hello", "hello"),
        PackageListingEntry("ripgrep", "ripgrep"),
    ]

    result = update_tracking.sync_package_listing(
        entries, unit_of_work_factory=memory_unit_of_work
    )

    assert (result.created, result.refreshed, result.unchanged) == (1, 1, 1)
    refreshed = memory_store.get(PACKAGE_ID)
    assert refreshed is not None
    assert refreshed.identity == identity
    assert refreshed.version_nixpkgs_master == "1.2.0"
    created = memory_store.get("ripgrep")
    assert created is not None
    assert created.sources == {}
    assert created.revision == 0


class _RacingInsertUnitOfWork(InMemoryUnitOfWork):
    """Another listing sync inserts the same package right before the first commit."""

    def __init__(self, store: InMemoryPackageStore, racing: list[bool]) -> None:
        super().__init__(store)
        self._racing = racing

    def commit(self) -> None:
        if self._racing[0]:
            self._racing[0] = False
            with InMemoryUnitOfWork(self.store) as other:
                other.repositories.packages.add(make_package("ripgrep"))
                other.commit()
        super().commit()


def test_sync_package_listing_refreshes_concurrently_added_package(
    memory_store: InMemoryPackageStore,
) -> None:
    racing = [True]
    identity = UpstreamIdentity(owner_github="BurntSushi", repo_github="ripgrep")

    result = update_tracking.sync_package_listing(
        [PackageListingEntry("ripgrep", "ripgrep", identity)],
        unit_of_work_factory=lambda: _RacingInsertUnitOfWork(memory_store, racing),
    )

    assert (result.created, result.refreshed, result.unchanged) == (0, 1, 0)
    stored = memory_store.get("ripgrep")
    assert stored is not None
    assert stored.identity == identity
    assert stored.revision == 1


def test_load_package_missing(memory_unit_of_work: Callable[[], InMemoryUnitOfWork]) -> None:
    with pytest.raises(PackageNotFoundError):
        update_tracking.load_package("nope", unit_of_work_factory=memory_unit_of_work)
