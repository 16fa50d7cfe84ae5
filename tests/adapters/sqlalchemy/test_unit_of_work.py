from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect, text

from nixtrack.adapters.sqlalchemy.mappings import package_table
from nixtrack.adapters.sqlalchemy.repositories import SqlAlchemyPackageRepository
from nixtrack.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from nixtrack.domain import update_tracking
from nixtrack.domain.model import ReconciliationAction, Source
from nixtrack.domain.ports import PackageUnitOfWork
from nixtrack.domain.update_tracking import PackageListingEntry
from tests.helpers.packages import make_observation, make_package

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine

    from nixtrack.adapters.memory import InMemoryUnitOfWork


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert "packages" in inspect(engine_b).get_table_names()


def test_schema_comes_from_migrations(sqlite_file_engine: Engine) -> None:
    inspector = inspect(sqlite_file_engine)

    assert set(inspector.get_table_names()) == {"alembic_version", "packages"}
    assert {column["name"] for column in inspector.get_columns("packages")} == set(
        package_table.columns.keys()
    )
    with sqlite_file_engine.connect() as connection:
        assert connection.execute(text("SELECT version_num FROM alembic_version")).scalar_one()


def test_unit_of_work_persists_packages(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.packages.add(make_package("hello"))
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.packages.exists("hello")


def test_unit_of_work_rolls_back_on_error(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    def _fail() -> None:
        with SqlAlchemyUnitOfWork() as uow:
            uow.repositories.packages.add(make_package("hello"))
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        _fail()

    with SqlAlchemyUnitOfWork() as uow:
        assert not uow.repositories.packages.exists("hello")


def test_reconcile_through_sqlalchemy_store(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.packages.add(make_package(versions={Source.NIXPKGS_MASTER: "1.2.0"}))
        uow.commit()

    outcome = update_tracking.reconcile_observation(
        make_observation(Source.PYPI, "1.3.0"), unit_of_work_factory=sqlite_unit_of_work
    )
    repeated = update_tracking.reconcile_observation(
        make_observation(Source.PYPI, "1.3.0"), unit_of_work_factory=sqlite_unit_of_work
    )

    assert outcome.action is ReconciliationAction.BECAME_OUTDATED
    assert repeated.action is ReconciliationAction.NOOP
    stored = update_tracking.load_package(
        outcome.package_id, unit_of_work_factory=sqlite_unit_of_work
    )
    assert stored == outcome.package
    assert stored.revision == 1


def test_units_of_work_satisfy_the_port(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    memory_unit_of_work: Callable[[], InMemoryUnitOfWork],
) -> None:
    sql_uow = sqlite_unit_of_work()

    assert isinstance(sql_uow, PackageUnitOfWork)
    assert isinstance(memory_unit_of_work(), PackageUnitOfWork)
    with pytest.raises(StartupError):
        _ = sql_uow.repositories
    with sql_uow as uow:
        assert uow.repositories.packages.list_all() == []
    with pytest.raises(StartupError):
        _ = sql_uow.repositories


def test_listing_sync_survives_insert_conflict(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.packages.add(make_package("ripgrep"))
        uow.commit()
    real_exists = SqlAlchemyPackageRepository.exists
    misses = [2]

    def _stale_exists(self: SqlAlchemyPackageRepository, package_id: str) -> bool:
        if misses[0]:
            misses[0] -= 1
            return False
        return real_exists(self, package_id)

    monkeypatch.setattr(SqlAlchemyPackageRepository, "exists", _stale_exists)

    result = update_tracking.sync_package_listing(
        [PackageListingEntry("ripgrep", "ripgrep-bin")], unit_of_work_factory=sqlite_unit_of_work
    )

    assert (result.created, result.refreshed, result.unchanged) == (0, 1, 0)
    stored = update_tracking.load_package("ripgrep", unit_of_work_factory=sqlite_unit_of_work)
    assert stored.attr_path == "ripgrep-bin"
    assert stored.revision == 1
