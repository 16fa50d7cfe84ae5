"""Domain error taxonomy."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nixtrack.domain.model import ProposalRef


class NixtrackError(Exception):
    """Base class for all domain errors."""


# Reconciliation: caller/routing bugs ------------------------------------------


class ReconciliationError(NixtrackError):
    """An observation could not be applied to a record."""


class MismatchedPackageError(ReconciliationError):
    """Observation was routed to the record of a different package."""

    def __init__(self, package_id: str, observation_package_id: str) -> None:
        super().__init__(
            f"Observation for {observation_package_id!r} applied to package {package_id!r}"
        )
        self.package_id = package_id
        self.observation_package_id = observation_package_id


class UnknownSourceError(ReconciliationError):
    """Observation names a source the registry does not know."""

    def __init__(self, source: object) -> None:
        super().__init__(f"Unknown source: {source!r}")
        self.source = source


class InvalidObservationError(ReconciliationError, ValueError):
    """Observation is missing its package id or reported version."""


# Pending-proposal lifecycle: expected race outcomes ---------------------------


class PendingUpdateError(NixtrackError):
    """A pending-proposal transition was refused."""


class AlreadyPendingError(PendingUpdateError):
    """A different proposal is already attached to the package."""

    def __init__(self, package_id: str, existing: ProposalRef, requested: ProposalRef) -> None:
        super().__init__(
            f"Package {package_id!r} already has pending proposal {existing.proposal_id!r}"
            f" (requested {requested.proposal_id!r})"
        )
        self.package_id = package_id
        self.existing = existing
        self.requested = requested


class ProposalMismatchError(PendingUpdateError):
    """The proposal to clear is not the one attached to the package."""

    def __init__(self, package_id: str, expected: str | None, requested: str) -> None:
        attached = repr(expected) if expected is not None else "no proposal"
        super().__init__(
            f"Cannot clear proposal {requested!r} on package {package_id!r}: {attached} attached"
        )
        self.package_id = package_id
        self.expected = expected
        self.requested = requested


# Store -------------------------------------------------------------------------


class StoreError(NixtrackError):
    """Raised by package stores for domain-level persistence outcomes."""


class PackageNotFoundError(StoreError, KeyError):
    def __init__(self, package_id: str) -> None:
        super().__init__(f"Unknown package: {package_id!r}")
        self.package_id = package_id

    def __str__(self) -> str:
        return str(self.args[0])


class DuplicatePackageError(StoreError):
    def __init__(self, package_id: str) -> None:
        super().__init__(f"Package already tracked: {package_id!r}")
        self.package_id = package_id


class ConcurrentModificationError(StoreError):
    """The stored revision moved on since the record was loaded."""

    def __init__(self, package_id: str, expected_revision: int) -> None:
        super().__init__(
            f"Package {package_id!r} was modified concurrently"
            f" (expected revision {expected_revision})"
        )
        self.package_id = package_id
        self.expected_revision = expected_revision


class RetryLimitExceededError(NixtrackError):
    """Optimistic saves kept conflicting until the attempt budget ran out."""

    def __init__(self, package_id: str, attempts: int) -> None:
        super().__init__(f"Gave up on package {package_id!r} after {attempts} conflicting saves")
        self.package_id = package_id
        self.attempts = attempts
