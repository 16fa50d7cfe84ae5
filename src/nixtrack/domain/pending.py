"""Lifecycle of in-flight update proposals.

Per package the lifecycle is ``NoProposal -> Pending -> NoProposal``. Attaching
a different proposal while one is pending is refused rather than overwritten,
and a close event only clears the proposal it names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from nixtrack.domain.errors import AlreadyPendingError, ProposalMismatchError
from nixtrack.domain.model import ProposalRef
from nixtrack.domain.reconciliation.outdated import assess
from nixtrack.domain.sources import SourceRegistry, default_registry

if TYPE_CHECKING:
    from nixtrack.domain.model import Package

log = getLogger(__name__)


@dataclass(slots=True)
class PendingUpdateTracker:
    registry: SourceRegistry = field(default_factory=default_registry)

    def attach_pending_update(
        self,
        package: Package,
        proposal_id: str,
        owner: str,
        branch_name: str,
    ) -> Package:
        requested = ProposalRef(proposal_id=proposal_id, owner=owner, branch_name=branch_name)
        existing = package.pending
        if existing is None:
            log.debug("Attaching proposal %s to %s", proposal_id, package.id)
            return package.with_pending(requested)
        if existing == requested:
            return package
        raise AlreadyPendingError(package.id, existing, requested)

    def clear_pending_update(self, package: Package, proposal_id: str) -> Package:
        if package.pending is None or package.pending.proposal_id != proposal_id:
            raise ProposalMismatchError(package.id, package.pending_pr, proposal_id)
        log.debug("Clearing proposal %s from %s", proposal_id, package.id)
        return package.with_pending(None)

    def is_eligible_for_new_proposal(self, package: Package) -> bool:
        """True iff nothing is pending and the package is outdated."""

        if package.pending is not None:
            return False
        return assess(package, self.registry).outdated
