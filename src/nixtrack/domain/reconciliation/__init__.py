"""Reconciliation core: merge upstream observations into package records."""

from __future__ import annotations

from .engine import ReconciliationEngine, ReconciliationResult
from .outdated import OutdatedAssessment, assess

__all__ = [
    "OutdatedAssessment",
    "ReconciliationEngine",
    "ReconciliationResult",
    "assess",
]
