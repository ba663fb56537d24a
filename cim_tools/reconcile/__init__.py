"""
Reconciliation pipelines.

Reassignment moves duplicate-group members onto their master image, the
reachability scan and reclamation planner remove images nothing uses
anymore, and the auditor verifies the result.
"""

from .audit import AuditReconciler, AuditReport
from .reachability import REACHABLE_STATUSES, ReachabilityScanner, parse_id_list
from .reassign import ReassignmentEngine, ReassignmentResult, StageConfig
from .reclamation import (
    DeletionPolicy,
    ReclamationPlanner,
    ReclamationResult,
    classify_asset,
)

__all__ = [
    "AuditReconciler",
    "AuditReport",
    "REACHABLE_STATUSES",
    "ReachabilityScanner",
    "parse_id_list",
    "ReassignmentEngine",
    "ReassignmentResult",
    "StageConfig",
    "DeletionPolicy",
    "ReclamationPlanner",
    "ReclamationResult",
    "classify_asset",
]
