"""Change tracking: snapshots, diffing, and removal cause inference."""

from .causes import CAUSE_RULES, CauseRule, classify_cause, classify_heuristic
from .snapshots import DiffResult, Snapshot, SnapshotStore, diff, has_changed

__all__ = [
    "CAUSE_RULES",
    "CauseRule",
    "DiffResult",
    "Snapshot",
    "SnapshotStore",
    "classify_cause",
    "classify_heuristic",
    "diff",
    "has_changed",
]
