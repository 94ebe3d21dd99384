from .dedup import CommitDedupGuard
from .store import CorrelationStore, construction_event_id, identity_of, inner_identity_of
from .tracker import RollContextTracker, snapshot_modifiers

__all__ = [
    "CommitDedupGuard",
    "CorrelationStore",
    "RollContextTracker",
    "construction_event_id",
    "identity_of",
    "inner_identity_of",
    "snapshot_modifiers",
]
