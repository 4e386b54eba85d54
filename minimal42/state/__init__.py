"""
State persistence for minimal42.
"""

from minimal42.state.store import (
    CONVERGED,
    REMOVED,
    UNMANAGED,
    HistoryEntry,
    ResourceState,
    Store,
)

__all__ = ["Store", "ResourceState", "HistoryEntry", "UNMANAGED", "CONVERGED", "REMOVED"]
