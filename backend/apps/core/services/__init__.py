"""
Core services module.
"""

from .snapshots import (
    SnapshotHub,
    snapshot_hub,
)

__all__ = [
    'SnapshotHub',
    'snapshot_hub',
]
