from alloccheck.sources.contract import SnapshotSource
from alloccheck.sources.live import LiveSource
from alloccheck.sources.registry import open_source
from alloccheck.sources.static import StaticSource

__all__ = [
    "LiveSource",
    "SnapshotSource",
    "StaticSource",
    "open_source",
]
