from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from alloccheck.schema import (
    AllocationDetail,
    AllocationSummary,
    Namespace,
    NodeDetail,
    NodeSummary,
)


@runtime_checkable
class SnapshotSource(Protocol):
    """Read-only view of cluster listings and records for one run.

    ``list_namespaces`` returns None when the source has no namespace
    snapshot; namespace checks are then skipped for the whole run.
    Detail getters raise ``NotFound`` for unknown ids.
    """

    kind: str

    def list_allocations(self) -> Sequence[AllocationSummary]: ...

    def list_nodes(self) -> Sequence[NodeSummary]: ...

    def list_namespaces(self) -> Sequence[Namespace] | None: ...

    def get_allocation(self, alloc_id: str) -> AllocationDetail: ...

    def get_node(self, node_id: str) -> NodeDetail: ...
