from __future__ import annotations

from typing import Sequence

from alloccheck.exceptions import ListFailure, NotFound, SourceUnavailable
from alloccheck.schema import (
    AllocationDetail,
    AllocationSummary,
    Namespace,
    NodeDetail,
    NodeSummary,
)

HOUR_NS = 60 * 60 * 1_000_000_000
NOW_NS = 1_700_000_000 * 1_000_000_000


def make_alloc(**overrides: object) -> AllocationSummary:
    payload: dict[str, object] = {
        "ID": "alloc-1",
        "Namespace": "default",
        "NodeID": "node-1",
        "JobID": "web",
        "ClientStatus": "running",
        "ModifyTime": NOW_NS - HOUR_NS,
    }
    payload.update(overrides)
    return AllocationSummary.model_validate(payload)


def make_node(**overrides: object) -> NodeSummary:
    payload: dict[str, object] = {
        "ID": "node-1",
        "Name": "worker-1",
        "Status": "ready",
        "Datacenter": "dc1",
        "NodeClass": "",
        "NodePool": "default",
    }
    payload.update(overrides)
    return NodeSummary.model_validate(payload)


def make_namespace(name: str) -> Namespace:
    return Namespace.model_validate({"Name": name, "Description": ""})


class FakeSource:
    """In-memory snapshot source that records every detail fetch."""

    kind = "fake"

    def __init__(
        self,
        allocations: Sequence[AllocationSummary],
        nodes: Sequence[NodeSummary] = (),
        namespaces: Sequence[Namespace] | None = None,
        *,
        failing_list: str | None = None,
        unfetchable_allocs: Sequence[str] = (),
        unfetchable_nodes: Sequence[str] = (),
        unavailable_allocs: Sequence[str] = (),
        unavailable_nodes: Sequence[str] = (),
    ):
        self.allocations = list(allocations)
        self.nodes = list(nodes)
        self.namespaces = list(namespaces) if namespaces is not None else None
        self.failing_list = failing_list
        self.unfetchable_allocs = set(unfetchable_allocs)
        self.unfetchable_nodes = set(unfetchable_nodes)
        self.unavailable_allocs = set(unavailable_allocs)
        self.unavailable_nodes = set(unavailable_nodes)
        self.calls: list[tuple[str, str]] = []

    def _list(self, name: str, items):
        self.calls.append(("list", name))
        if self.failing_list == name:
            raise ListFailure(f"error listing {name}: boom")
        return items

    def list_allocations(self) -> Sequence[AllocationSummary]:
        return self._list("allocations", self.allocations)

    def list_nodes(self) -> Sequence[NodeSummary]:
        return self._list("nodes", self.nodes)

    def list_namespaces(self) -> Sequence[Namespace] | None:
        return self._list("namespaces", self.namespaces)

    def get_allocation(self, alloc_id: str) -> AllocationDetail:
        self.calls.append(("alloc", alloc_id))
        if alloc_id in self.unavailable_allocs:
            raise SourceUnavailable(f"GET /v1/allocation/{alloc_id} failed: connection reset")
        if alloc_id not in self.unfetchable_allocs:
            for alloc in self.allocations:
                if alloc.id == alloc_id:
                    return AllocationDetail.from_summary(alloc)
        raise NotFound("alloc", alloc_id)

    def get_node(self, node_id: str) -> NodeDetail:
        self.calls.append(("node", node_id))
        if node_id in self.unavailable_nodes:
            raise SourceUnavailable(f"GET /v1/node/{node_id} failed: connection reset")
        if node_id not in self.unfetchable_nodes:
            for node in self.nodes:
                if node.id == node_id:
                    return NodeDetail.from_summary(node)
        raise NotFound("node", node_id)

    def detail_calls(self, kind: str) -> list[str]:
        return [record_id for call_kind, record_id in self.calls if call_kind == kind]
