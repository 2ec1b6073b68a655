from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ClientStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"
    LOST = "lost"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: str) -> ClientStatus:
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.OTHER

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[ClientStatus] = frozenset(
    {ClientStatus.COMPLETE, ClientStatus.FAILED, ClientStatus.LOST}
)

NODE_STATUS_DOWN = "down"


class _Record(BaseModel):
    # Wire records keep unknown fields so full detail survives into the report.
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    def wire_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class AllocationSummary(_Record):
    id: str = Field(alias="ID")
    namespace: str = Field("", alias="Namespace")
    node_id: str = Field("", alias="NodeID")
    client_status: str = Field("", alias="ClientStatus")
    modify_time: int = Field(0, alias="ModifyTime")
    eval_id: str = Field("", alias="EvalID")
    name: str = Field("", alias="Name")
    node_name: str = Field("", alias="NodeName")
    job_id: str = Field("", alias="JobID")
    task_group: str = Field("", alias="TaskGroup")
    desired_status: str = Field("", alias="DesiredStatus")
    create_index: int = Field(0, alias="CreateIndex")
    modify_index: int = Field(0, alias="ModifyIndex")
    create_time: int = Field(0, alias="CreateTime")

    @property
    def status(self) -> ClientStatus:
        return ClientStatus.parse(self.client_status)


class AllocationDetail(AllocationSummary):
    desired_description: str = Field("", alias="DesiredDescription")
    client_description: str = Field("", alias="ClientDescription")
    task_states: Optional[Dict[str, Any]] = Field(None, alias="TaskStates")
    deployment_status: Optional[Dict[str, Any]] = Field(None, alias="DeploymentStatus")
    reschedule_tracker: Optional[Dict[str, Any]] = Field(None, alias="RescheduleTracker")
    followup_eval_id: str = Field("", alias="FollowupEvalID")
    next_allocation: str = Field("", alias="NextAllocation")
    preempted_allocations: Optional[List[str]] = Field(None, alias="PreemptedAllocations")
    preempted_by_allocation: str = Field("", alias="PreemptedByAllocation")

    @classmethod
    def from_summary(cls, summary: AllocationSummary) -> AllocationDetail:
        return cls.model_validate(summary.wire_payload())


class NodeSummary(_Record):
    id: str = Field(alias="ID")
    name: str = Field("", alias="Name")
    status: str = Field("", alias="Status")
    datacenter: str = Field("", alias="Datacenter")
    node_class: str = Field("", alias="NodeClass")
    node_pool: str = Field("", alias="NodePool")
    drain: bool = Field(False, alias="Drain")
    scheduling_eligibility: str = Field("", alias="SchedulingEligibility")
    status_description: str = Field("", alias="StatusDescription")
    create_index: int = Field(0, alias="CreateIndex")
    modify_index: int = Field(0, alias="ModifyIndex")

    @property
    def down(self) -> bool:
        return self.status.strip().lower() == NODE_STATUS_DOWN


class NodeDetail(NodeSummary):
    attributes: Optional[Dict[str, str]] = Field(None, alias="Attributes")
    drivers: Optional[Dict[str, Any]] = Field(None, alias="Drivers")
    node_resources: Optional[Dict[str, Any]] = Field(None, alias="NodeResources")
    reserved_resources: Optional[Dict[str, Any]] = Field(None, alias="ReservedResources")
    last_drain: Optional[Dict[str, Any]] = Field(None, alias="LastDrain")

    @classmethod
    def from_summary(cls, summary: NodeSummary) -> NodeDetail:
        return cls.model_validate(summary.wire_payload())


class Namespace(_Record):
    name: str = Field(alias="Name")
    description: str = Field("", alias="Description")


@dataclass
class Results:
    """Findings of one reconciliation run.

    Mutated only by the engine and the enrichment pass; treat as read-only
    once returned. ``namespaces_total`` is None when namespace checks were
    skipped, in which case the namespace buckets stay empty and serialize as
    null.
    """

    complete: bool = False
    allocs_total: int = 0
    namespaces_total: int | None = None
    nodes_total: int = 0
    allocs_client_terminal: int = 0
    allocs_pending_too_long: list[str] = field(default_factory=list)
    allocs_missing_namespace: list[str] = field(default_factory=list)
    allocs_missing_node: list[str] = field(default_factory=list)
    allocs_down_node: list[str] = field(default_factory=list)
    namespaces_missing: list[str] = field(default_factory=list)
    allocs: dict[str, AllocationDetail | None] = field(default_factory=dict)
    nodes: dict[str, NodeDetail | None] = field(default_factory=dict)

    @property
    def namespaces_checked(self) -> bool:
        return self.namespaces_total is not None

    def flagged_alloc_ids(self) -> list[str]:
        """Flagged ids in enrichment order, first appearance wins."""
        seen: dict[str, None] = {}
        for bucket in (
            self.allocs_pending_too_long,
            self.allocs_missing_node,
            self.allocs_down_node,
            self.allocs_missing_namespace,
        ):
            for alloc_id in bucket:
                seen.setdefault(alloc_id, None)
        return list(seen)


class ReportDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    complete: bool = Field(alias="Complete")
    allocs_total: int = Field(alias="AllocsTotal")
    namespaces_total: Optional[int] = Field(None, alias="NamespacesTotal")
    nodes_total: int = Field(alias="NodesTotal")
    allocs_client_terminal: int = Field(alias="AllocsClientTerminal")
    allocs_pending_too_long: List[str] = Field(default_factory=list, alias="AllocsPendingTooLong")
    allocs_missing_namespace: Optional[List[str]] = Field(None, alias="AllocsMissingNamespace")
    allocs_missing_node: List[str] = Field(default_factory=list, alias="AllocsMissingNode")
    allocs_down_node: List[str] = Field(default_factory=list, alias="AllocsDownNode")
    namespaces_missing: Optional[List[str]] = Field(None, alias="NamespacesMissing")
    namespaces_checked: bool = Field(alias="NamespacesChecked")
    allocs: Dict[str, Optional[Dict[str, Any]]] = Field(default_factory=dict, alias="Allocs")
    nodes: Dict[str, Optional[Dict[str, Any]]] = Field(default_factory=dict, alias="Nodes")

    @classmethod
    def from_results(cls, results: Results) -> ReportDTO:
        checked = results.namespaces_checked
        return cls(
            complete=results.complete,
            allocs_total=results.allocs_total,
            namespaces_total=results.namespaces_total,
            nodes_total=results.nodes_total,
            allocs_client_terminal=results.allocs_client_terminal,
            allocs_pending_too_long=list(results.allocs_pending_too_long),
            allocs_missing_namespace=list(results.allocs_missing_namespace) if checked else None,
            allocs_missing_node=list(results.allocs_missing_node),
            allocs_down_node=list(results.allocs_down_node),
            namespaces_missing=list(results.namespaces_missing) if checked else None,
            namespaces_checked=checked,
            allocs={
                alloc_id: None if detail is None else detail.wire_payload()
                for alloc_id, detail in results.allocs.items()
            },
            nodes={
                node_id: None if detail is None else detail.wire_payload()
                for node_id, detail in results.nodes.items()
            },
        )
