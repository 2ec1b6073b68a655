"""Deduplicated detail fetches for flagged allocations and their nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Mapping

from alloccheck.exceptions import SourceError
from alloccheck.schema import NodeSummary, Results
from alloccheck.sources.contract import SnapshotSource

_LOGGER = logging.getLogger(__name__)


@dataclass
class FetchLedger:
    """Ids whose detail fetch was attempted, mapped to whether it succeeded."""

    allocs: dict[str, bool] = field(default_factory=dict)
    nodes: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_results(cls, results: Results) -> FetchLedger:
        return cls(
            allocs={key: value is not None for key, value in results.allocs.items()},
            nodes={key: value is not None for key, value in results.nodes.items()},
        )

    def claim_alloc(self, alloc_id: str) -> bool:
        """Return True the first time ``alloc_id`` is seen."""
        if alloc_id in self.allocs:
            return False
        self.allocs[alloc_id] = False
        return True

    def claim_node(self, node_id: str) -> bool:
        if node_id in self.nodes:
            return False
        self.nodes[node_id] = False
        return True


def enrich(
    results: Results,
    source: SnapshotSource,
    *,
    ledger: FetchLedger | None = None,
    node_index: Mapping[str, NodeSummary] | None = None,
    logger: logging.Logger | None = None,
) -> FetchLedger:
    """Attach full allocation and node records for every flagged allocation.

    Each allocation id and node id is fetched at most once across all buckets
    and across repeated calls sharing a ledger. Fetch failures are logged and
    stored as None; they never propagate. Nodes that ``node_index`` proves
    absent are not requested.
    """
    log = logger or _LOGGER
    if ledger is None:
        ledger = FetchLedger.from_results(results)
    for alloc_id in results.flagged_alloc_ids():
        if not ledger.claim_alloc(alloc_id):
            continue
        try:
            alloc = source.get_allocation(alloc_id)
        except SourceError as exc:
            log.error(
                "Error fetching alloc alloc=%s error=%s",
                alloc_id,
                exc,
                extra={"alloc": alloc_id},
            )
            results.allocs[alloc_id] = None
            continue
        results.allocs[alloc_id] = alloc
        ledger.allocs[alloc_id] = True

        node_id = alloc.node_id
        if not node_id:
            continue
        if node_index is not None and node_id not in node_index:
            continue
        if not ledger.claim_node(node_id):
            continue
        try:
            node = source.get_node(node_id)
        except SourceError as exc:
            log.error(
                "Error fetching node for alloc node=%s alloc=%s error=%s",
                node_id,
                alloc_id,
                exc,
                extra={"alloc": alloc_id, "node": node_id},
            )
            results.nodes[node_id] = None
            continue
        results.nodes[node_id] = node
        ledger.nodes[node_id] = True
    return ledger
