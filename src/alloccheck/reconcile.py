"""Reconciliation of allocations against the nodes and namespaces they use.

A run lists nodes, namespaces and allocations (in that order), builds the
lookup indexes once, classifies every allocation in listing order and then
enriches the flagged ones with full records. Listing failures abort the run
with ``ReconcileError``; enrichment failures never do.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging
import time
from typing import Callable, Mapping, Sequence

from alloccheck.enrich import FetchLedger, enrich
from alloccheck.exceptions import ReconcileError, SourceError
from alloccheck.index import index_namespaces, index_nodes
from alloccheck.schema import (
    AllocationSummary,
    ClientStatus,
    Namespace,
    NodeSummary,
    Results,
)
from alloccheck.sources.contract import SnapshotSource

DEFAULT_PENDING_THRESHOLD_NS = 12 * 60 * 60 * 1_000_000_000

_LOGGER = logging.getLogger(__name__)


def _format_ns(value_ns: int) -> str:
    return datetime.fromtimestamp(value_ns / 1_000_000_000, tz=timezone.utc).isoformat()


class Stage(str, Enum):
    STARTED = "started"
    NODES_FETCHED = "nodes_fetched"
    NAMESPACES_FETCHED = "namespaces_fetched"
    ALLOCATIONS_FETCHED = "allocations_fetched"
    CLASSIFIED = "classified"
    ENRICHED = "enriched"
    COMPLETE = "complete"


def classify(
    allocations: Sequence[AllocationSummary],
    results: Results,
    *,
    node_index: Mapping[str, NodeSummary],
    namespace_index: Mapping[str, Namespace] | None,
    pending_cutoff_ns: int,
    logger: logging.Logger | None = None,
) -> None:
    """Sort each allocation into the finding buckets of ``results``.

    Terminal allocations are only counted. A None ``namespace_index`` skips
    the namespace check. An allocation pending with a modify time strictly
    before ``pending_cutoff_ns`` is pending too long.
    """
    log = logger or _LOGGER
    missing_namespaces = set(results.namespaces_missing)
    for alloc in allocations:
        status = alloc.status
        if status.terminal:
            results.allocs_client_terminal += 1
            continue

        if namespace_index is not None and alloc.namespace not in namespace_index:
            log.warning(
                "Non-terminal allocation's namespace missing job=%s alloc=%s ns=%s",
                alloc.job_id,
                alloc.id,
                alloc.namespace,
                extra={"alloc": alloc.id, "job": alloc.job_id, "namespace": alloc.namespace},
            )
            results.allocs_missing_namespace.append(alloc.id)
            if alloc.namespace not in missing_namespaces:
                missing_namespaces.add(alloc.namespace)
                results.namespaces_missing.append(alloc.namespace)

        if status is ClientStatus.PENDING and alloc.modify_time < pending_cutoff_ns:
            log.warning(
                "Allocation has been pending for too long alloc=%s modified=%s",
                alloc.id,
                _format_ns(alloc.modify_time),
                extra={"alloc": alloc.id, "job": alloc.job_id},
            )
            results.allocs_pending_too_long.append(alloc.id)

        node = node_index.get(alloc.node_id)
        if node is None:
            log.warning(
                "Non-terminal allocation's node missing alloc=%s node=%s",
                alloc.id,
                alloc.node_id,
                extra={"alloc": alloc.id, "job": alloc.job_id, "node": alloc.node_id},
            )
            results.allocs_missing_node.append(alloc.id)
        elif node.down:
            log.warning(
                "Non-terminal allocation's node down alloc=%s node=%s",
                alloc.id,
                alloc.node_id,
                extra={"alloc": alloc.id, "job": alloc.job_id, "node": alloc.node_id},
            )
            results.allocs_down_node.append(alloc.id)


@dataclass
class Checker:
    source: SnapshotSource
    pending_threshold_ns: int = DEFAULT_PENDING_THRESHOLD_NS
    logger: logging.Logger = field(default_factory=lambda: _LOGGER)
    clock_ns: Callable[[], int] = time.time_ns
    stage: Stage = Stage.STARTED

    def _advance(self, stage: Stage) -> None:
        self.stage = stage
        self.logger.debug("Check stage %s", stage.value)

    def _abort(self, message: str, results: Results, exc: SourceError) -> ReconcileError:
        return ReconcileError(f"{message}: {exc}", results=results, stage=self.stage.value)

    def check(self) -> Results:
        # TODO: accept a cancellation token checked between allocations once
        # a partial-results contract exists for interrupted runs.
        results = Results()
        self.stage = Stage.STARTED
        pending_cutoff_ns = self.clock_ns() - self.pending_threshold_ns
        self.logger.info("Checking source kind=%s", self.source.kind)

        self.logger.info("Fetching all nodes...")
        try:
            node_index = index_nodes(self.source.list_nodes())
        except SourceError as exc:
            raise self._abort("error listing nodes", results, exc) from exc
        results.nodes_total = len(node_index)
        self._advance(Stage.NODES_FETCHED)

        self.logger.info("Fetching all namespaces...")
        try:
            namespaces = self.source.list_namespaces()
        except SourceError as exc:
            raise self._abort("error listing namespaces", results, exc) from exc
        namespace_index = index_namespaces(namespaces) if namespaces is not None else None
        if namespace_index is None:
            self.logger.info("No namespace listing; skipping namespace checks")
        else:
            results.namespaces_total = len(namespace_index)
        self._advance(Stage.NAMESPACES_FETCHED)

        self.logger.info("Fetching all allocations...")
        try:
            allocations = self.source.list_allocations()
        except SourceError as exc:
            raise self._abort("error listing allocations", results, exc) from exc
        results.allocs_total = len(allocations)
        self._advance(Stage.ALLOCATIONS_FETCHED)

        self.logger.info("Checking allocations...")
        classify(
            allocations,
            results,
            node_index=node_index,
            namespace_index=namespace_index,
            pending_cutoff_ns=pending_cutoff_ns,
            logger=self.logger,
        )
        self._advance(Stage.CLASSIFIED)

        enrich(
            results,
            self.source,
            ledger=FetchLedger(),
            node_index=node_index,
            logger=self.logger,
        )
        self._advance(Stage.ENRICHED)

        results.complete = True
        self._advance(Stage.COMPLETE)
        return results
