"""Lookup indexes built once per run from entity listings."""

from __future__ import annotations

from typing import Iterable

from alloccheck.schema import Namespace, NodeSummary


def index_nodes(nodes: Iterable[NodeSummary]) -> dict[str, NodeSummary]:
    # Duplicate ids are not expected; the last one wins.
    return {node.id: node for node in nodes}


def index_namespaces(namespaces: Iterable[Namespace]) -> dict[str, Namespace]:
    return {namespace.name: namespace for namespace in namespaces}
