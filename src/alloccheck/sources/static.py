from __future__ import annotations

from pathlib import Path
from typing import Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from alloccheck.exceptions import DecodeError, EmptySource, NotFound, SourceUnavailable
from alloccheck.json_types import JSONObject
from alloccheck.runtime import json_io
from alloccheck.schema import (
    AllocationDetail,
    AllocationSummary,
    Namespace,
    NodeDetail,
    NodeSummary,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _read_text(path: Path, *, label: str) -> str:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise SourceUnavailable(f"error opening {label} {path}: {exc}") from exc
    try:
        return data.decode("utf-8")
    except UnicodeError as exc:
        raise DecodeError(f"error decoding {label} {path}: {exc}") from exc


def _validate(model: type[ModelT], payloads: list[JSONObject], *, label: str) -> list[ModelT]:
    records: list[ModelT] = []
    for position, payload in enumerate(payloads):
        try:
            records.append(model.model_validate(payload))
        except ValidationError as exc:
            raise DecodeError(f"error decoding {label} record {position}: {exc}") from exc
    return records


def decode_record_stream(text: str, model: type[ModelT], *, label: str) -> list[ModelT]:
    try:
        payloads = list(json_io.iter_json_objects(text, source=label))
    except ValueError as exc:
        raise DecodeError(f"error decoding {label}: {exc}") from exc
    return _validate(model, payloads, label=label)


def decode_record_array(text: str, model: type[ModelT], *, label: str) -> list[ModelT]:
    try:
        payloads = json_io.load_json_array_text(text, source=label)
    except ValueError as exc:
        raise DecodeError(f"error decoding {label}: {exc}") from exc
    return _validate(model, payloads, label=label)


class StaticSource:
    """Snapshot source backed by pre-fetched listings.

    Detail lookups scan the listing and promote the matching summary to a
    detail record, failing with ``NotFound`` exactly like the live service.
    """

    kind = "static"

    def __init__(
        self,
        allocations: Sequence[AllocationSummary],
        nodes: Sequence[NodeSummary],
        namespaces: Sequence[Namespace] | None = None,
    ):
        if not allocations:
            raise EmptySource("no allocations found")
        if namespaces is not None and not namespaces:
            raise EmptySource("no namespaces found")
        self._allocations = tuple(allocations)
        self._nodes = tuple(nodes)
        self._namespaces = tuple(namespaces) if namespaces is not None else None

    @classmethod
    def from_texts(
        cls,
        *,
        allocations: str,
        nodes: str,
        namespaces: str | None = None,
    ) -> StaticSource:
        allocs = decode_record_stream(allocations, AllocationSummary, label="allocs")
        if not allocs:
            raise EmptySource("no allocations found")
        return cls(
            allocations=allocs,
            nodes=decode_record_stream(nodes, NodeSummary, label="nodes"),
            namespaces=(
                decode_record_array(namespaces, Namespace, label="namespaces")
                if namespaces is not None
                else None
            ),
        )

    @classmethod
    def from_paths(
        cls,
        *,
        allocs_path: Path,
        nodes_path: Path,
        namespaces_path: Path | None = None,
    ) -> StaticSource:
        allocations = _read_text(allocs_path, label="allocs")
        namespaces = (
            _read_text(namespaces_path, label="namespaces")
            if namespaces_path is not None
            else None
        )
        nodes = _read_text(nodes_path, label="nodes")
        return cls.from_texts(allocations=allocations, nodes=nodes, namespaces=namespaces)

    def list_allocations(self) -> Sequence[AllocationSummary]:
        return self._allocations

    def list_nodes(self) -> Sequence[NodeSummary]:
        return self._nodes

    def list_namespaces(self) -> Sequence[Namespace] | None:
        return self._namespaces

    def get_allocation(self, alloc_id: str) -> AllocationDetail:
        for alloc in self._allocations:
            if alloc.id == alloc_id:
                return AllocationDetail.from_summary(alloc)
        raise NotFound("alloc", alloc_id)

    def get_node(self, node_id: str) -> NodeDetail:
        for node in self._nodes:
            if node.id == node_id:
                return NodeDetail.from_summary(node)
        raise NotFound("node", node_id)
