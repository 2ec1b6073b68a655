from __future__ import annotations

import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest

from tests.source_helpers import make_alloc, make_namespace, make_node


@pytest.fixture
def write_snapshot(tmp_path: Path):
    """Write allocations/nodes as concatenated objects and namespaces as an array."""

    def _write(
        *,
        allocs: list[dict[str, object]],
        nodes: list[dict[str, object]],
        namespaces: list[dict[str, object]] | None = None,
    ) -> dict[str, Path]:
        paths = {
            "allocs": tmp_path / "allocs.json",
            "nodes": tmp_path / "nodes.json",
        }
        paths["allocs"].write_text(
            "".join(json.dumps(item) + "\n" for item in allocs), encoding="utf-8"
        )
        paths["nodes"].write_text(
            "".join(json.dumps(item) + "\n" for item in nodes), encoding="utf-8"
        )
        if namespaces is not None:
            paths["namespaces"] = tmp_path / "namespaces.json"
            paths["namespaces"].write_text(json.dumps(namespaces, indent=2), encoding="utf-8")
        return paths

    return _write


@pytest.fixture
def wire_alloc():
    def _make(**overrides: object) -> dict[str, object]:
        return make_alloc(**overrides).wire_payload()

    return _make


@pytest.fixture
def wire_node():
    def _make(**overrides: object) -> dict[str, object]:
        return make_node(**overrides).wire_payload()

    return _make


@pytest.fixture
def wire_namespace():
    def _make(name: str) -> dict[str, object]:
        return make_namespace(name).wire_payload()

    return _make
