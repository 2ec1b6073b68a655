from __future__ import annotations

import http.client
import io
import json
import urllib.error
import urllib.parse

import pytest

from alloccheck.exceptions import DecodeError, ListFailure, NotFound, SourceError, SourceUnavailable
from alloccheck.reconcile import Checker, Stage
from alloccheck.runtime.env_policy import LiveConnection
from alloccheck.sources import LiveSource


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
        return False


class _TruncatedResponse(_Response):
    def read(self, *args):
        raise http.client.IncompleteRead(b"{", 100)


class _FakeTransport:
    def __init__(self, routes: dict[str, object]):
        self.routes = routes
        self.requests: list[tuple[str, dict[str, str], float]] = []

    def __call__(self, request, timeout: float):
        self.requests.append((request.full_url, dict(request.header_items()), timeout))
        path = urllib.parse.urlsplit(request.full_url).path
        if path not in self.routes:
            raise urllib.error.HTTPError(request.full_url, 404, "Not Found", {}, None)
        outcome = self.routes[path]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, _Response):
            return outcome
        if isinstance(outcome, bytes):
            return _Response(outcome)
        return _Response(json.dumps(outcome).encode("utf-8"))


def _source(routes: dict[str, object], **connection: object) -> tuple[LiveSource, _FakeTransport]:
    transport = _FakeTransport(routes)
    settings = {"address": "http://nomad.test:4646", **connection}
    return LiveSource(LiveConnection(**settings), urlopen_fn=transport), transport


def test_list_calls_use_wildcard_namespace_and_token() -> None:
    source, transport = _source(
        {"/v1/allocations": [{"ID": "a1", "ClientStatus": "running"}]},
        token="secret",
        region="eu",
        timeout_seconds=5.0,
    )
    allocs = source.list_allocations()
    assert [alloc.id for alloc in allocs] == ["a1"]
    url, headers, timeout = transport.requests[0]
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(url).query)
    assert query == {"namespace": ["*"], "region": ["eu"]}
    assert headers["X-nomad-token"] == "secret"
    assert timeout == 5.0


def test_lists_decode_nodes_and_namespaces() -> None:
    source, _ = _source(
        {
            "/v1/nodes": [{"ID": "n1", "Status": "down"}],
            "/v1/namespaces": [{"Name": "default"}, {"Name": "prod"}],
        }
    )
    assert source.list_nodes()[0].down
    assert [ns.name for ns in source.list_namespaces()] == ["default", "prod"]


def test_null_listing_is_empty() -> None:
    source, _ = _source({"/v1/nodes": None})
    assert source.list_nodes() == []


@pytest.mark.parametrize(
    "outcome",
    [
        urllib.error.URLError("connection refused"),
        urllib.error.HTTPError("http://nomad.test", 500, "boom", {}, None),
        b"not json",
        {"not": "a list"},
        [{"Status": "ready"}],
    ],
)
def test_list_errors_become_list_failure(outcome: object) -> None:
    source, _ = _source({"/v1/nodes": outcome})
    with pytest.raises(ListFailure, match="error listing nodes") as excinfo:
        source.list_nodes()
    assert isinstance(excinfo.value.__cause__, SourceError)


def test_detail_calls_decode_full_records() -> None:
    source, transport = _source(
        {
            "/v1/allocation/a1": {"ID": "a1", "NodeID": "n1", "DesiredStatus": "run"},
            "/v1/node/n1": {"ID": "n1", "Name": "worker", "Drivers": {"docker": {}}},
        }
    )
    alloc = source.get_allocation("a1")
    node = source.get_node("n1")
    assert alloc.desired_status == "run"
    assert node.drivers == {"docker": {}}
    assert len(transport.requests) == 2


def test_detail_404_raises_not_found() -> None:
    source, _ = _source({})
    with pytest.raises(NotFound) as excinfo:
        source.get_allocation("missing")
    assert excinfo.value.kind == "alloc"
    assert excinfo.value.record_id == "missing"
    with pytest.raises(NotFound, match="node id gone not found"):
        source.get_node("gone")


def test_detail_connection_failure_raises_source_unavailable() -> None:
    source, _ = _source({"/v1/node/n1": urllib.error.URLError("timed out")})
    with pytest.raises(SourceUnavailable):
        source.get_node("n1")


def test_detail_malformed_record_raises_decode_error() -> None:
    source, _ = _source({"/v1/allocation/a1": {"NodeID": "n1"}})
    with pytest.raises(DecodeError):
        source.get_allocation("a1")


@pytest.mark.parametrize(
    "outcome",
    [
        _TruncatedResponse(),
        http.client.BadStatusLine("garbage"),
    ],
)
def test_detail_transport_protocol_errors_raise_source_unavailable(outcome: object) -> None:
    source, _ = _source({"/v1/allocation/a1": outcome})
    with pytest.raises(SourceUnavailable):
        source.get_allocation("a1")


def test_malformed_address_raises_source_unavailable() -> None:
    source, transport = _source({}, address="://nomad.test")
    with pytest.raises(SourceUnavailable):
        source.get_node("n1")
    assert transport.requests == []


def test_truncated_detail_body_during_check_is_recorded_as_none() -> None:
    source, _ = _source(
        {
            "/v1/nodes": [{"ID": "n1", "Status": "ready"}],
            "/v1/namespaces": [{"Name": "default"}],
            "/v1/allocations": [
                {"ID": "a1", "NodeID": "gone", "Namespace": "default", "ClientStatus": "running"}
            ],
            "/v1/allocation/a1": _TruncatedResponse(),
        }
    )
    checker = Checker(source=source, clock_ns=lambda: 0)
    results = checker.check()
    assert checker.stage is Stage.COMPLETE
    assert results.complete
    assert results.allocs_missing_node == ["a1"]
    assert results.allocs == {"a1": None}
