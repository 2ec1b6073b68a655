from __future__ import annotations

import http.client
import json
import logging
from typing import Callable, Sequence, TypeVar
import urllib.error
import urllib.parse
import urllib.request

from pydantic import BaseModel, ValidationError

from alloccheck.exceptions import (
    DecodeError,
    ListFailure,
    NotFound,
    SourceError,
    SourceUnavailable,
)
from alloccheck.json_types import JSONValue
from alloccheck.runtime.env_policy import LiveConnection
from alloccheck.schema import (
    AllocationDetail,
    AllocationSummary,
    Namespace,
    NodeDetail,
    NodeSummary,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

ALL_NAMESPACES = "*"
_TOKEN_HEADER = "X-Nomad-Token"
_HTTP_NOT_FOUND = 404

_LOGGER = logging.getLogger(__name__)


class LiveSource:
    """Snapshot source backed by the orchestration service's HTTP API.

    Every call is one blocking round-trip; list calls use the wildcard
    namespace so the whole cluster is visible.
    """

    kind = "live"

    def __init__(
        self,
        connection: LiveConnection,
        *,
        urlopen_fn: Callable[..., object] = urllib.request.urlopen,
        logger: logging.Logger | None = None,
    ):
        self.connection = connection
        self._urlopen = urlopen_fn
        self._logger = logger or _LOGGER

    def _url(self, path: str) -> str:
        params = {"namespace": ALL_NAMESPACES}
        if self.connection.region:
            params["region"] = self.connection.region
        return f"{self.connection.address}{path}?{urllib.parse.urlencode(params)}"

    def _get_json(self, path: str, *, record: tuple[str, str] | None = None) -> JSONValue:
        url = self._url(path)
        headers = {"Accept": "application/json"}
        if self.connection.token:
            headers[_TOKEN_HEADER] = self.connection.token
        self._logger.debug("GET %s", url)
        try:
            request = urllib.request.Request(url, headers=headers)
            with self._urlopen(request, timeout=self.connection.timeout_seconds) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            if exc.code == _HTTP_NOT_FOUND and record is not None:
                raise NotFound(*record) from exc
            raise SourceError(f"GET {path} returned HTTP {exc.code}: {exc.reason}") from exc
        except (urllib.error.URLError, OSError, http.client.HTTPException, ValueError) as exc:
            raise SourceUnavailable(f"GET {path} failed: {exc}") from exc
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeError, json.JSONDecodeError) as exc:
            raise DecodeError(f"GET {path} returned invalid JSON: {exc}") from exc

    def _list(self, path: str, model: type[ModelT], *, label: str) -> list[ModelT]:
        try:
            payload = self._get_json(path)
            if payload is None:
                return []
            if not isinstance(payload, list):
                raise DecodeError(f"GET {path} returned {type(payload).__name__}, expected list")
            try:
                return [model.model_validate(item) for item in payload]
            except ValidationError as exc:
                raise DecodeError(f"GET {path} returned a malformed record: {exc}") from exc
        except SourceError as exc:
            raise ListFailure(f"error listing {label}: {exc}") from exc

    def _get(self, kind: str, record_id: str, model: type[ModelT], *, label: str) -> ModelT:
        path = f"/v1/{kind}/{urllib.parse.quote(record_id, safe='')}"
        payload = self._get_json(path, record=(label, record_id))
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise DecodeError(f"GET {path} returned a malformed record: {exc}") from exc

    def list_allocations(self) -> Sequence[AllocationSummary]:
        return self._list("/v1/allocations", AllocationSummary, label="allocations")

    def list_nodes(self) -> Sequence[NodeSummary]:
        return self._list("/v1/nodes", NodeSummary, label="nodes")

    def list_namespaces(self) -> Sequence[Namespace] | None:
        return self._list("/v1/namespaces", Namespace, label="namespaces")

    def get_allocation(self, alloc_id: str) -> AllocationDetail:
        return self._get("allocation", alloc_id, AllocationDetail, label="alloc")

    def get_node(self, node_id: str) -> NodeDetail:
        return self._get("node", node_id, NodeDetail, label="node")
