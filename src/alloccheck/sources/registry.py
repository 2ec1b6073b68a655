from __future__ import annotations

import logging

from alloccheck.config import CheckConfig
from alloccheck.exceptions import SourceUnavailable
from alloccheck.runtime.env_policy import LiveConnection, live_connection_from_env
from alloccheck.sources.contract import SnapshotSource
from alloccheck.sources.live import LiveSource
from alloccheck.sources.static import StaticSource

_LOGGER = logging.getLogger(__name__)


def open_source(
    config: CheckConfig,
    *,
    connection: LiveConnection | None = None,
    logger: logging.Logger | None = None,
) -> SnapshotSource:
    """Pick the snapshot source once per run.

    Any allocation or node path selects the static source; otherwise the live
    service is queried.
    """
    log = logger or _LOGGER
    if not config.uses_files:
        live = connection or live_connection_from_env()
        log.info("Using HTTP API address=%s", live.address)
        return LiveSource(live, logger=log)
    log.info(
        "Using files allocs=%s namespaces=%s nodes=%s",
        config.allocs_path,
        config.namespaces_path,
        config.nodes_path,
    )
    if config.allocs_path is None:
        raise SourceUnavailable("error opening allocs: no allocations path given")
    if config.nodes_path is None:
        raise SourceUnavailable("error opening nodes: no nodes path given")
    if config.namespaces_path is None:
        log.warning("No namespaces file given; namespace checks are skipped")
    return StaticSource.from_paths(
        allocs_path=config.allocs_path,
        nodes_path=config.nodes_path,
        namespaces_path=config.namespaces_path,
    )
