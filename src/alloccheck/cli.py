from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional, TextIO
import time

import typer

from alloccheck.config import (
    CheckConfig,
    check_defaults,
    live_defaults,
    load_config,
    resolve_check_config,
    text_value,
)
from alloccheck.exceptions import (
    AllocCheckError,
    ConfigError,
    ReconcileError,
    ReportEncodeError,
)
from alloccheck.reconcile import Checker
from alloccheck.report import encode_report
from alloccheck.runtime.env_policy import LiveConnection, live_connection_from_env
from alloccheck.sources.registry import open_source

EXIT_OK = 0
EXIT_SOURCE = 1
EXIT_OUTPUT_CREATE = 2
EXIT_CONFIG = 3
EXIT_CHECK = 97
EXIT_ENCODE = 98
EXIT_OUTPUT_CLOSE = 99

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(add_completion=False)
logger = logging.getLogger("alloccheck")

def _context_value(ctx: typer.Context, key: str, default: object) -> object:
    obj = ctx.obj
    if isinstance(obj, Mapping):
        candidate = obj.get(key)
        if callable(candidate):
            return candidate
    return default


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ConfigError(f"unknown log level: {level}")
    logging.basicConfig(level=numeric, format=_LOG_FORMAT)
    logger.setLevel(numeric)


def _resolve(
    *,
    config_path: Path | None,
    pending: str | None,
    out: Path | None,
    allocs: Path | None,
    namespaces: Path | None,
    nodes: Path | None,
    address: str | None,
) -> tuple[CheckConfig, LiveConnection | None]:
    data = load_config(config_path=config_path)
    check_config = resolve_check_config(
        pending=pending,
        out=out,
        allocs=allocs,
        namespaces=namespaces,
        nodes=nodes,
        defaults=check_defaults(data),
    )
    if check_config.uses_files:
        return check_config, None
    live = live_defaults(data)
    connection = live_connection_from_env(
        address=address or text_value(live, "address"),
        token=text_value(live, "token"),
        region=text_value(live, "region"),
        timeout=text_value(live, "timeout"),
    )
    return check_config, connection


def _discard_output(handle: TextIO, path: Path, *, created: bool) -> None:
    handle.close()
    if not created:
        return
    try:
        path.unlink()
    except OSError as exc:
        logger.warning("Unable to remove unwritten output path=%s error=%s", path, exc)


@app.command()
def check(
    ctx: typer.Context,
    pending: Optional[str] = typer.Option(
        None,
        "--pending",
        help="Duration an allocation may stay pending before it is reported (default 12h).",
    ),
    out: Optional[Path] = typer.Option(
        None, "--out", help="File name for writing results (default alloc-check.json)."
    ),
    allocs: Optional[Path] = typer.Option(
        None, "--allocs", help="Read allocations from a JSON file instead of the HTTP API."
    ),
    namespaces: Optional[Path] = typer.Option(
        None,
        "--namespaces",
        help="Read namespaces from a JSON array file; omit to skip namespace checks.",
    ),
    nodes: Optional[Path] = typer.Option(
        None, "--nodes", help="Read nodes from a JSON file instead of the HTTP API."
    ),
    address: Optional[str] = typer.Option(
        None, "--address", help="HTTP API address (default $NOMAD_ADDR)."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="TOML config file (default ./alloccheck.toml if present)."
    ),
    log_level: str = typer.Option("INFO", "--log-level"),
) -> None:
    """Audit allocations for missing namespaces, missing or down nodes and stuck pending state."""
    try:
        _configure_logging(log_level)
        check_config, connection = _resolve(
            config_path=config,
            pending=pending,
            out=out,
            allocs=allocs,
            namespaces=namespaces,
            nodes=nodes,
            address=address,
        )
    except ConfigError as exc:
        logger.error("Invalid configuration error=%s", exc)
        raise typer.Exit(code=EXIT_CONFIG)

    out_path = check_config.output_path
    # Only a file this run created is removed again on failure.
    created = not out_path.exists()
    try:
        handle = out_path.open("w", encoding="utf-8")
    except OSError as exc:
        logger.error("error creating output file path=%s error=%s", out_path, exc)
        raise typer.Exit(code=EXIT_OUTPUT_CREATE)

    open_source_fn = _context_value(ctx, "open_source", open_source)
    try:
        source = open_source_fn(check_config, connection=connection, logger=logger)
    except AllocCheckError as exc:
        logger.error("error opening source error=%s", exc)
        _discard_output(handle, out_path, created=created)
        raise typer.Exit(code=EXIT_SOURCE)

    clock_ns = _context_value(ctx, "clock_ns", time.time_ns)
    checker = Checker(
        source=source,
        pending_threshold_ns=check_config.pending_threshold_ns,
        logger=logger,
        clock_ns=clock_ns,
    )
    try:
        results = checker.check()
    except ReconcileError as exc:
        logger.error("check failed stage=%s error=%s", exc.stage, exc)
        _discard_output(handle, out_path, created=created)
        raise typer.Exit(code=EXIT_CHECK)

    try:
        text = encode_report(results)
    except ReportEncodeError as exc:
        logger.error("error encoding results error=%s", exc)
        _discard_output(handle, out_path, created=created)
        raise typer.Exit(code=EXIT_ENCODE)

    try:
        with handle:
            handle.write(text)
    except OSError as exc:
        logger.error("error closing output file path=%s error=%s", out_path, exc)
        raise typer.Exit(code=EXIT_OUTPUT_CLOSE)

    logger.info("Completed results=%s", out_path)


def main() -> None:
    app()
