from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_CEILING
import os
import re

from alloccheck.exceptions import ConfigError

ADDRESS_ENV = "NOMAD_ADDR"
TOKEN_ENV = "NOMAD_TOKEN"
REGION_ENV = "NOMAD_REGION"

DEFAULT_ADDRESS = "http://127.0.0.1:4646"
DEFAULT_HTTP_TIMEOUT = "30s"

_DURATION_TOKEN_RE = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ns|us|µs|ms|s|m|h)")
_DURATION_UNIT_NS: dict[str, Decimal] = {
    "ns": Decimal("1"),
    "us": Decimal("1000"),
    "µs": Decimal("1000"),
    "ms": Decimal("1000000"),
    "s": Decimal("1000000000"),
    "m": Decimal("60000000000"),
    "h": Decimal("3600000000000"),
}


@dataclass(frozen=True)
class LiveConnection:
    address: str
    token: str = ""
    region: str = ""
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        address = self.address.strip().rstrip("/")
        if not address:
            raise ConfigError("live address must not be empty")
        if "://" not in address:
            address = f"http://{address}"
        object.__setattr__(self, "address", address)
        if self.timeout_seconds <= 0:
            raise ConfigError(f"invalid live timeout: {self.timeout_seconds}")


def env_text(name: str, *, default: str = "") -> str:
    return os.getenv(name, default).strip()


def parse_duration_to_ns(duration: str, *, field_name: str = "duration") -> int:
    """Parse Go-style duration text (``12h``, ``1h30m``, ``250ms``) into ns."""
    text = str(duration).strip().lower()
    if not text:
        raise ConfigError(f"invalid {field_name} duration: {duration!r}")
    idx = 0
    total_ns = Decimal("0")
    while idx < len(text):
        match = _DURATION_TOKEN_RE.match(text, idx)
        if match is None:
            raise ConfigError(f"invalid {field_name} duration: {duration!r}")
        try:
            value = Decimal(match.group("value"))
        except (InvalidOperation, ValueError) as exc:
            raise ConfigError(f"invalid {field_name} duration: {duration!r}") from exc
        total_ns += value * _DURATION_UNIT_NS[match.group("unit")]
        idx = match.end()
    total_ns_int = int(total_ns.to_integral_value(rounding=ROUND_CEILING))
    if total_ns_int <= 0:
        raise ConfigError(f"invalid {field_name} duration: {duration!r}")
    return total_ns_int


def live_connection_from_env(
    *,
    address: str | None = None,
    token: str | None = None,
    region: str | None = None,
    timeout: str | None = None,
) -> LiveConnection:
    timeout_ns = parse_duration_to_ns(timeout or DEFAULT_HTTP_TIMEOUT, field_name="timeout")
    return LiveConnection(
        address=address or env_text(ADDRESS_ENV) or DEFAULT_ADDRESS,
        token=token if token is not None else env_text(TOKEN_ENV),
        region=region if region is not None else env_text(REGION_ENV),
        timeout_seconds=timeout_ns / 1_000_000_000,
    )
