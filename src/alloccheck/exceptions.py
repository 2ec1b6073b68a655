"""Error taxonomy for allocation audits."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from alloccheck.schema import Results


class AllocCheckError(RuntimeError):
    """Root of every error raised by alloccheck."""


class ConfigError(AllocCheckError):
    """Invalid option or config file value."""


class SourceError(AllocCheckError):
    """A snapshot source failed to produce a listing or record."""


class SourceUnavailable(SourceError):
    """The backing file or service could not be opened or reached."""


class EmptySource(SourceError):
    """A required listing decoded to zero records."""


class DecodeError(SourceError):
    """A record in a static source could not be parsed."""


class ListFailure(SourceError):
    """A live list call failed."""


class NotFound(SourceError):
    """A detail fetch found no record with the requested id."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} id {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class ReconcileError(AllocCheckError):
    """A run aborted before classification.

    Carries the partial, incomplete results and the last stage reached so the
    caller can still report totals gathered so far.
    """

    def __init__(self, message: str, *, results: Results, stage: str):
        super().__init__(message)
        self.results = results
        self.stage = stage


class ReportEncodeError(AllocCheckError):
    """Results could not be encoded as a JSON report."""
