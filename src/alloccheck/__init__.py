"""alloccheck package root."""

from alloccheck.exceptions import (
    AllocCheckError,
    DecodeError,
    EmptySource,
    ListFailure,
    NotFound,
    ReconcileError,
    ReportEncodeError,
    SourceError,
    SourceUnavailable,
)

__all__ = [
    "__version__",
    "AllocCheckError",
    "DecodeError",
    "EmptySource",
    "ListFailure",
    "NotFound",
    "ReconcileError",
    "ReportEncodeError",
    "SourceError",
    "SourceUnavailable",
]

__version__ = "0.1.0"
