from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from alloccheck.exceptions import ReportEncodeError
from alloccheck.runtime import json_io
from alloccheck.schema import ReportDTO, Results


def encode_report(results: Results) -> str:
    """Render ``results`` as the pretty-printed JSON report text."""
    try:
        payload = ReportDTO.from_results(results).model_dump(by_alias=True, mode="json")
        return json_io.dump_json_pretty(payload)
    except (TypeError, ValueError, ValidationError) as exc:
        raise ReportEncodeError(f"error encoding results: {exc}") from exc


def load_report(path: Path) -> ReportDTO:
    return ReportDTO.model_validate(json.loads(path.read_text(encoding="utf-8")))
