from __future__ import annotations

import json
from typing import Iterator, Mapping

from alloccheck.json_types import JSONObject

_WHITESPACE = " \t\n\r"


def iter_json_objects(text: str, *, source: str) -> Iterator[JSONObject]:
    """Yield each JSON object from a stream of concatenated objects.

    Objects may be separated by any amount of whitespace, one per line being
    the usual layout. Raises ``ValueError`` naming ``source`` and the offset of
    the first malformed or non-object value.
    """
    decoder = json.JSONDecoder()
    idx = 0
    end = len(text)
    while True:
        while idx < end and text[idx] in _WHITESPACE:
            idx += 1
        if idx >= end:
            return
        try:
            value, next_idx = decoder.raw_decode(text, idx)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{source}: {exc}") from exc
        if not isinstance(value, Mapping):
            raise ValueError(
                f"{source}: expected a JSON object at offset {idx}, "
                f"got {type(value).__name__}"
            )
        yield dict(value)
        idx = next_idx


def load_json_array_text(text: str, *, source: str) -> list[JSONObject]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{source}: {exc}") from exc
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError(f"{source}: expected a JSON array, got {type(payload).__name__}")
    items: list[JSONObject] = []
    for position, item in enumerate(payload):
        if not isinstance(item, Mapping):
            raise ValueError(
                f"{source}: expected a JSON object at index {position}, "
                f"got {type(item).__name__}"
            )
        items.append(dict(item))
    return items


def dump_json_pretty(payload: object) -> str:
    return json.dumps(payload, indent=2, sort_keys=False) + "\n"
