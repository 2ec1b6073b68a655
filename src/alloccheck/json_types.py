"""JSON value aliases for wire records and report payloads."""

from __future__ import annotations

from typing import TypeAlias

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
# One decoded record from a listing, detail call or snapshot file.
JSONObject: TypeAlias = dict[str, JSONValue]
