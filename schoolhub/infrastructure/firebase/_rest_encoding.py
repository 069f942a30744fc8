"""Firestore REST Value codec: Python values <-> typed {"<kind>Value": ...} JSON."""

import base64
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

from schoolhub.shared.utils.datetime import parse_utc, to_rfc3339


def encode_value(v: Any) -> dict[str, Any]:
    """Encode one value. bool is checked before int (bool is an int subclass)."""
    if v is None:
        return {"nullValue": None}
    if isinstance(v, Enum):
        return encode_value(v.value)
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, datetime):
        return {"timestampValue": to_rfc3339(v)}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, bytes):
        return {"bytesValue": base64.standard_b64encode(v).decode("ascii")}
    if isinstance(v, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": {"fields": encode_fields(v)}}
    raise TypeError(f"Unsupported Firestore value type: {type(v).__name__}")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Python dict -> Document.fields."""
    return {k: encode_value(v) for k, v in data.items()}


def encode_document(data: dict[str, Any]) -> dict[str, Any]:
    """Python dict -> Document body for create/patch."""
    return {"fields": encode_fields(data)}


# integerValue arrives as a JSON string (int64); timestamps as RFC 3339 with nanoseconds.
_SCALAR_DECODERS: dict[str, Callable[[Any], Any]] = {
    "nullValue": lambda _: None,
    "booleanValue": bool,
    "integerValue": int,
    "doubleValue": float,
    "timestampValue": parse_utc,
    "stringValue": str,
    "referenceValue": str,
    "bytesValue": base64.standard_b64decode,
}


def decode_value(obj: dict[str, Any]) -> Any:
    """Decode one Value (a field, or a commit transformResult). Unknown kinds decode to None."""
    for kind, raw in obj.items():
        decoder = _SCALAR_DECODERS.get(kind)
        if decoder is not None:
            return decoder(raw)
        if kind == "arrayValue":
            return [decode_value(x) for x in (raw or {}).get("values") or []]
        if kind == "mapValue":
            return decode_document((raw or {}).get("fields"))
    return None


def decode_document(fields: dict[str, Any] | None) -> dict[str, Any]:
    """Document.fields -> Python dict (missing fields -> {})."""
    return {k: decode_value(v) for k, v in (fields or {}).items()}
