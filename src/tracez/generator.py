"""JSON output for the tracez page — serializes a ProcessedSnapshot."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from tracez.snapshot import ProcessedSnapshot


@dataclass
class RenderOptions:
    """Options controlling JSON output."""

    indent: Optional[int] = None  # None renders compact JSON


def camel_case(name: str) -> str:
    """``copied_from_child`` -> ``copiedFromChild``."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _serialize(obj: Any) -> Any:
    """Recursively serialize dataclasses and primitives to JSON-safe types.

    Dataclass field names are rendered in camelCase; dict keys are kept.
    """
    if hasattr(obj, "__dataclass_fields__"):
        return {camel_case(k): _serialize(getattr(obj, k)) for k in obj.__dataclass_fields__}
    if isinstance(obj, list):
        return [_serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    return obj


def embed_data(snapshot: ProcessedSnapshot, options: RenderOptions | None = None) -> str:
    """Serialize a ProcessedSnapshot to a JSON string.

    Stack map keys become strings, as JSON requires.
    """
    if options is None:
        options = RenderOptions()
    if options.indent is None:
        return json.dumps(_serialize(snapshot), separators=(",", ":"))
    return json.dumps(_serialize(snapshot), indent=options.indent)
