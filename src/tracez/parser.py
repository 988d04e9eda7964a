"""JSON snapshot loader for the active-span registry dump."""

from __future__ import annotations

import gzip
import json
import sys
import warnings
from dataclasses import dataclass, field
from typing import IO, Any


@dataclass(frozen=True)
class RawSpan:
    """A single span as recorded by the tracer's active-span registry."""

    operation: str
    trace_id: int
    span_id: int
    parent_span_id: int
    start_time_unix_nano: int
    goroutine_id: int
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RawSnapshot:
    """Point-in-time capture of all open spans plus goroutine stacks.

    ``traces`` keeps the registry's order: one list of spans per trace.
    ``stacks`` only holds goroutines that were alive at capture time.
    """

    traces: list[list[RawSpan]] = field(default_factory=list)
    stacks: dict[int, str] = field(default_factory=dict)


# Accepted spellings per field, first match wins.
_FIELD_ALIASES = {
    "trace_id": ("trace_id", "traceId", "traceID"),
    "span_id": ("span_id", "spanId", "spanID"),
    "parent_span_id": ("parent_span_id", "parentSpanId", "parentSpanID"),
    "start_time_unix_nano": ("start_time_unix_nano", "startTimeUnixNano"),
    "goroutine_id": ("goroutine_id", "goroutineId", "goroutineID"),
}


def _lookup(raw: dict[str, Any], name: str, default: Any = 0) -> Any:
    for alias in _FIELD_ALIASES[name]:
        if alias in raw and raw[alias] is not None:
            return raw[alias]
    return default


def _require(raw: dict[str, Any], name: str) -> Any:
    value = _lookup(raw, name, default=None)
    if value is None:
        raise ValueError(f"missing {name}")
    return value


def _tag_text(value: Any) -> str:
    """Render a tag value as text, keeping JSON spelling for non-strings."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _to_uint(value: Any) -> int:
    """Convert an id given as int or decimal string to a non-negative int."""
    if isinstance(value, bool):
        raise TypeError("boolean is not a valid id")
    result = int(value)
    if result < 0:
        raise ValueError(f"negative id {result}")
    return result


def normalize_tags(tags: Any) -> dict[str, str]:
    """Coerce a raw tag mapping to ``dict[str, str]``.

    Non-dict input yields an empty mapping. ``None`` values become empty
    strings; other non-string values are rendered as JSON (``true``, ``1.5``).
    """
    if not isinstance(tags, dict):
        return {}
    return {str(k): _tag_text(v) for k, v in tags.items()}


def parse_span(raw: dict[str, Any]) -> RawSpan:
    """Convert a span dict into a RawSpan.

    Raises ValueError if ``span_id`` is missing, and TypeError or ValueError
    if an id or timestamp is not an integer.
    """
    operation = raw.get("operation", raw.get("name"))
    return RawSpan(
        operation="" if operation is None else str(operation),
        trace_id=_to_uint(_lookup(raw, "trace_id")),
        span_id=_to_uint(_require(raw, "span_id")),
        parent_span_id=_to_uint(_lookup(raw, "parent_span_id")),
        start_time_unix_nano=int(_lookup(raw, "start_time_unix_nano")),
        goroutine_id=_to_uint(_lookup(raw, "goroutine_id")),
        tags=normalize_tags(raw.get("tags")),
    )


def _parse_stacks(raw_stacks: Any) -> dict[int, str]:
    if not isinstance(raw_stacks, dict):
        return {}
    stacks: dict[int, str] = {}
    for gid, stack in raw_stacks.items():
        try:
            stacks[_to_uint(gid)] = str(stack)
        except (TypeError, ValueError) as exc:
            warnings.warn(f"Skipping stack for goroutine {gid!r}: {exc}", stacklevel=3)
    return stacks


def parse_snapshot(data: Any) -> RawSnapshot:
    """Build a RawSnapshot from a decoded JSON document.

    Raises ValueError if the document doesn't have a ``traces`` list.
    Malformed individual spans are skipped with a warning.
    """
    if not isinstance(data, dict):
        raise ValueError("Snapshot is not a JSON object")

    raw_traces = data.get("traces")
    if not isinstance(raw_traces, list):
        raise ValueError("Missing or invalid traces")

    traces: list[list[RawSpan]] = []
    for trace_num, raw_trace in enumerate(raw_traces):
        if not isinstance(raw_trace, list):
            warnings.warn(f"Skipping trace {trace_num}: not a list", stacklevel=2)
            continue
        spans: list[RawSpan] = []
        for raw in raw_trace:
            if not isinstance(raw, dict):
                warnings.warn(f"Skipping non-object span in trace {trace_num}", stacklevel=2)
                continue
            try:
                spans.append(parse_span(raw))
            except (TypeError, ValueError) as exc:
                warnings.warn(
                    f"Skipping malformed span in trace {trace_num}: {exc}",
                    stacklevel=2,
                )
        traces.append(spans)

    return RawSnapshot(traces=traces, stacks=_parse_stacks(data.get("stacks")))


def parse_stream(stream: IO) -> RawSnapshot:
    """Parse a snapshot from a text or binary stream.

    Raises ValueError on malformed JSON.
    """
    content = stream.read()
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed snapshot JSON: {exc}") from exc
    return parse_snapshot(data)


def parse_file(path: str) -> RawSnapshot:
    """Parse a snapshot file (plain or gzip-compressed).

    Supports:
    - Plain text ``.json`` files
    - Gzip-compressed ``.json.gz`` files
    - ``-`` for stdin
    """
    if path == "-":
        return parse_stream(sys.stdin)

    if path.endswith(".gz"):
        with gzip.open(path, "rt", encoding="utf-8") as f:
            return parse_stream(f)

    with open(path, encoding="utf-8") as f:
        return parse_stream(f)
