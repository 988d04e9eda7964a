"""Span indexer — flattens a snapshot and links spans by parent id."""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from tracez.parser import RawSnapshot, RawSpan
from tracez.tags import ProcessedTag, process_tags


@dataclass(frozen=True)
class ProcessedSpan:
    """A span prepared for the UI.

    Identity fields are frozen; ``tags`` is the only part that changes, and
    only by appending.
    """

    operation: str
    trace_id: int
    span_id: int
    parent_span_id: int
    start_time_unix_nano: int
    goroutine_id: int
    tags: List[ProcessedTag] = field(default_factory=list)


@dataclass
class SpanIndex:
    """Arena of processed spans plus id and parent lookups.

    Spans are addressed by their position in ``spans``. ``by_id`` maps a span
    id to its position (last occurrence wins for duplicate ids). ``children``
    maps a parent id to the positions of every span declaring it.
    """

    spans: List[ProcessedSpan] = field(default_factory=list)
    by_id: Dict[int, int] = field(default_factory=dict)
    children: Dict[int, List[int]] = field(default_factory=dict)

    def parent_of(self, idx: int) -> Optional[int]:
        """Position of the parent span, or None if the parent isn't indexed."""
        return self.by_id.get(self.spans[idx].parent_span_id)

    def ancestors(self, idx: int) -> Iterator[int]:
        """Yield strict ancestors of ``spans[idx]``, nearest first.

        Stops at the first parent id with no indexed span. A parent chain
        that loops back on itself is cut where it repeats.
        """
        visited = {idx}
        cur = idx
        while True:
            parent = self.parent_of(cur)
            if parent is None:
                return
            if parent in visited:
                warnings.warn(
                    f"Parent cycle through span_id {self.spans[parent].span_id}, "
                    "stopping ancestor walk",
                    stacklevel=2,
                )
                return
            visited.add(parent)
            yield parent
            cur = parent

    def descendants(self, idx: int) -> Iterator[int]:
        """Yield every transitive descendant of ``spans[idx]`` in depth-first order.

        Iterative, so depth is not limited by the interpreter's recursion
        limit. Each span is yielded at most once. Spans sharing a span id
        share one child bucket, which is expanded only once.
        """
        visited = {idx}
        expanded = {self.spans[idx].span_id}
        stack = list(reversed(self.children.get(self.spans[idx].span_id, [])))
        while stack:
            child = stack.pop()
            if child in visited:
                # Each span sits in one bucket, so only a cycle leads back here.
                warnings.warn(
                    f"Parent cycle through span_id {self.spans[child].span_id}, "
                    "stopping descendant walk",
                    stacklevel=2,
                )
                continue
            visited.add(child)
            yield child
            span_id = self.spans[child].span_id
            if span_id in expanded:
                continue
            expanded.add(span_id)
            stack.extend(reversed(self.children.get(span_id, [])))


def flatten_traces(snapshot: RawSnapshot) -> List[RawSpan]:
    """Concatenate the snapshot's traces, preserving order."""
    spans: List[RawSpan] = []
    for trace in snapshot.traces:
        spans.extend(trace)
    return spans


def process_span(raw: RawSpan, snapshot: RawSnapshot) -> ProcessedSpan:
    """Copy identity fields and expand the tags of a raw span."""
    return ProcessedSpan(
        operation=raw.operation,
        trace_id=raw.trace_id,
        span_id=raw.span_id,
        parent_span_id=raw.parent_span_id,
        start_time_unix_nano=raw.start_time_unix_nano,
        goroutine_id=raw.goroutine_id,
        tags=process_tags(raw.tags, snapshot),
    )


def build_index(snapshot: RawSnapshot) -> SpanIndex:
    """Process every span of the snapshot and index the results.

    - No span is dropped, duplicates included
    - Duplicate span_ids: ``by_id`` keeps the last occurrence
    - Every span lands in the child bucket of its declared parent id
    """
    index = SpanIndex()
    for raw in flatten_traces(snapshot):
        idx = len(index.spans)
        index.spans.append(process_span(raw, snapshot))
        if raw.span_id in index.by_id:
            warnings.warn(
                f"Duplicate span_id {raw.span_id!r} in trace {raw.trace_id!r}, "
                "keeping last occurrence for lookups",
                stacklevel=2,
            )
        index.by_id[raw.span_id] = idx
        index.children.setdefault(raw.parent_span_id, []).append(idx)
    return index
