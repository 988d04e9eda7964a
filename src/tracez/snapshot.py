"""Snapshot assembler — turns a registry snapshot into the tracez page model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from tracez.parser import RawSnapshot
from tracez.propagation import propagate_tags
from tracez.tree import ProcessedSpan, build_index

GOROUTINE_NOT_FOUND = (
    "Goroutine not found. Goroutine must have finished since the span was created."
)


@dataclass
class ProcessedSnapshot:
    """Open spans plus stack traces for the goroutines they reference."""

    spans: List[ProcessedSpan] = field(default_factory=list)
    # Keyed by ProcessedSpan.goroutine_id.
    stacks: Dict[int, str] = field(default_factory=dict)


def stitch_stacks(goroutine_ids: Iterable[int], stacks: Dict[int, str]) -> Dict[int, str]:
    """Return a copy of ``stacks`` with a placeholder for every missing goroutine."""
    result = dict(stacks)
    for gid in goroutine_ids:
        result.setdefault(gid, GOROUTINE_NOT_FOUND)
    return result


def process_snapshot(snapshot: RawSnapshot) -> ProcessedSnapshot:
    """Prepare a snapshot for presentation.

    Spans are indexed and their tags expanded, tags are propagated up and
    then down the span tree, and stacks are filled in for goroutines that
    have exited since the span was created.
    """
    index = build_index(snapshot)
    propagate_tags(index)
    stacks = stitch_stacks((s.goroutine_id for s in index.spans), snapshot.stacks)
    return ProcessedSnapshot(spans=index.spans, stacks=stacks)
