"""
Pytest configuration and Hypothesis strategies for property-based testing.

This module provides custom Hypothesis strategies for generating registry
snapshots: tag maps, span forests with known parent links, and full
RawSnapshot values split over several traces.
"""

from pathlib import Path

from hypothesis import strategies as st

from tracez.parser import RawSnapshot, RawSpan

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Parent id that never resolves to a span in generated forests.
DANGLING_PARENT = 999_999

PLAIN_TAG_KEYS = ["result", "range", "txn", "sql.rows", "attempt", "intent"]
HIDDEN_TAG_KEYS = ["_unfinished", "_verbose", "_dropped", "node", "store"]
PROPAGATING_TAG_KEYS = ["statement"]
# Captions depend on which trace the holder txn lands in.
LOCK_TAG_KEYS = ["lock_holder_txn"]

# ============================================================================
# Basic Building Blocks
# ============================================================================


def make_span(
    span_id: int = 1,
    parent_span_id: int = 0,
    operation: str = "span",
    trace_id: int = 1,
    goroutine_id: int = 1,
    start_time_unix_nano: int = 0,
    **tags: str,
) -> RawSpan:
    """Build a RawSpan with sensible defaults; keyword arguments become tags."""
    return RawSpan(
        operation=operation,
        trace_id=trace_id,
        span_id=span_id,
        parent_span_id=parent_span_id,
        start_time_unix_nano=start_time_unix_nano,
        goroutine_id=goroutine_id,
        tags=dict(tags),
    )


@st.composite
def tag_value(draw) -> str:
    """Generate a short printable tag value."""
    return draw(st.text(alphabet="abcdef0123456789 -=*", max_size=24))


@st.composite
def tag_map(draw, keys: list[str] | None = None, max_size: int = 4) -> dict[str, str]:
    """
    Generate a span's tag mapping.

    Args:
        keys: Candidate keys (default: plain, hidden and propagating keys)
        max_size: Maximum number of tags on the span

    Returns:
        Dict of tag key to tag value
    """
    if keys is None:
        keys = PLAIN_TAG_KEYS + HIDDEN_TAG_KEYS + PROPAGATING_TAG_KEYS + LOCK_TAG_KEYS
    return draw(st.dictionaries(st.sampled_from(keys), tag_value(), max_size=max_size))


# ============================================================================
# Span Forest Strategies
# ============================================================================


@st.composite
def span_forest(
    draw,
    max_spans: int = 20,
    allow_dangling: bool = True,
    keys: list[str] | None = None,
) -> list[RawSpan]:
    """
    Generate spans forming one or more trees.

    Span ids are 1..n and every parent id is either 0, a smaller span id, or
    (when allowed) DANGLING_PARENT. Parent links therefore never form a cycle.

    Args:
        max_spans: Upper bound on the number of spans
        allow_dangling: If True, some spans point at a parent not in the forest
        keys: Candidate tag keys passed to tag_map

    Returns:
        List of RawSpan in id order
    """
    count = draw(st.integers(min_value=1, max_value=max_spans))
    spans: list[RawSpan] = []
    for span_id in range(1, count + 1):
        parents = [0] + list(range(1, span_id))
        if allow_dangling:
            parents.append(DANGLING_PARENT)
        spans.append(
            RawSpan(
                operation=draw(st.sampled_from(["op", "kv", "sql txn", "sql query"])),
                trace_id=1,
                span_id=span_id,
                parent_span_id=draw(st.sampled_from(parents)),
                start_time_unix_nano=span_id * 1000,
                goroutine_id=draw(st.integers(min_value=1, max_value=8)),
                tags=draw(tag_map(keys=keys)),
            )
        )
    return spans


@st.composite
def split_into_traces(draw, spans: list[RawSpan]) -> list[list[RawSpan]]:
    """Shuffle spans and split them into up to four consecutive traces."""
    shuffled = draw(st.permutations(spans))
    cuts = sorted(draw(st.lists(st.integers(0, len(shuffled)), max_size=3)))
    bounds = [0] + cuts + [len(shuffled)]
    return [list(shuffled[lo:hi]) for lo, hi in zip(bounds, bounds[1:])]


@st.composite
def raw_snapshot(draw, max_spans: int = 20, keys: list[str] | None = None) -> RawSnapshot:
    """
    Generate a complete RawSnapshot.

    Returns:
        RawSnapshot whose stacks cover a random subset of goroutines 1..8
    """
    spans = draw(span_forest(max_spans=max_spans, keys=keys))
    traces = draw(split_into_traces(spans))
    stacks = draw(
        st.dictionaries(
            st.integers(min_value=1, max_value=8),
            st.text(min_size=1, max_size=40),
            max_size=8,
        )
    )
    return RawSnapshot(traces=traces, stacks=stacks)
