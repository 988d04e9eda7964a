"""Tag enrichment — display metadata and lock-holder resolution for span tags."""

from __future__ import annotations

from dataclasses import dataclass

from tracez.parser import RawSnapshot

# Tags rendered greyed-out unless the operator expands them.
HIDDEN_TAGS = frozenset({"_unfinished", "_verbose", "_dropped", "node", "store"})

LOCK_HOLDER_TXN_TAG = "lock_holder_txn"
STATEMENT_TAG = "statement"
TXN_TAG = "txn"

SQL_TXN_OPERATION = "sql txn"
SQL_QUERY_OPERATION = "sql query"

TXN_ID_DISPLAY_LEN = 8


@dataclass(frozen=True)
class ProcessedTag:
    """A span tag expanded for presentation.

    Instances are immutable: propagation hands out flagged copies made with
    ``dataclasses.replace`` and never touches the tag on its origin span.
    """

    key: str
    val: str
    caption: str = ""
    link: str = ""
    hidden: bool = False
    # Rendered with an exclamation mark.
    highlight: bool = False
    # Passed down to children, recursively.
    inherit: bool = False
    # Arrived from an ancestor.
    inherited: bool = False
    propagate_up: bool = False
    # Arrived from a descendant.
    copied_from_child: bool = False


@dataclass(frozen=True)
class TxnState:
    """What the snapshot tells us about a SQL transaction."""

    found: bool
    cur_query: str = ""


def find_txn_state(txn_id: str, snapshot: RawSnapshot) -> TxnState:
    """Look through a snapshot for the span of the given transaction.

    The first ``sql txn`` span whose ``txn`` tag matches wins. The current
    query is the first ``sql query`` span of the same trace, whether or not
    it descends from the transaction span.
    """
    for trace in snapshot.traces:
        for span in trace:
            if span.operation != SQL_TXN_OPERATION or span.tags.get(TXN_TAG) != txn_id:
                continue
            for other in trace:
                if other.operation == SQL_QUERY_OPERATION:
                    return TxnState(found=True, cur_query=other.tags.get(STATEMENT_TAG, ""))
            return TxnState(found=True)
    return TxnState(found=False)


def _lock_holder_caption(state: TxnState) -> str:
    if not state.found:
        return "blocked on unknown transaction"
    if state.cur_query:
        return "blocked on txn currently running query: " + state.cur_query
    return "blocked on idle txn"


def process_tag(key: str, val: str, snapshot: RawSnapshot) -> ProcessedTag:
    """Expand a single tag.

    Marks hidden tags, marks ``statement`` for propagation in both directions
    and expands ``lock_holder_txn`` with the state of the holder transaction.
    """
    hidden = key in HIDDEN_TAGS

    if key == LOCK_HOLDER_TXN_TAG:
        # Short ids are kept whole.
        txn_id_short = val[:TXN_ID_DISPLAY_LEN]
        return ProcessedTag(
            key=key,
            val=txn_id_short,
            caption=_lock_holder_caption(find_txn_state(val, snapshot)),
            link=txn_id_short,
            hidden=hidden,
            highlight=True,
            propagate_up=True,
        )
    if key == STATEMENT_TAG:
        return ProcessedTag(key=key, val=val, hidden=hidden, inherit=True, propagate_up=True)
    return ProcessedTag(key=key, val=val, hidden=hidden)


def sorted_tag_items(tags: dict[str, str]) -> list[tuple[str, str]]:
    """Return tag items ordered by key."""
    return sorted(tags.items(), key=lambda item: item[0])


def process_tags(tags: dict[str, str], snapshot: RawSnapshot) -> list[ProcessedTag]:
    """Expand all tags of a span, sorted by key."""
    return [process_tag(k, v, snapshot) for k, v in sorted_tag_items(tags)]
