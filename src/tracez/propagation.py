"""Tag propagation between ancestors and descendants of the span tree.

Eligibility is keyed off the ``copied_from_child`` / ``inherited`` markers,
which are only ever False on a tag's origin span. Each original tag therefore
fans out at most once per direction, whatever order spans are visited in.
The upward pass must finish before the downward pass starts.
"""

from __future__ import annotations

from dataclasses import replace

from tracez.tags import ProcessedTag
from tracez.tree import SpanIndex


def upward_copy(tag: ProcessedTag) -> ProcessedTag:
    """Copy of ``tag`` as seen on an ancestor. It never propagates again."""
    return replace(tag, copied_from_child=True, inherit=False)


def inherited_copy(tag: ProcessedTag) -> ProcessedTag:
    """Copy of ``tag`` as seen on a descendant, hidden by default."""
    return replace(tag, propagate_up=False, inherited=True, hidden=True)


def propagate_up(index: SpanIndex) -> None:
    """Copy every original ``propagate_up`` tag to all strict ancestors."""
    for idx, span in enumerate(index.spans):
        for tag in list(span.tags):
            if not tag.propagate_up or tag.copied_from_child:
                continue
            copy = upward_copy(tag)
            for ancestor in index.ancestors(idx):
                index.spans[ancestor].tags.append(copy)


def propagate_down(index: SpanIndex) -> None:
    """Copy every original ``inherit`` tag to all transitive descendants."""
    for idx, span in enumerate(index.spans):
        for tag in list(span.tags):
            if not tag.inherit or tag.inherited:
                continue
            copy = inherited_copy(tag)
            for descendant in index.descendants(idx):
                index.spans[descendant].tags.append(copy)


def propagate_tags(index: SpanIndex) -> None:
    propagate_up(index)
    propagate_down(index)
