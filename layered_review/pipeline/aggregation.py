"""Merging of layer output into one comment per location.

Comments are grouped by (filename, line). Within a group, near-duplicate
comments (Jaccard similarity of their significant words above the threshold)
are collapsed, and only the most severe survivor is kept.
"""

from __future__ import annotations

import re
from typing import Dict, FrozenSet, List, Sequence, Tuple

from layered_review.models import ReviewComment

SIMILARITY_THRESHOLD = 0.6
MIN_WORD_LENGTH = 4

_NON_ALPHANUMERIC_RE = re.compile(r"[^a-z0-9\s]")


def significant_words(text: str) -> FrozenSet[str]:
    normalized = _NON_ALPHANUMERIC_RE.sub("", text.lower())
    return frozenset(word for word in normalized.split() if len(word) >= MIN_WORD_LENGTH)


def jaccard_similarity(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def are_similar(a: ReviewComment, b: ReviewComment, threshold: float = SIMILARITY_THRESHOLD) -> bool:
    return jaccard_similarity(significant_words(a.body), significant_words(b.body)) > threshold


def _more_severe(candidate: ReviewComment, current: ReviewComment) -> bool:
    return candidate.severity.rank > current.severity.rank


def cluster_similar(
    comments: Sequence[Tuple[int, ReviewComment]],
    threshold: float = SIMILARITY_THRESHOLD,
) -> List[Tuple[int, ReviewComment]]:
    """
    Collapse near-duplicates, one representative per cluster.

    Each comment joins the first earlier cluster it is similar to. A cluster is
    represented by its most severe member, the earliest one on ties.
    """
    clusters: List[Tuple[FrozenSet[str], Tuple[int, ReviewComment]]] = []
    for position, comment in comments:
        words = significant_words(comment.body)
        for i, (anchor_words, (_, representative)) in enumerate(clusters):
            if jaccard_similarity(words, anchor_words) > threshold:
                if _more_severe(comment, representative):
                    clusters[i] = (anchor_words, (position, comment))
                break
        else:
            clusters.append((words, (position, comment)))
    return [entry for _, entry in clusters]


def aggregate_comments(
    comments: Sequence[ReviewComment],
    threshold: float = SIMILARITY_THRESHOLD,
) -> List[ReviewComment]:
    """Reduce ``comments`` to at most one comment per (filename, line), keeping input order."""
    groups: Dict[Tuple[str, int], List[Tuple[int, ReviewComment]]] = {}
    for position, comment in enumerate(comments):
        groups.setdefault(comment.location, []).append((position, comment))

    survivors: List[Tuple[int, ReviewComment]] = []
    for group in groups.values():
        if len(group) == 1:
            survivors.append(group[0])
            continue
        representatives = cluster_similar(group, threshold)
        # most severe wins; equal severity goes to the earliest position
        survivors.append(min(representatives, key=lambda entry: (-entry[1].severity.rank, entry[0])))

    survivors.sort(key=lambda entry: entry[0])
    return [comment for _, comment in survivors]
