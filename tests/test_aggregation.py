from __future__ import annotations

from layered_review.models import ReviewComment, Severity
from layered_review.pipeline import aggregate_comments, cluster_similar, jaccard_similarity, significant_words
from layered_review.pipeline.aggregation import are_similar


def _comment(body: str, severity: Severity = Severity.INFO, *, filename: str = "a.ts", line: int = 1, source: str = "x") -> ReviewComment:
    return ReviewComment(filename=filename, line=line, body=body, severity=severity, source=source)


def test_significant_words() -> None:
    assert significant_words("Possible hard-coded SECRET; use env!") == frozenset({"possible", "hardcoded", "secret"})


def test_jaccard_similarity() -> None:
    assert jaccard_similarity(frozenset({"alpha", "bravo"}), frozenset({"alpha", "bravo"})) == 1.0
    assert jaccard_similarity(frozenset({"alpha", "bravo"}), frozenset({"alpha", "charlie"})) == 1 / 3
    assert jaccard_similarity(frozenset(), frozenset()) == 0.0


def test_similarity_threshold_is_exclusive() -> None:
    base = _comment("alpha bravo charlie")

    assert not are_similar(base, _comment("alpha bravo charlie delta echo"))
    assert are_similar(_comment("alpha bravo charlie delta"), _comment("alpha bravo charlie delta echo"))


def test_single_comment_passes_through() -> None:
    comment = _comment("Deeply nested code")

    assert aggregate_comments([comment]) == [comment]


def test_similar_comments_collapse_to_most_severe() -> None:
    info = _comment("Possible hardcoded secret detected in this assignment", Severity.INFO, source="ai")
    error = _comment("[no-hardcoded-secrets] Possible hardcoded secret detected in this assignment", Severity.ERROR, source="pattern")

    assert aggregate_comments([info, error]) == [error]


def test_dissimilar_comments_form_separate_clusters() -> None:
    secret = _comment("Possible hardcoded secret detected here", Severity.WARNING)
    length = _comment("Function is too long, consider extracting helpers", Severity.ERROR)

    clusters = cluster_similar(list(enumerate([secret, length])))

    assert [c for _, c in clusters] == [secret, length]
    assert aggregate_comments([secret, length]) == [length]


def test_severity_ties_keep_first_seen() -> None:
    first = _comment("Unchecked return value from database call", Severity.WARNING)
    second = _comment("Loop bound looks off by one iteration", Severity.WARNING)

    assert aggregate_comments([first, second]) == [first]


def test_different_locations_are_independent() -> None:
    a = _comment("Deeply nested code", line=1)
    b = _comment("Deeply nested code", line=2)
    c = _comment("Deeply nested code", filename="b.ts", line=1)

    assert aggregate_comments([a, b, c]) == [a, b, c]


def test_result_follows_position_of_survivor() -> None:
    a_info = _comment("Consider renaming this variable", Severity.INFO, filename="a.ts", line=1)
    b_warning = _comment("Function is very long", Severity.WARNING, filename="b.ts", line=2)
    a_error = _comment("Null dereference when user missing", Severity.ERROR, filename="a.ts", line=1)

    assert aggregate_comments([a_info, b_warning, a_error]) == [b_warning, a_error]


def test_empty_input() -> None:
    assert aggregate_comments([]) == []


def test_severity_tie_across_clusters_keeps_earliest() -> None:
    first = _comment("Unchecked database return value here", Severity.WARNING, source="a")
    loop = _comment("Loop bound looks wrong near iteration", Severity.ERROR, source="b")
    repeat = _comment("Unchecked database return value here indeed", Severity.ERROR, source="c")

    assert aggregate_comments([first, loop, repeat]) == [loop]
