"""Tests for citation extraction."""

from vaultmind.retriever.citations import extract_citations


def test_distinct_in_first_seen_order():
    answer = "See [File: b.md] and [File: a.md], also [File: b.md]."
    assert extract_citations(answer) == ["b.md", "a.md"]


def test_names_with_folders_and_spaces():
    answer = "From [File: work/Q3 plan.md]:"
    assert extract_citations(answer) == ["work/Q3 plan.md"]


def test_unterminated_marker_ignored():
    assert extract_citations("cut off [File: a.md") == []


def test_empty_and_uncited_answers():
    assert extract_citations("") == []
    assert extract_citations("No notes mentioned here.") == []


def test_names_kept_verbatim():
    assert extract_citations("[File:  padded.md ]") == [" padded.md "]
