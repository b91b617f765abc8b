"""Unit tests for narration text cleaning rules."""

from __future__ import annotations

from chaptercast.text.cleaners import (
    CollapseWhitespace,
    ReplaceTermMarkers,
    TextCleaner,
)


def test_term_markers_use_display_text_or_identifier() -> None:
    """`{term:id|display}` speaks the display text, `{term:id}` the identifier."""

    rule = ReplaceTermMarkers()

    assert rule.apply("See {term:entropy|disorder} and {term:order}.") == (
        "See disorder and order."
    )


def test_cleaner_removes_references_and_emphasis_tags() -> None:
    """Reference markers vanish and emphasis tags keep only their content."""

    cleaner = TextCleaner()

    cleaned = cleaner.clean(
        "The <em>first</em> law{ref:law-1}   is <strong>simple</strong>.\n"
    )

    assert cleaned == "The first law is simple."


def test_cleaner_returns_empty_string_for_marker_only_text() -> None:
    """Blocks made only of markers and whitespace clean to nothing."""

    cleaner = TextCleaner()

    assert cleaner.clean("  {ref:fig-2}  <em></em> ") == ""
    assert cleaner.clean(None) == ""


def test_cleaner_accepts_custom_rule_sequence() -> None:
    """Custom rule lists replace the default sequence."""

    cleaner = TextCleaner(rules=[CollapseWhitespace()])

    assert cleaner.clean("  <em>kept</em>\t tags ") == "<em>kept</em> tags"
