"""Topic pattern matching tests."""

from __future__ import annotations

import pytest

from custom_components.paradox_mqtt.topics import has_wildcard, topic_matches


@pytest.mark.parametrize(
    ("topic", "pattern", "expected"),
    [
        ("paradox/state", "paradox/state", True),
        ("paradox/state", "paradox/stat", False),
        ("paradox/state/x", "paradox/state", False),
        ("paradox.state", "paradox.state", True),
    ],
)
def test_exact_patterns_match_only_on_equality(topic: str, pattern: str, expected: bool) -> None:
    """Patterns without wildcards never partially match."""

    assert topic_matches(topic, pattern) is expected


def test_regex_metacharacters_are_literal() -> None:
    """A dot in a wildcard pattern is not a regex wildcard."""

    assert topic_matches("zones/a.b/open", "zones/+/open")
    assert not topic_matches("zonesXa/open", "zones.a/+")
    assert topic_matches("zones.a/open", "zones.a/+")


def test_single_level_wildcard_requires_same_segment_count() -> None:
    """`+` stands for exactly one non-empty segment."""

    assert topic_matches("paradox/zones/1/open", "paradox/zones/+/open")
    assert not topic_matches("paradox/zones/1/2/open", "paradox/zones/+/open")
    assert not topic_matches("paradox/zones//open", "paradox/zones/+/open")
    assert not topic_matches("paradox/zones/1/closed", "paradox/zones/+/open")


def test_multi_level_wildcard_matches_one_or_more_segments() -> None:
    """`#` swallows the remaining segments but needs at least one."""

    assert topic_matches("paradox/zones/1", "paradox/#")
    assert topic_matches("paradox/zones/1/open", "paradox/#")
    assert not topic_matches("paradox", "paradox/#")
    assert not topic_matches("other/zones", "paradox/#")


def test_empty_or_missing_pattern_never_matches() -> None:
    """Unset topics in the configuration match nothing."""

    assert not topic_matches("paradox/state", "")
    assert not topic_matches("paradox/state", None)
    assert not topic_matches("", "")


def test_has_wildcard() -> None:
    """Wildcard detection looks for either marker."""

    assert has_wildcard("a/+/b")
    assert has_wildcard("a/#")
    assert not has_wildcard("a/b")
