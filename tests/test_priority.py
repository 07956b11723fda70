# tests/test_priority.py

import pytest

from smarttag.detect_priority import PriorityStrategy, adjust_confidence, display_for


@pytest.fixture
def priority(config):
    return PriorityStrategy(config.priority_patterns)


def test_explicit_level_gets_boost(priority):
    [tag] = priority.parse("p1 fix login")
    assert tag.value == "high"
    assert tag.original_text == "p1"
    assert tag.confidence == pytest.approx(0.98)


def test_keyword_cue(priority):
    [tag] = priority.parse("urgent: renew passport")
    assert tag.value == "high"
    assert tag.confidence == pytest.approx(0.85)


def test_highest_severity_wins(priority):
    [tag] = priority.parse("Fix bug asap p3")
    assert tag.value == "high"
    assert tag.original_text == "asap"

    [tag] = priority.parse("no rush, p2")
    assert tag.value == "medium"


def test_repeated_cues_consolidate_to_earliest(priority):
    tags = priority.parse("urgent urgent asap")
    assert len(tags) == 1
    assert tags[0].span.start == 0


def test_cue_inside_a_word_does_not_match(priority):
    assert not priority.test("highway trip")
    assert priority.parse("highway trip") == []


def test_adjust_confidence():
    long_text = "p1" + " filler" * 10
    # short cue in a long title, then the explicit-level boost
    assert adjust_confidence(0.95, 0, 2, long_text) == pytest.approx(0.86)
    # multi-word cue
    assert adjust_confidence(0.85, 0, 13, "high priority task") == pytest.approx(0.9)
    # glued to surrounding letters on both sides
    assert adjust_confidence(0.75, 1, 5, "xhighx") == pytest.approx(0.75 * 0.7 * 0.7)


def test_display_for():
    assert display_for("medium") == "Medium Priority"
