# tests/test_resolve.py

from datetime import datetime

from smarttag.detect_base import make_tag
from smarttag.models import TagKind
from smarttag.resolve import resolve_tags

TEXT = "abcdefghijklmnopqrstuvwxyz0123456789"


def _tag(start, end, kind, value, confidence, source="entity-parser", group=None):
    return make_tag(TEXT, start, end, kind, value, str(value), confidence, source, group)


def test_labels_coexist_with_overlapping_tags():
    label = _tag(0, 3, TagKind.LABEL, "work", 0.6)
    person = _tag(0, 5, TagKind.PERSON, "Abc", 0.7)
    kept, conflicts = resolve_tags([label, person])
    assert {t.id for t in kept} == {label.id, person.id}
    assert conflicts == []


def test_one_label_per_category():
    weak = _tag(0, 3, TagKind.LABEL, "work", 0.6)
    strong = _tag(10, 15, TagKind.LABEL, "work", 0.8)
    kept, _ = resolve_tags([weak, strong])
    assert [t.id for t in kept] == [strong.id]


def test_higher_confidence_wins_and_conflict_is_recorded():
    person = _tag(0, 5, TagKind.PERSON, "Abc", 0.9)
    place = _tag(2, 6, TagKind.LOCATION, "cdef", 0.7)
    kept, conflicts = resolve_tags([place, person])
    assert [t.id for t in kept] == [person.id]
    [conflict] = conflicts
    assert conflict.resolved.id == person.id
    assert {t.id for t in conflict.tags} == {person.id, place.id}
    assert (conflict.span.start, conflict.span.end) == (0, 6)


def test_strategy_priority_breaks_confidence_ties():
    priorities = {"datetime-parser": 10, "entity-parser": 6}
    when = _tag(0, 5, TagKind.DATE, datetime(2026, 11, 20), 0.8, source="datetime-parser")
    place = _tag(0, 5, TagKind.LOCATION, "abcde", 0.8, source="entity-parser")
    kept, conflicts = resolve_tags([place, when], priorities)
    assert [t.id for t in kept] == [when.id]
    assert conflicts[0].resolved.id == when.id


def test_earlier_start_then_shorter_span():
    early = _tag(0, 6, TagKind.LOCATION, "abcdef", 0.8)
    late = _tag(2, 6, TagKind.PERSON, "Cdef", 0.8)
    kept, _ = resolve_tags([late, early])
    assert [t.id for t in kept] == [early.id]

    short = _tag(0, 3, TagKind.PERSON, "Abc", 0.8)
    long = _tag(0, 6, TagKind.LOCATION, "abcdef", 0.8)
    kept, _ = resolve_tags([long, short])
    assert [t.id for t in kept] == [short.id]


def test_exact_duplicates_collapse_silently():
    a = _tag(0, 5, TagKind.LOCATION, "abcde", 0.7, source="entity-parser")
    b = _tag(0, 5, TagKind.LOCATION, "ABCDE", 0.8, source="other-parser")
    kept, conflicts = resolve_tags([a, b])
    assert [t.id for t in kept] == [b.id]
    assert conflicts == []


def test_same_person_over_overlapping_text_merges():
    possessive = _tag(0, 6, TagKind.PERSON, "John", 0.7)
    contextual = _tag(0, 4, TagKind.PERSON, "john", 0.72)
    kept, conflicts = resolve_tags([possessive, contextual])
    assert [t.id for t in kept] == [contextual.id]
    assert conflicts == []


def test_exact_tie_is_unresolved_and_dropped():
    person = _tag(0, 5, TagKind.PERSON, "Abcde", 0.8)
    place = _tag(0, 5, TagKind.LOCATION, "abcde", 0.8)
    elsewhere = _tag(20, 24, TagKind.PROJECT, "uvwx", 0.9)
    kept, conflicts = resolve_tags([person, place, elsewhere])
    assert [t.id for t in kept] == [elsewhere.id]
    [conflict] = conflicts
    assert conflict.resolved is None
    assert {t.id for t in conflict.tags} == {person.id, place.id}


def test_range_tags_stand_or_fall_together():
    start = _tag(0, 8, TagKind.DATE, datetime(2026, 11, 20), 0.9, source="datetime-parser", group="g1")
    until = _tag(0, 8, TagKind.DATE, datetime(2026, 11, 22), 0.9, source="datetime-parser", group="g1")
    place = _tag(4, 10, TagKind.LOCATION, "efghij", 0.7)
    kept, conflicts = resolve_tags([place, start, until])
    assert {t.id for t in kept} == {start.id, until.id}
    [conflict] = conflicts
    assert len(conflict.tags) == 3


def test_chain_keeps_non_overlapping_loser_of_loser():
    a = _tag(0, 4, TagKind.PERSON, "Abcd", 0.9)
    b = _tag(3, 8, TagKind.LOCATION, "defgh", 0.8)
    c = _tag(7, 10, TagKind.PROJECT, "hij", 0.7)
    kept, conflicts = resolve_tags([c, b, a])
    assert [t.id for t in kept] == [a.id, c.id]
    [conflict] = conflicts
    assert conflict.resolved.id == a.id
    assert {t.id for t in conflict.tags} == {a.id, b.id}


def test_output_is_sorted_by_start():
    tags = [
        _tag(20, 24, TagKind.PROJECT, "uvwx", 0.9),
        _tag(0, 3, TagKind.LABEL, "work", 0.6),
        _tag(10, 12, TagKind.PERSON, "Kl", 0.7),
    ]
    kept, _ = resolve_tags(tags)
    assert [t.span.start for t in kept] == [0, 10, 20]


def test_same_kind_on_same_span_is_a_duplicate_whatever_the_value():
    contextual = _tag(0, 4, TagKind.PERSON, "Abcd", 0.72)
    ner = _tag(0, 4, TagKind.PERSON, "A. Bcd", 0.8, source="other-parser")
    kept, conflicts = resolve_tags([contextual, ner])
    assert [t.id for t in kept] == [ner.id]
    assert conflicts == []
