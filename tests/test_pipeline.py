# tests/test_pipeline.py

import dataclasses
from datetime import date

from smarttag.detect_base import make_tag
from smarttag.models import CandidateTag, Span, TagKind
from smarttag.config import NerConfig, load_config
from smarttag.pipeline import TagEngine, build_engine, parse_text
from smarttag.schemas import ParseResultSchema
from smarttag.detect_priority import PriorityStrategy

from conftest import FIXED_NOW


def _kinds(result, kind):
    return [t for t in result.tags if t.kind is kind]


def test_empty_and_noise_inputs_yield_empty_results(engine):
    for text in ["", "   ", "zzqx 9931 ###"]:
        res = engine.parse(text)
        assert res.tags == []
        assert res.conflicts == []
        assert res.confidence == 1.0
        assert res.clean_text == text.strip()


def test_possessive_name_is_tagged_once(engine):
    res = engine.parse("Email John's about the schedule")
    people = _kinds(res, TagKind.PERSON)
    assert len(people) == 1
    assert people[0].display_text == "John"
    assert people[0].original_text == "John's"


def test_common_noun_possessive_is_not_a_person(engine):
    res = engine.parse("Review company's policy update")
    assert _kinds(res, TagKind.PERSON) == []


def test_categories_coexist(engine):
    res = engine.parse("Finish project for class")
    values = {t.value for t in _kinds(res, TagKind.LABEL)}
    assert {"work", "education"} <= values


def test_priority_normalization(engine):
    for text in ["p1 fix critical bug", "high priority bugfix"]:
        priorities = _kinds(engine.parse(text), TagKind.PRIORITY)
        assert len(priorities) == 1
        assert priorities[0].value == "high"
        assert priorities[0].display_text == "High Priority"


def test_third_friday_of_next_month(engine):
    res = engine.parse("the third friday of next month")
    dates = _kinds(res, TagKind.DATE)
    assert len(dates) == 1
    assert _kinds(res, TagKind.TIME) == []
    value = dates[0].value
    assert value.weekday() == 4
    assert (value.day - 1) // 7 == 2
    assert value.date() == date(2026, 11, 20)


def test_ordinal_phrase_is_removed_from_clean_text(engine):
    res = engine.parse("Pay rent on the third friday of next month")
    assert res.clean_text.startswith("Pay")
    assert "friday" not in res.clean_text
    assert len(_kinds(res, TagKind.DATE)) == 1


def test_address_precision(engine):
    res = engine.parse("Meet at 123 Main St, Springfield, IL 62704")
    locations = _kinds(res, TagKind.LOCATION)
    assert locations
    assert "123 Main St" in locations[0].display_text


def test_spans_point_into_the_input(engine):
    samples = [
        "Email John's about the schedule p1",
        "Lunch at Central Park tomorrow",
        "meet @mike at cafe #launch",
        "Buy groceries for mom asap",
        "Meet at 123 Main St, Springfield, IL 62704",
    ]
    for text in samples:
        for tag in engine.parse(text).tags:
            assert 0 <= tag.span.start < tag.span.end <= len(text)
            assert tag.original_text == text[tag.span.start:tag.span.end]


def test_clean_text_does_not_resurrect_removed_tags(engine):
    first = engine.parse("Email John's about the schedule p1")
    assert first.clean_text == "about the schedule"

    second = engine.parse(first.clean_text)
    assert _kinds(second, TagKind.PERSON) == []
    assert _kinds(second, TagKind.PRIORITY) == []


def test_parse_is_deterministic(engine):
    text = "call John Smith next week about the budget p2 at Central Park"
    a = ParseResultSchema.from_result(engine.parse(text)).signature()
    b = ParseResultSchema.from_result(engine.parse(text)).signature()
    assert a == b


def test_tags_are_ordered_by_start(engine):
    res = engine.parse("p1 email Anna about the report at the office")
    starts = [t.span.start for t in res.tags]
    assert starts == sorted(starts)


def test_confidence_is_mean_of_kept_tags(engine):
    res = engine.parse("p1 fix critical bug")
    assert res.tags
    expected = sum(t.confidence for t in res.tags) / len(res.tags)
    assert abs(res.confidence - expected) < 1e-9


class _OutOfBoundsStrategy:
    id = "broken-parser"
    name = "Broken"
    priority = 1

    def test(self, text):
        return True

    def parse(self, text):
        return [
            CandidateTag(
                kind=TagKind.LABEL,
                value="bogus",
                display_text="Bogus",
                span=Span(0, len(text) + 10),
                original_text=text,
                confidence=0.9,
                source=self.id,
            )
        ]


class _InvertedSpanStrategy(_OutOfBoundsStrategy):
    id = "inverted-parser"

    def parse(self, text):
        return [make_tag(text, 5, 2, TagKind.LABEL, "bogus", "Bogus", 0.9, self.id)]


def test_contract_violations_are_dropped(config):
    engine = TagEngine(
        [
            _OutOfBoundsStrategy(),
            _InvertedSpanStrategy(),
            PriorityStrategy(config.priority_patterns),
        ]
    )
    res = engine.parse("fix the build asap")
    assert [t.value for t in res.tags] == ["high"]


def test_strategy_order_ignores_registration_order(config):
    a = PriorityStrategy(config.priority_patterns, priority=8)
    b = _OutOfBoundsStrategy()
    assert TagEngine([a, b]).strategies == TagEngine([b, a]).strategies
    assert TagEngine([b, a]).strategies[0] is a


def test_parse_text_uses_default_config():
    res = parse_text("", now=lambda: FIXED_NOW)
    assert res.tags == []
    assert res.confidence == 1.0


def test_shipped_config_builds_a_working_engine():
    config = dataclasses.replace(load_config(), ner=NerConfig(model=None))
    engine = build_engine(config, now=lambda: FIXED_NOW)

    [place] = _kinds(engine.parse("Lunch on Main Street"), TagKind.LOCATION)
    assert place.value == "Main Street"
    assert place.original_text == "on Main Street"

    [person] = _kinds(engine.parse("Email John's about the schedule"), TagKind.PERSON)
    assert person.display_text == "John"
    assert _kinds(engine.parse("Review company's policy update"), TagKind.PERSON) == []
    labels = {t.value for t in _kinds(engine.parse("Finish project for class"), TagKind.LABEL)}
    assert {"work", "education"} <= labels
    [priority] = _kinds(engine.parse("high priority bugfix"), TagKind.PRIORITY)
    assert priority.display_text == "High Priority"
    [address] = _kinds(engine.parse("Meet at 123 Main St, Springfield, IL 62704"), TagKind.LOCATION)
    assert "123 Main St" in address.display_text


def test_parse_text_with_default_config_tags_locations():
    res = parse_text("Lunch on Main Street", now=lambda: FIXED_NOW)
    locations = _kinds(res, TagKind.LOCATION)
    assert any("Main Street" in t.value for t in locations)
