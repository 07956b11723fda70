# smarttag/detect_dates.py

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, FrozenSet, List, Optional, Protocol

import dateparser
import regex as re
from dateparser.search import search_dates

from smarttag.detect_base import make_tag, overlaps_any
from smarttag.models import CandidateTag, InvalidSpanError, Span, TagKind, new_tag_id

logger = logging.getLogger(__name__)


COMPONENTS = ("year", "month", "day", "hour", "minute")

MONTHS = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]
WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
ORDINALS = {"first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5}

_MONTH_ABBR = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sept?|oct|nov|dec)"
_FULL_MONTH = r"(?:january|february|march|april|june|july|august|september|october|november|december)"
_WEEKDAY = r"(?:" + "|".join(WEEKDAYS) + r")"
_NUMBER_WORD = r"(?:\d+|a|an|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve)"
_UNIT = r"(?:minutes?|hours?|days?|weeks?|months?|years?)"

CLOCK_RE = re.compile(
    r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm|a\.m\.|p\.m\.)(?!\w)|\b\d{1,2}:\d{2}\b|\b(?:noon|midnight)\b",
    re.IGNORECASE,
)
MINUTE_RE = re.compile(r"\d:\d{2}(?!\d)|\b(?:noon|midnight)\b", re.IGNORECASE)
ISO_DATE_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
NUMERIC_DATE_RE = re.compile(r"\b\d{1,2}[/-]\d{1,2}(?:[/-](\d{2,4}))?\b")
YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
CASUAL_DAY_RE = re.compile(r"\b(?:today|tonight|tomorrow|yesterday)\b", re.IGNORECASE)
MONTH_NAME_RE = re.compile(rf"\b(?:{_FULL_MONTH}\b|{_MONTH_ABBR}\.?(?=\s+\d))", re.IGNORECASE)
MONTH_DAY_RE = re.compile(
    rf"\b(?:{_FULL_MONTH}|{_MONTH_ABBR})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?\b"
    rf"|\b\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?(?:{_FULL_MONTH}|{_MONTH_ABBR})\b",
    re.IGNORECASE,
)

# A recognizer hit must contain one of these to count as a date/time.
ANCHOR_RE = re.compile(
    "|".join(
        [
            rf"\b{_FULL_MONTH}\b",
            rf"\b{_MONTH_ABBR}\.?\s+\d{{1,2}}\b",
            rf"\b{_WEEKDAY}\b",
            r"\b(?:today|tonight|tomorrow|yesterday|noon|midnight)\b",
            r"\b(?:next|this|last|coming)\s+(?:week|weekend|month|year)\b",
            rf"\bin\s+{_NUMBER_WORD}\s+{_UNIT}\b",
            rf"\b{_NUMBER_WORD}\s+{_UNIT}\s+(?:from\s+now|ago|later)\b",
            CLOCK_RE.pattern,
            ISO_DATE_RE.pattern,
            NUMERIC_DATE_RE.pattern,
        ]
    ),
    re.IGNORECASE,
)
MIDNIGHT_RE = re.compile(r"\bmidnight\b|\b12(?::00)?\s*(?:am|a\.m\.)(?!\w)", re.IGNORECASE)
WEEKDAY_RE = re.compile(rf"\b{_WEEKDAY}\b", re.IGNORECASE)
LONE_AT_RE = re.compile(r"(?:^|\s)(?:at|@)(?=\s|$)", re.IGNORECASE)
RANGE_JOINER_RE = re.compile(r"\s*(?:-|–|to|until|till|through|thru)\s*", re.IGNORECASE)

ORDINAL_WEEKDAY_RE = re.compile(
    r"\b(?:on\s+)?(?:the\s+)?(first|second|third|fourth|fifth|last)\s+"
    rf"({_WEEKDAY})\s+(?:of|in)\s+"
    r"(next month|this month|" + "|".join(MONTHS) + r")\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class DateMatch:
    text: str
    index: int
    start: datetime
    end: Optional[datetime] = None
    certain: FrozenSet[str] = frozenset()

    @property
    def end_index(self) -> int:
        return self.index + len(self.text)


class DateRecognizer(Protocol):
    def may_match(self, text: str) -> bool:
        ...

    def find(self, text: str, now: datetime) -> List[DateMatch]:
        ...


def certain_components(phrase: str) -> FrozenSet[str]:
    """Date/time components stated explicitly in a matched phrase."""
    found = set()
    if CASUAL_DAY_RE.search(phrase) or ISO_DATE_RE.search(phrase):
        found.update(("year", "month", "day"))
    numeric = NUMERIC_DATE_RE.search(phrase)
    if numeric:
        found.update(("month", "day"))
        if numeric.group(1):
            found.add("year")
    if MONTH_DAY_RE.search(phrase):
        found.update(("month", "day"))
    elif MONTH_NAME_RE.search(phrase):
        found.add("month")
    if YEAR_RE.search(phrase):
        found.add("year")
    if CLOCK_RE.search(phrase):
        found.add("hour")
        if MINUTE_RE.search(phrase):
            found.add("minute")
    return frozenset(found)


class DateparserRecognizer:
    """
    Natural-language date search backed by dateparser.

    dateparser reports matched substrings, not offsets; they are located
    left to right in the original text.
    """

    def __init__(self, prefer_dates_from: str = "future", date_order: str = "MDY"):
        self.prefer_dates_from = prefer_dates_from
        self.date_order = date_order

    def may_match(self, text: str) -> bool:
        return ANCHOR_RE.search(text) is not None

    def find(self, text: str, now: datetime) -> List[DateMatch]:
        if not self.may_match(text):
            return []

        settings = self._settings(now)
        found = search_dates(text, languages=["en"], settings=settings) or []

        matches: List[DateMatch] = []
        cursor = 0
        for phrase, dt in found:
            idx = text.find(phrase, cursor)
            if idx == -1:
                logger.debug("dateparser phrase %r not found after offset %d", phrase, cursor)
                continue
            cursor = idx + len(phrase)
            if not ANCHOR_RE.search(phrase):
                continue

            certain = certain_components(phrase)
            if implausible(phrase, dt, certain, now):
                repaired = self._reparse(phrase, settings, now)
                if repaired is None or implausible(phrase, repaired, certain, now):
                    logger.debug("dropping reading %s of %r", dt, phrase)
                    continue
                logger.debug("re-read %r as %s instead of %s", phrase, repaired, dt)
                dt = repaired

            matches.append(DateMatch(text=phrase, index=idx, start=dt, certain=certain))

        return join_ranges(text, matches)

    def _settings(self, now: datetime) -> dict:
        return {
            "PREFER_DATES_FROM": self.prefer_dates_from,
            "RELATIVE_BASE": now,
            "DATE_ORDER": self.date_order,
            "RETURN_AS_TIMEZONE_AWARE": False,
        }

    def _reparse(self, phrase: str, settings: dict, now: datetime) -> Optional[datetime]:
        """Read the day and the clock time of a phrase separately."""
        clock = CLOCK_RE.search(phrase)
        if clock is None:
            return dateparser.parse(phrase, languages=["en"], settings=settings)

        time_of_day = dateparser.parse(clock.group(0), languages=["en"], settings=settings)
        if time_of_day is None:
            return None

        rest = phrase[:clock.start()] + " " + phrase[clock.end():]
        day_text = " ".join(LONE_AT_RE.sub(" ", rest).split())
        if not day_text:
            return datetime.combine(now.date(), time_of_day.time())

        day = dateparser.parse(day_text, languages=["en"], settings=settings)
        if day is None:
            return None
        return datetime.combine(day.date(), time_of_day.time())


def implausible(phrase: str, dt: datetime, certain: FrozenSet[str], now: datetime) -> bool:
    """
    True when a reading contradicts its own phrase: a stated clock time read
    as midnight, or a day/time with no year landing years away
    ("12/25 at 10am" read as 2110-12-25 00:00).
    """
    if "hour" in certain and (dt.hour, dt.minute) == (0, 0) and not MIDNIGHT_RE.search(phrase):
        return True
    states_calendar = NUMERIC_DATE_RE.search(phrase) or MONTH_DAY_RE.search(phrase) or CLOCK_RE.search(phrase)
    if "year" not in certain and states_calendar and abs(dt.year - now.year) > 1:
        return True
    return False


def _states_day(match: DateMatch) -> bool:
    return "day" in match.certain or WEEKDAY_RE.search(match.text) is not None


def join_ranges(text: str, matches: List[DateMatch]) -> List[DateMatch]:
    """
    Fold 'X to Y' style neighbours into one match carrying an end instant.

    A day stated on one side only applies to both ("3pm to 5pm tomorrow").
    """
    out: List[DateMatch] = []
    for m in matches:
        prev = out[-1] if out else None
        if (
            prev is None
            or prev.end is not None
            or not RANGE_JOINER_RE.fullmatch(text[prev.end_index:m.index])
        ):
            out.append(m)
            continue

        start, end, certain = prev.start, m.start, prev.certain
        if _states_day(m) and not _states_day(prev):
            start = datetime.combine(end.date(), start.time())
            certain = certain | (m.certain & {"year", "month", "day"})
        elif _states_day(prev) and not _states_day(m):
            end = datetime.combine(start.date(), end.time())

        out[-1] = DateMatch(
            text=text[prev.index:m.end_index],
            index=prev.index,
            start=start,
            end=end,
            certain=certain,
        )
    return out


def nth_weekday_of_month(year: int, month: int, weekday: int, n: int) -> date:
    first_weekday = date(year, month, 1).weekday()
    day = 1 + (weekday - first_weekday + 7) % 7 + 7 * (n - 1)
    if day > calendar.monthrange(year, month)[1]:
        return last_weekday_of_month(year, month, weekday)
    return date(year, month, day)


def last_weekday_of_month(year: int, month: int, weekday: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    offset = (date(year, month, last_day).weekday() - weekday + 7) % 7
    return date(year, month, last_day - offset)


def find_ordinal_weekdays(text: str, now: datetime) -> List[DateMatch]:
    """'the third friday of next month', 'last sunday in march', ..."""
    matches: List[DateMatch] = []
    for m in ORDINAL_WEEKDAY_RE.finditer(text):
        ordinal, weekday_name, month_spec = (g.lower() for g in m.groups())
        weekday = WEEKDAYS.index(weekday_name)

        year = now.year
        if month_spec == "this month":
            month = now.month
        elif month_spec == "next month":
            month = now.month % 12 + 1
            if month == 1:
                year += 1
        else:
            month = MONTHS.index(month_spec) + 1
            if month < now.month:
                year += 1

        if ordinal == "last":
            day = last_weekday_of_month(year, month, weekday)
        else:
            day = nth_weekday_of_month(year, month, weekday, ORDINALS[ordinal])

        matches.append(
            DateMatch(
                text=m.group(0),
                index=m.start(),
                start=datetime(day.year, day.month, day.day),
                certain=frozenset(("year", "month", "day")),
            )
        )
    return matches


def date_confidence(match: DateMatch, now: datetime) -> float:
    confidence = 0.7

    confidence += 0.05 * sum(1 for c in COMPONENTS if c in match.certain)

    if {"year", "month", "day"} <= match.certain:
        confidence += 0.1

    if "hour" in match.certain:
        confidence += 0.05

    if len(match.text) < 3:
        confidence -= 0.2

    if match.start < now:
        confidence -= 0.05

    return max(0.1, min(1.0, confidence))


def format_time(dt: datetime) -> str:
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{dt.hour % 12 or 12}:{dt.minute:02d} {suffix}"


def format_display(dt: datetime, has_time: bool, now: datetime) -> str:
    today = now.date()
    days = (dt.date() - today).days

    if days == 0:
        label = "Today"
    elif days == 1:
        label = "Tomorrow"
    elif 0 <= days <= 7:
        label = WEEKDAYS[dt.weekday()].capitalize()
    else:
        label = f"{dt:%b} {dt.day}"
        if dt.year != today.year:
            label += f", {dt.year}"

    return f"{label} at {format_time(dt)}" if has_time else label


class DateTimeStrategy:
    id = "datetime-parser"
    name = "Date/Time Parser"

    def __init__(
        self,
        priority: int = 10,
        recognizer: Optional[DateRecognizer] = None,
        now: Optional[Callable[[], datetime]] = None,
        ordinal_confidence: float = 0.85,
    ):
        self.priority = priority
        self.recognizer = recognizer or DateparserRecognizer()
        self.now = now or datetime.now
        self.ordinal_confidence = ordinal_confidence

    def test(self, text: str) -> bool:
        if ORDINAL_WEEKDAY_RE.search(text):
            return True
        return self.recognizer.may_match(text)

    def parse(self, text: str) -> List[CandidateTag]:
        now = self.now()
        ordinals = find_ordinal_weekdays(text, now)
        ordinal_spans = [Span(m.index, m.end_index) for m in ordinals]

        tags: List[CandidateTag] = []
        claimed: List[Span] = []

        for m in self.recognizer.find(text, now):
            if not m.text:
                continue
            try:
                span = Span(m.index, m.end_index)
            except InvalidSpanError:
                logger.warning("recognizer match %r has bad offsets; skipped", m.text)
                continue
            # a hit that covers only part of an ordinal phrase ("friday",
            # "next month") is not a reading of the whole phrase
            if any(o.overlaps(span) and not span.contains(o) for o in ordinal_spans):
                continue

            has_time = "hour" in m.certain or "minute" in m.certain
            kind = TagKind.TIME if has_time else TagKind.DATE
            confidence = date_confidence(m, now)
            is_range = m.end is not None and m.end != m.start
            group = new_tag_id() if is_range else None

            tags.append(
                make_tag(
                    text, span.start, span.end, kind, m.start,
                    format_display(m.start, has_time, now), confidence, self.id, group,
                )
            )
            if is_range:
                tags.append(
                    make_tag(
                        text, span.start, span.end, kind, m.end,
                        f"Until {format_display(m.end, has_time, now)}", confidence, self.id, group,
                    )
                )
            claimed.append(span)

        for m in ordinals:
            if overlaps_any(m.index, m.end_index, claimed):
                continue
            tags.append(
                make_tag(
                    text, m.index, m.end_index, TagKind.DATE, m.start,
                    format_display(m.start, False, now), self.ordinal_confidence, self.id,
                )
            )
            claimed.append(Span(m.index, m.end_index))

        logger.debug("%s produced %d tags", self.id, len(tags))
        return tags
