# smarttag/detect_entities.py

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import regex as re

from smarttag.config import TaggerConfig
from smarttag.detect_base import make_tag, overlaps_any, title_case
from smarttag.detect_ner import SpacyRecognizer
from smarttag.models import CandidateTag, Span, TagKind

logger = logging.getLogger(__name__)


_WORD = r"[\p{L}\d][\p{L}\p{M}\d.'’-]*"
_NAME_WORD = r"\p{L}[\p{L}\p{M}'’.-]*"
_STREET_SUFFIX = (
    r"(?i:St|Street|Ave|Avenue|Rd|Road|Blvd|Boulevard|Dr|Drive|Way|Ln|Lane|Ct|Court"
    r"|Pl|Place|Cir|Circle|Loop|Pkwy|Parkway|Hwy|Highway|Ter|Terrace)"
)
_CITY = r"\p{Lu}[\p{L}\p{M}.'’-]*(?:\s+\p{Lu}[\p{L}\p{M}.'’-]*){0,2}"
_ZIP = r"\d{5}(?:-\d{4})?"

# 123 Main St, 500 5th Ave Apt 4, 1 Infinite Loop, Cupertino, CA 95014
ADDRESS_RE = re.compile(
    rf"\b\d{{1,6}}\s+(?:{_WORD}\s+){{1,4}}?{_STREET_SUFFIX}\b\.?"
    r"(?:\s*(?:#|(?i:apt|unit|suite|ste)\.?)\s*[\w-]+)?"
    rf"(?:,\s*{_CITY},\s*[A-Z]{{2}}(?:\s+{_ZIP})?|,\s*[A-Z]{{2}}\s+{_ZIP})?"
)
HASHTAG_RE = re.compile(r"(?<![\w#])#(\p{L}[\w-]*)")
MENTION_RE = re.compile(r"(?<![\w.@])@(\w+)")
POSSESSIVE_RE = re.compile(r"\b(\p{L}[\p{L}\p{M}-]*)['’]s\b")
TOKEN_RE = re.compile(_NAME_WORD)
TRAILING_PUNCT_RE = re.compile(r"[.,!?;:]+$")
POSSESSIVE_SUFFIX_RE = re.compile(r"['’]s$", re.IGNORECASE)


def _alternation(words) -> str:
    # longest first so "meet with" wins over a shorter prefix
    ordered = sorted(set(words), key=lambda w: (-len(w), w))
    return "|".join(r"\s+".join(re.escape(part) for part in w.split()) for w in ordered)


def normalize_name(raw: str) -> str:
    """Strip a possessive and trailing punctuation; collapse whitespace."""
    name = " ".join(raw.split())
    name = TRAILING_PUNCT_RE.sub("", name)
    name = POSSESSIVE_SUFFIX_RE.sub("", name)
    return TRAILING_PUNCT_RE.sub("", name)


class EntityStrategy:
    """
    People, places, projects and category labels.

    Detectors run in a fixed order; a Person/Location/Project candidate is
    skipped when it overlaps a span claimed earlier in the same pass.
    Labels are exempt from claiming.
    """

    id = "entity-parser"
    name = "NLP Entity Parser"

    def __init__(
        self,
        config: TaggerConfig,
        priority: int = 6,
        recognizer: Optional[SpacyRecognizer] = None,
    ):
        self.config = config
        self.priority = priority
        self.recognizer = recognizer

        person = config.person
        location = config.location

        self.prep_re = re.compile(
            rf"\b({_alternation(location.prepositions)})\s+({_NAME_WORD}(?:\s+{_NAME_WORD}){{0,3}})",
            re.IGNORECASE,
        )
        self.venue_re = (
            re.compile(rf"\b(?:{_alternation(location.venues)})\b", re.IGNORECASE)
            if location.venues
            else None
        )
        self.context_re = (
            re.compile(
                rf"\b(?:{_alternation(person.contextual_verbs)})\s+({_NAME_WORD}(?:\s+{_NAME_WORD}){{0,2}})",
                re.IGNORECASE,
            )
            if person.contextual_verbs
            else None
        )
        self.kinship_re = (
            re.compile(rf"\b(?:{_alternation(person.kinship)})\b", re.IGNORECASE)
            if person.kinship
            else None
        )
        self.category_res: List[Tuple[str, "re.Pattern"]] = [
            (category, re.compile(rf"\b(?:{pattern})\b", re.IGNORECASE))
            for category, pattern in config.categories.items()
        ]
        self._verb_words = frozenset(
            w.lower() for verb in person.contextual_verbs for w in verb.split()
        )
        self._kinship = frozenset(k.lower() for k in person.kinship)

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------
    def _patterns(self):
        yield HASHTAG_RE
        yield ADDRESS_RE
        yield self.prep_re
        yield POSSESSIVE_RE
        yield MENTION_RE
        for pattern in (self.venue_re, self.context_re, self.kinship_re):
            if pattern is not None:
                yield pattern
        for _, pattern in self.category_res:
            yield pattern

    def test(self, text: str) -> bool:
        if self.recognizer is not None and self.recognizer.model and any(c.isalpha() for c in text):
            return True
        return any(p.search(text) for p in self._patterns())

    def parse(self, text: str) -> List[CandidateTag]:
        tags: List[CandidateTag] = []
        claimed: List[Span] = []

        # a full street address outranks NER pieces of it ("Springfield", "IL")
        self._addresses(text, tags, claimed)
        self._ner(text, tags, claimed)
        self._hashtags(text, tags, claimed)
        self._preposition_locations(text, tags, claimed)
        self._venues(text, tags, claimed)
        self._possessives(text, tags, claimed)
        self._mentions(text, tags, claimed)
        self._contextual_names(text, tags, claimed)
        self._kinship_terms(text, tags, claimed)
        tags.extend(self._labels(text))

        logger.debug("%s produced %d tags", self.id, len(tags))
        return tags

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _claim(
        self,
        text: str,
        start: int,
        end: int,
        kind: TagKind,
        value: str,
        display: str,
        confidence: float,
        tags: List[CandidateTag],
        claimed: List[Span],
    ) -> bool:
        if start >= end or overlaps_any(start, end, claimed):
            return False
        tags.append(make_tag(text, start, end, kind, value, display, confidence, self.id))
        claimed.append(Span(start, end))
        return True

    def _is_stopped_name(self, name: str) -> bool:
        words = name.lower().split()
        if not words:
            return True
        person = self.config.person
        return name.lower() in person.stoplist or all(
            w in person.stoplist or w in person.stopwords for w in words
        )

    # ------------------------------------------------------------------
    # Detectors
    # ------------------------------------------------------------------
    def _ner(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        if self.recognizer is None:
            return
        conf = self.config.ner.confidence
        for ent in self.recognizer.entities(text):
            if ent.kind == "person":
                name = normalize_name(ent.text)
                if self._is_stopped_name(name):
                    continue
                self._claim(text, ent.start, ent.end, TagKind.PERSON, name, name,
                            conf.get("person", 0.8), tags, claimed)
            elif ent.kind == "location":
                self._claim(text, ent.start, ent.end, TagKind.LOCATION, ent.text, ent.text,
                            conf.get("location", 0.8), tags, claimed)
            elif ent.kind == "project":
                self._claim(text, ent.start, ent.end, TagKind.PROJECT, ent.text, ent.text,
                            conf.get("project", 0.7), tags, claimed)

    def _hashtags(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        confidence = self.config.confidence_for("hashtag", 0.9)
        for m in HASHTAG_RE.finditer(text):
            project = m.group(1)
            self._claim(text, m.start(), m.end(), TagKind.PROJECT, project, project,
                        confidence, tags, claimed)

    def _addresses(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        confidence = self.config.confidence_for("address", 0.88)
        for m in ADDRESS_RE.finditer(text):
            address = m.group(0)
            self._claim(text, m.start(), m.end(), TagKind.LOCATION, address, address,
                        confidence, tags, claimed)

    def _preposition_locations(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        stopwords = self.config.location.stopwords
        confidence = self.config.confidence_for("location_preposition", 0.7)

        for m in self.prep_re.finditer(text, overlapped=True):
            words: List[Tuple[str, int, int]] = []
            base = m.start(2)
            for tok in TOKEN_RE.finditer(m.group(2)):
                word = TRAILING_PUNCT_RE.sub("", tok.group(0))
                if not word:
                    break
                if not words and word.lower() in ("the", "a", "an"):
                    continue
                if word.lower() in stopwords:
                    break
                words.append((word, base + tok.start(), base + tok.start() + len(word)))
                if len(words) == 3 or word != tok.group(0):
                    break
            if not words:
                continue

            place = text[words[0][1]:words[-1][2]]
            self._claim(text, m.start(), words[-1][2], TagKind.LOCATION, place, place,
                        confidence, tags, claimed)

    def _venues(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        if self.venue_re is None:
            return
        confidence = self.config.confidence_for("location_venue", 0.6)
        for m in self.venue_re.finditer(text):
            venue = m.group(0)
            self._claim(text, m.start(), m.end(), TagKind.LOCATION, venue.lower(), venue,
                        confidence, tags, claimed)

    def _possessives(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        confidence = self.config.confidence_for("possessive", 0.7)
        for m in POSSESSIVE_RE.finditer(text):
            name = normalize_name(m.group(1))
            if not name:
                continue
            # only Capitalized tokens or kinship words read as names
            if not name[0].isupper() and name.lower() not in self._kinship:
                continue
            if self._is_stopped_name(name):
                continue
            display = title_case(name)
            self._claim(text, m.start(), m.end(), TagKind.PERSON, display, display,
                        confidence, tags, claimed)

    def _mentions(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        confidence = self.config.confidence_for("mention", 0.8)
        for m in MENTION_RE.finditer(text):
            handle = m.group(1).replace("_", " ").strip()
            if not handle:
                continue
            display = title_case(handle)
            self._claim(text, m.start(), m.end(), TagKind.PERSON, display, display,
                        confidence, tags, claimed)

    def _contextual_names(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        if self.context_re is None:
            return
        person = self.config.person
        confidence = self.config.confidence_for("contextual", 0.72)

        for m in self.context_re.finditer(text):
            base = m.start(1)
            kept: List[Tuple[str, int, int]] = []
            for tok in TOKEN_RE.finditer(m.group(1)):
                raw = tok.group(0)
                word = normalize_name(raw)
                lower = word.lower()
                if not word:
                    break
                if lower in person.honorifics:
                    continue
                if not kept and (lower in self._verb_words or lower in person.skip_leading):
                    continue
                if lower in person.stopwords:
                    break
                end = base + tok.start() + len(TRAILING_PUNCT_RE.sub("", raw))
                kept.append((word, base + tok.start(), end))
                # "John's" or "John," ends the name
                if word != raw:
                    break

            # assume "First Last"
            kept = kept[-2:]
            if not kept:
                continue
            name = " ".join(w for w, _, _ in kept)
            if self._is_stopped_name(name):
                continue
            display = title_case(name)
            self._claim(text, kept[0][1], kept[-1][2], TagKind.PERSON, display, display,
                        confidence, tags, claimed)

    def _kinship_terms(self, text: str, tags: List[CandidateTag], claimed: List[Span]) -> None:
        if self.kinship_re is None:
            return
        confidence = self.config.confidence_for("kinship", 0.7)
        for m in self.kinship_re.finditer(text):
            display = title_case(m.group(0).lower())
            self._claim(text, m.start(), m.end(), TagKind.PERSON, display, display,
                        confidence, tags, claimed)

    def _labels(self, text: str) -> List[CandidateTag]:
        """
        Every matching category becomes its own label; categories coexist.
        score = number of matches, +0.2 when any match is longer than 5 chars.
        """
        labels: List[CandidateTag] = []
        for category, pattern in self.category_res:
            matches = list(pattern.finditer(text))
            if not matches:
                continue
            score = len(matches) + (0.2 if any(len(m.group(0)) > 5 for m in matches) else 0.0)
            if score < self.config.label_min_score:
                continue
            first = matches[0]
            labels.append(
                make_tag(
                    text,
                    first.start(),
                    first.end(),
                    TagKind.LABEL,
                    category,
                    category.capitalize(),
                    min(0.9, 0.5 + 0.1 * score),
                    self.id,
                )
            )
        return labels
