# smarttag/detect_priority.py

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

import regex as re

from smarttag.config import PriorityPattern
from smarttag.detect_base import make_tag
from smarttag.models import CandidateTag, TagKind

logger = logging.getLogger(__name__)


SEVERITY = {"low": 1, "medium": 2, "high": 3}
EXPLICIT_LEVEL_RE = re.compile(r"^p[123]$", re.IGNORECASE)
ALNUM_RE = re.compile(r"[A-Za-z0-9]")


def adjust_confidence(base: float, start: int, end: int, text: str) -> float:
    match_text = text[start:end]
    confidence = base

    # very short cue in a long title
    if len(match_text) <= 2 and len(text) > 50:
        confidence *= 0.8

    if EXPLICIT_LEVEL_RE.match(match_text.strip()):
        confidence = min(0.98, confidence + 0.1)

    # cue glued to a larger word
    if start > 0 and ALNUM_RE.match(text[start - 1]):
        confidence *= 0.7
    if end < len(text) and ALNUM_RE.match(text[end]):
        confidence *= 0.7

    if " " in match_text:
        confidence = min(0.95, confidence + 0.05)

    return max(0.1, min(1.0, confidence))


def display_for(level: str) -> str:
    return f"{level.capitalize()} Priority"


class PriorityStrategy:
    """
    p1/p2/p3 and urgency keywords, consolidated into one priority tag.

    The strongest cue wins: higher severity, then higher confidence, then
    the earliest occurrence.
    """

    id = "priority-parser"
    name = "Priority Parser"

    def __init__(self, patterns: Iterable[PriorityPattern], priority: int = 8):
        self.priority = priority
        self.patterns: List[Tuple["re.Pattern", str, float]] = [
            (re.compile(p.pattern, re.IGNORECASE), p.level, p.confidence)
            for p in patterns
        ]

    def test(self, text: str) -> bool:
        return any(pattern.search(text) for pattern, _, _ in self.patterns)

    def parse(self, text: str) -> List[CandidateTag]:
        chosen: Optional[Tuple[str, float, int, int]] = None

        for pattern, level, base in self.patterns:
            for m in pattern.finditer(text):
                if m.end() == m.start():
                    continue
                confidence = adjust_confidence(base, m.start(), m.end(), text)
                if chosen is None or _stronger(level, confidence, m.start(), chosen):
                    chosen = (level, confidence, m.start(), m.end())

        if chosen is None:
            return []

        level, confidence, start, end = chosen
        logger.debug("%s chose %s from %r", self.id, level, text[start:end])
        return [
            make_tag(text, start, end, TagKind.PRIORITY, level, display_for(level), confidence, self.id)
        ]


def _stronger(level: str, confidence: float, start: int, chosen: Tuple[str, float, int, int]) -> bool:
    cur_level, cur_conf, cur_start, _ = chosen
    new_rank, cur_rank = SEVERITY.get(level, 0), SEVERITY.get(cur_level, 0)
    if new_rank != cur_rank:
        return new_rank > cur_rank
    if confidence != cur_conf:
        return confidence > cur_conf
    return start < cur_start
