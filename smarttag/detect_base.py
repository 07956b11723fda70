# smarttag/detect_base.py

from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, runtime_checkable

from smarttag.models import CandidateTag, Span, TagKind, TagValue


@runtime_checkable
class Strategy(Protocol):
    """
    One extraction strategy run over the shared, read-only input text.

    test() may report false positives but never a false negative:
    whenever parse() would emit a tag, test() must return True.
    """

    id: str
    name: str
    priority: int

    def test(self, text: str) -> bool:
        ...

    def parse(self, text: str) -> List[CandidateTag]:
        ...


def make_tag(
    text: str,
    start: int,
    end: int,
    kind: TagKind,
    value: TagValue,
    display_text: str,
    confidence: float,
    source: str,
    group: Optional[str] = None,
) -> CandidateTag:
    return CandidateTag(
        kind=kind,
        value=value,
        display_text=display_text,
        span=Span(start, end),
        original_text=text[start:end],
        confidence=confidence,
        source=source,
        group=group,
    )


def overlaps_any(start: int, end: int, spans: Iterable[Span]) -> bool:
    return any(start < s.end and s.start < end for s in spans)


def title_case(name: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in name.split())
