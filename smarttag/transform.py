# smarttag/transform.py

from __future__ import annotations

from typing import List, Tuple

from smarttag.models import CandidateTag, Conflict, ParseResult

EDGE_PUNCT = " ,;:-"


def _merged_ranges(tags: List[CandidateTag]) -> List[Tuple[int, int]]:
    ranges = sorted((t.span.start, t.span.end) for t in tags)
    merged: List[Tuple[int, int]] = []
    for start, end in ranges:
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def render_clean_text(text: str, tags: List[CandidateTag]) -> str:
    """
    Remove every kept tag's span from the text.

    Overlapping spans are merged first, then removed from the end backwards
    so earlier offsets stay valid.
    """
    out = text
    for start, end in sorted(_merged_ranges(tags), reverse=True):
        out = out[:start] + " " + out[end:]
    return " ".join(out.split()).strip(EDGE_PUNCT)


def overall_confidence(tags: List[CandidateTag]) -> float:
    if not tags:
        return 1.0
    return sum(t.confidence for t in tags) / len(tags)


def assemble_result(text: str, tags: List[CandidateTag], conflicts: List[Conflict]) -> ParseResult:
    return ParseResult(
        clean_text=render_clean_text(text, tags),
        tags=list(tags),
        confidence=overall_confidence(tags),
        conflicts=list(conflicts),
    )
