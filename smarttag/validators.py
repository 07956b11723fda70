# smarttag/validators.py

from __future__ import annotations

from typing import Optional

from smarttag.models import CandidateTag


def tag_violation(tag: CandidateTag, text: str) -> Optional[str]:
    """
    Return why a strategy's tag breaks the output contract, or None.
    """
    start, end = tag.span.start, tag.span.end
    if end > len(text):
        return f"span [{start}, {end}) exceeds text length {len(text)}"
    if text[start:end] != tag.original_text:
        return f"original_text {tag.original_text!r} != text[{start}:{end}] {text[start:end]!r}"
    if not 0.0 <= tag.confidence <= 1.0:
        return f"confidence {tag.confidence} outside [0, 1]"
    return None
