# smarttag/models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union


class InvalidSpanError(ValueError):
    """Raised when a span is inverted, empty or negative."""


class TagKind(str, Enum):
    DATE = "date"
    TIME = "time"
    PRIORITY = "priority"
    LOCATION = "location"
    PERSON = "person"
    LABEL = "label"
    PROJECT = "project"


TagValue = Union[datetime, str]


@dataclass(frozen=True)
class Span:
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.start >= self.end:
            raise InvalidSpanError(f"Invalid span [{self.start}, {self.end})")

    def overlaps(self, other: "Span") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Span") -> bool:
        return self.start <= other.start and other.end <= self.end

    def length(self) -> int:
        return self.end - self.start


def new_tag_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class CandidateTag:
    kind: TagKind
    value: TagValue
    display_text: str
    span: Span
    original_text: str
    confidence: float
    source: str
    group: Optional[str] = None
    id: str = field(default_factory=new_tag_id)

    @property
    def start(self) -> int:
        return self.span.start

    @property
    def end(self) -> int:
        return self.span.end


@dataclass(frozen=True)
class Conflict:
    """
    Overlapping candidates that were not all kept.

    resolved is None when no single winner could be picked; none of the
    tags in such a conflict reach the final result.
    """

    span: Span
    tags: List[CandidateTag]
    resolved: Optional[CandidateTag] = None


@dataclass(frozen=True)
class ParseResult:
    clean_text: str
    tags: List[CandidateTag]
    confidence: float
    conflicts: List[Conflict] = field(default_factory=list)

    def by_kind(self, kind: TagKind) -> List[CandidateTag]:
        return [t for t in self.tags if t.kind is kind]
