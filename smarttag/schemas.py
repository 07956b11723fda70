# smarttag/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel

from smarttag.config import TaggerConfig
from smarttag.models import CandidateTag, Conflict, ParseResult


class SpanSchema(BaseModel):
    start: int
    end: int


class TagSchema(BaseModel):
    id: str
    kind: str
    value: Union[datetime, str]
    display_text: str
    span: SpanSchema
    original_text: str
    confidence: float
    source: str
    icon: Optional[str] = None
    color: Optional[str] = None

    @classmethod
    def from_tag(cls, tag: CandidateTag, config: Optional[TaggerConfig] = None) -> "TagSchema":
        hint = config.presentation_for(tag.kind.value, tag.value) if config else {}
        return cls(
            id=tag.id,
            kind=tag.kind.value,
            value=tag.value,
            display_text=tag.display_text,
            span=SpanSchema(start=tag.span.start, end=tag.span.end),
            original_text=tag.original_text,
            confidence=tag.confidence,
            source=tag.source,
            icon=hint.get("icon"),
            color=hint.get("color"),
        )


class ConflictSchema(BaseModel):
    span: SpanSchema
    tags: List[TagSchema]
    resolved: Optional[TagSchema] = None

    @classmethod
    def from_conflict(cls, conflict: Conflict, config: Optional[TaggerConfig] = None) -> "ConflictSchema":
        return cls(
            span=SpanSchema(start=conflict.span.start, end=conflict.span.end),
            tags=[TagSchema.from_tag(t, config) for t in conflict.tags],
            resolved=TagSchema.from_tag(conflict.resolved, config) if conflict.resolved else None,
        )


class ParseResultSchema(BaseModel):
    clean_text: str
    tags: List[TagSchema]
    confidence: float
    conflicts: List[ConflictSchema]

    @classmethod
    def from_result(cls, result: ParseResult, config: Optional[TaggerConfig] = None) -> "ParseResultSchema":
        return cls(
            clean_text=result.clean_text,
            tags=[TagSchema.from_tag(t, config) for t in result.tags],
            confidence=result.confidence,
            conflicts=[ConflictSchema.from_conflict(c, config) for c in result.conflicts],
        )

    def signature(self) -> str:
        """JSON rendering without tag ids, for comparing two parses."""
        no_id = {"__all__": {"id"}}
        return self.model_dump_json(
            exclude={
                "tags": no_id,
                "conflicts": {"__all__": {"tags": no_id, "resolved": {"id"}}},
            }
        )
