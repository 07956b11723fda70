# smarttag/pipeline.py

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .config import DEFAULT_CONFIG_PATH, TaggerConfig, load_config
from .detect_base import Strategy
from .detect_dates import DateparserRecognizer, DateTimeStrategy
from .detect_entities import EntityStrategy
from .detect_ner import SpacyRecognizer
from .detect_priority import PriorityStrategy
from .models import CandidateTag, InvalidSpanError, ParseResult
from .resolve import resolve_tags
from .transform import assemble_result
from .validators import tag_violation

logger = logging.getLogger(__name__)


class TagEngine:
    """
    Runs every strategy over the same text and reconciles their output.

    Strategies run by descending priority, then id, whatever order they
    were handed in. The engine holds no per-call state, so one instance can
    serve concurrent callers.
    """

    def __init__(self, strategies: Iterable[Strategy]):
        self.strategies = tuple(sorted(strategies, key=lambda s: (-s.priority, s.id)))
        self.priorities: Dict[str, int] = {s.id: s.priority for s in self.strategies}

    def _collect(self, text: str) -> List[CandidateTag]:
        candidates: List[CandidateTag] = []

        for strategy in self.strategies:
            if not strategy.test(text):
                continue
            try:
                produced = strategy.parse(text)
            except InvalidSpanError:
                logger.warning("%s built an invalid span; its output is dropped", strategy.id, exc_info=True)
                continue

            for tag in produced:
                problem = tag_violation(tag, text)
                if problem:
                    logger.warning("Dropping %s tag from %s: %s", tag.kind.value, strategy.id, problem)
                    continue
                candidates.append(tag)

        return candidates

    def parse(self, text: str) -> ParseResult:
        candidates = self._collect(text)
        tags, conflicts = resolve_tags(candidates, self.priorities)
        logger.debug(
            "parsed %d chars: %d candidates, %d kept, %d conflicts",
            len(text), len(candidates), len(tags), len(conflicts),
        )
        return assemble_result(text, tags, conflicts)


def build_engine(
    config: TaggerConfig,
    now: Optional[Callable[[], datetime]] = None,
) -> TagEngine:
    recognizer = SpacyRecognizer(config.ner) if config.ner.model else None
    strategies = [
        DateTimeStrategy(
            priority=config.priority_for(DateTimeStrategy.id, 10),
            recognizer=DateparserRecognizer(config.prefer_dates_from, config.date_order),
            now=now,
            ordinal_confidence=config.ordinal_confidence,
        ),
        PriorityStrategy(
            config.priority_patterns,
            priority=config.priority_for(PriorityStrategy.id, 8),
        ),
        EntityStrategy(
            config,
            priority=config.priority_for(EntityStrategy.id, 6),
            recognizer=recognizer,
        ),
    ]
    return TagEngine(strategies)


def parse_text(
    text: str,
    config_path: str = DEFAULT_CONFIG_PATH,
    now: Optional[Callable[[], datetime]] = None,
) -> ParseResult:
    """
    Tag a single line of task/event text.

    Any input, including an empty string, yields a ParseResult; an input
    with no recognisable content has no tags and confidence 1.0.
    """
    config = load_config(config_path)
    engine = build_engine(config, now=now)
    return engine.parse(text)
