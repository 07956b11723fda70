# smarttag/config.py

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

import yaml


DEFAULT_CONFIG_PATH = str(Path(__file__).resolve().parent.parent / "configs" / "tagging.yaml")


class ConfigError(ValueError):
    """Raised when the tagging configuration is malformed."""


@dataclass(frozen=True)
class PriorityPattern:
    pattern: str
    level: str
    confidence: float


@dataclass(frozen=True)
class NerConfig:
    model: Optional[str] = "en_core_web_sm"
    required: bool = False
    labels: Dict[str, str] = field(default_factory=dict)
    confidence: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class PersonConfig:
    contextual_verbs: Tuple[str, ...] = ()
    honorifics: FrozenSet[str] = frozenset()
    skip_leading: FrozenSet[str] = frozenset()
    kinship: Tuple[str, ...] = ()
    stopwords: FrozenSet[str] = frozenset()
    stoplist: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class LocationConfig:
    prepositions: Tuple[str, ...] = ("at", "in", "near", "on")
    venues: Tuple[str, ...] = ()
    stopwords: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class TaggerConfig:
    strategy_priorities: Dict[str, int]
    categories: Dict[str, str]
    priority_patterns: Tuple[PriorityPattern, ...]
    person: PersonConfig
    location: LocationConfig
    ner: NerConfig = field(default_factory=NerConfig)
    confidence: Dict[str, float] = field(default_factory=dict)
    label_min_score: float = 1.0
    prefer_dates_from: str = "future"
    date_order: str = "MDY"
    ordinal_confidence: float = 0.85
    presentation: Dict[str, Dict[str, Dict[str, str]]] = field(default_factory=dict)

    def priority_for(self, strategy: str, default: int = 0) -> int:
        return self.strategy_priorities.get(strategy, default)

    def confidence_for(self, detector: str, default: float = 0.7) -> float:
        return self.confidence.get(detector, default)

    def presentation_for(self, kind: str, value: Any = None) -> Dict[str, str]:
        """
        Icon/color hint for a tag: category or priority level overrides
        take precedence over the per-kind default.
        """
        hint = dict(self.presentation.get("kinds", {}).get(kind, {}))
        if kind == "label":
            hint.update(self.presentation.get("categories", {}).get(str(value), {}))
        elif kind == "priority":
            hint.update(self.presentation.get("priorities", {}).get(str(value), {}))
        return hint


def _words(values, where: str) -> Tuple[str, ...]:
    # YAML 1.1 reads bare on/off/yes/no as booleans
    words = []
    for v in values or []:
        if not isinstance(v, str):
            raise ConfigError(f"{where}: {v!r} is not a word (quote YAML keywords such as 'on')")
        words.append(v)
    return tuple(words)


def _lower_set(values, where: str) -> FrozenSet[str]:
    return frozenset(w.lower() for w in _words(values, where))


def load_config(path: str = DEFAULT_CONFIG_PATH) -> TaggerConfig:
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    if not isinstance(cfg, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    strategies_cfg = cfg.get("strategies", {})
    priorities = {
        name: int(props.get("priority", 0))
        for name, props in strategies_cfg.items()
    }

    patterns = []
    for entry in cfg.get("priority_patterns", []):
        try:
            patterns.append(
                PriorityPattern(
                    pattern=entry["pattern"],
                    level=entry["level"],
                    confidence=float(entry.get("confidence", 0.75)),
                )
            )
        except KeyError as e:
            raise ConfigError(f"{path}: priority pattern missing {e}") from e

    categories = {str(k): str(v) for k, v in cfg.get("categories", {}).items()}

    person_cfg = cfg.get("person", {})
    person = PersonConfig(
        contextual_verbs=_words(person_cfg.get("contextual_verbs"), f"{path}: person.contextual_verbs"),
        honorifics=_lower_set(person_cfg.get("honorifics"), f"{path}: person.honorifics"),
        skip_leading=_lower_set(person_cfg.get("skip_leading"), f"{path}: person.skip_leading"),
        kinship=_words(person_cfg.get("kinship"), f"{path}: person.kinship"),
        stopwords=_lower_set(person_cfg.get("stopwords"), f"{path}: person.stopwords"),
        stoplist=_lower_set(person_cfg.get("stoplist"), f"{path}: person.stoplist"),
    )

    location_cfg = cfg.get("location", {})
    location = LocationConfig(
        prepositions=_words(
            location_cfg.get("prepositions", ["at", "in", "near", "on"]),
            f"{path}: location.prepositions",
        ),
        venues=_words(location_cfg.get("venues"), f"{path}: location.venues"),
        stopwords=_lower_set(location_cfg.get("stopwords"), f"{path}: location.stopwords"),
    )

    ner_cfg = cfg.get("ner", {})
    ner = NerConfig(
        model=ner_cfg.get("model"),
        required=bool(ner_cfg.get("required", False)),
        labels=dict(ner_cfg.get("labels", {})),
        confidence={k: float(v) for k, v in ner_cfg.get("confidence", {}).items()},
    )

    dates_cfg = cfg.get("dates", {})

    return TaggerConfig(
        strategy_priorities=priorities,
        categories=categories,
        priority_patterns=tuple(patterns),
        person=person,
        location=location,
        ner=ner,
        confidence={k: float(v) for k, v in cfg.get("confidence", {}).items()},
        label_min_score=float(cfg.get("label_min_score", 1.0)),
        prefer_dates_from=dates_cfg.get("prefer_dates_from", "future"),
        date_order=dates_cfg.get("date_order", "MDY"),
        ordinal_confidence=float(dates_cfg.get("ordinal_confidence", 0.85)),
        presentation=cfg.get("presentation", {}),
    )
