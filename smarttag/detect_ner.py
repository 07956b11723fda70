from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import spacy

from smarttag.config import NerConfig

logger = logging.getLogger(__name__)

# Lazy-loaded spaCy pipelines keyed by model name so import doesn't blow up
# if a model is missing at install time
_NLP: Dict[str, "spacy.language.Language"] = {}


@dataclass(frozen=True)
class EntityMatch:
    start: int
    end: int
    text: str
    kind: str


def _get_nlp(model: str, required: bool) -> "spacy.language.Language":
    nlp = _NLP.get(model)
    if nlp is None:
        try:
            logger.info("Loading spaCy model %s", model)
            nlp = spacy.load(model, disable=["lemmatizer"])
        except OSError:
            if required:
                raise
            # a blank pipeline has no NER component and yields no entities
            logger.warning("spaCy model %s is not installed; NER disabled", model)
            nlp = spacy.blank("en")
        _NLP[model] = nlp
    return nlp


class SpacyRecognizer:
    """
    Named entities via spaCy, mapped onto tag kinds:
    - PERSON -> person
    - GPE/LOC/FAC -> location
    - ORG -> project

    All processing is local; no external calls.
    """

    def __init__(self, config: NerConfig):
        self.model = config.model
        self.required = config.required
        self.labels = dict(config.labels)

    def _map_label(self, label: str) -> Optional[str]:
        return self.labels.get(label)

    def entities(self, text: str) -> List[EntityMatch]:
        if not self.model or not text.strip():
            return []

        doc = _get_nlp(self.model, self.required)(text)

        out: List[EntityMatch] = []
        for ent in doc.ents:
            kind = self._map_label(ent.label_)
            if kind is None:
                continue
            out.append(
                EntityMatch(
                    start=ent.start_char,
                    end=ent.end_char,
                    text=ent.text,
                    kind=kind,
                )
            )
        return out
