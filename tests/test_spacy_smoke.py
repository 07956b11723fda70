# tests/test_spacy_smoke.py

import pytest
import spacy

from smarttag.config import NerConfig
from smarttag.detect_ner import SpacyRecognizer

pytestmark = pytest.mark.skipif(
    not spacy.util.is_package("en_core_web_sm"),
    reason="en_core_web_sm is not installed",
)


def test_real_model_maps_places():
    recognizer = SpacyRecognizer(
        NerConfig(model="en_core_web_sm", labels={"PERSON": "person", "GPE": "location"})
    )
    ents = recognizer.entities("Barack Obama flew to Paris last week")
    assert any(e.kind == "location" and e.text == "Paris" for e in ents)
    for e in ents:
        assert e.kind in ("person", "location")
