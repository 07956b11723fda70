import dataclasses
from datetime import datetime

import pytest

from smarttag.config import NerConfig, load_config
from smarttag.pipeline import build_engine

# a Sunday
FIXED_NOW = datetime(2026, 10, 18, 9, 0)


@pytest.fixture
def config():
    # NER off so heuristics are tested independently of installed models
    return dataclasses.replace(load_config(), ner=NerConfig(model=None))


@pytest.fixture
def engine(config):
    return build_engine(config, now=lambda: FIXED_NOW)
