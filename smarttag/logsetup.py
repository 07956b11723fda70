# smarttag/logsetup.py

import logging
import logging.config
import os

import yaml

from smarttag.config import DEFAULT_CONFIG_PATH

DEFAULT_LOGGING_PATH = os.path.join(os.path.dirname(DEFAULT_CONFIG_PATH), "logging.yaml")


def setup_logging(cfg_path: str = DEFAULT_LOGGING_PATH) -> None:
    if os.path.exists(cfg_path):
        try:
            with open(cfg_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
            logging.config.dictConfig(config)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logging.basicConfig(level=logging.INFO)
            logging.getLogger(__name__).warning("Failed to load %s: %s", cfg_path, e)
    else:
        logging.basicConfig(level=logging.INFO)
