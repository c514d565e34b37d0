"""Handles loading configuration from YAML files."""

import codecs
import copy
import yaml
import os
import logging
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'tick_interval': 0.05,
    'seek_offset': 0.01,
    'default_encoding': 'utf-8',
    'min_confidence': 0.2,
    'translation_models': {
        'en-zh': 'Helsinki-NLP/opus-mt-en-zh',
        'zh-en': 'Helsinki-NLP/opus-mt-zh-en',
    },
    'device': 'cpu',
    'log_dir': 'logs',
    'log_file': 'subreader.log',
}

POSITIVE_NUMBER_KEYS = ('tick_interval', 'seek_offset')


def default_config() -> dict:
    return copy.deepcopy(DEFAULT_CONFIG)


def validate_config(config: dict) -> dict:
    """
    Checks the values the playback core depends on.

    Raises:
        ConfigurationError: If a timing value is not a positive number or
                            the default encoding is unknown.
    """
    for key in POSITIVE_NUMBER_KEYS:
        value = config.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigurationError(f"Configuration value '{key}' must be a positive number, got {value!r}")

    encoding = config.get('default_encoding')
    try:
        codecs.lookup(encoding)
    except (LookupError, TypeError) as e:
        raise ConfigurationError(f"Configuration value 'default_encoding' is not a known encoding: {encoding!r}") from e
    return config


class ConfigLoader:
    """Loads configuration settings from a YAML file."""

    def load_config(self, config_path: str) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Values from the file override ``DEFAULT_CONFIG``; nested mappings are
        merged one level deep.

        Args:
            config_path: The path to the YAML configuration file.

        Returns:
            A dictionary containing the loaded configuration settings.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML, holds
                              invalid values, or cannot be read.
        """
        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
            logger.error(f"Configuration path is not a file: {config_path}")
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")

        config = default_config()
        for key, value in loaded.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                config[key].update(value)
            else:
                config[key] = value

        validate_config(config)
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config
