"""Command line configuration, read from a YAML file."""

import os
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

CONFIG_ENV_VAR = 'IDL_SCHEMA_CONFIG'

ENCODINGS = ('hex', 'base58', 'base64')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

DEFAULTS = {
    'show_hidden': False,
    'encoding': 'hex',
    'indent': 2,
    'log_level': 'WARNING',
}


def _check(config: Dict[str, Any]):
    for key in config:
        if key not in DEFAULTS:
            raise ConfigError(f"Unknown config key `{key}`")
    if not isinstance(config['show_hidden'], bool):
        raise ConfigError("`show_hidden` must be true or false")
    if config['encoding'] not in ENCODINGS:
        raise ConfigError(f"`encoding` must be one of {', '.join(ENCODINGS)}")
    indent = config['indent']
    if indent is not None and (not isinstance(indent, int) or isinstance(indent, bool) or indent < 0):
        raise ConfigError("`indent` must be a non-negative integer or null")
    if not isinstance(config['log_level'], str) or config['log_level'].upper() not in LOG_LEVELS:
        raise ConfigError(f"`log_level` must be one of {', '.join(LOG_LEVELS)}")
    config['log_level'] = config['log_level'].upper()


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the configuration from `path`, or from the file named by
    IDL_SCHEMA_CONFIG when no path is given. Missing keys take their default.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)

    config = dict(DEFAULTS)
    if not path:
        return config

    try:
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file {path} does not exist") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file {path} is not valid YAML: {e}") from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    config.update(loaded)
    _check(config)
    return config
