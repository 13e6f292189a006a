"""Persistent JSON config helpers.

Reads discovery limits, highlight style, and an optional snippet-library
location. All access is defensive: malformed or missing config falls back
safely.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from platformdirs import user_config_dir

logger = logging.getLogger(__name__)

APP_NAME = "jigolo"
CONFIG_FILENAME = "config.json"
LIBRARY_FILENAME = "library.json"
CONFIG_DIR = Path(user_config_dir(APP_NAME, appauthor=False))
CONFIG_PATH = CONFIG_DIR / CONFIG_FILENAME
DEFAULT_LIBRARY_PATH = CONFIG_DIR / LIBRARY_FILENAME
DEFAULT_STYLE = "monokai"
DEFAULT_MAX_DEPTH = 100


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_max_depth() -> int:
    """Return the configured traversal depth limit (positive int) or the default."""
    value = load_config().get("max_depth")
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return DEFAULT_MAX_DEPTH
    return value


def load_extra_skip_dirs() -> frozenset[str]:
    """Return additional directory names to prune, ignoring non-string entries."""
    value = load_config().get("skip_dirs")
    if not isinstance(value, list):
        return frozenset()
    return frozenset(item.strip() for item in value if isinstance(item, str) and item.strip())


def load_style() -> str:
    """Return the Pygments style name used for content colouring."""
    value = load_config().get("style")
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_STYLE
    return value.strip()


def library_path() -> Path:
    """Return the snippet-library location, honouring a ``library_path`` override."""
    value = load_config().get("library_path")
    if isinstance(value, str) and value.strip():
        return Path(value.strip()).expanduser()
    return DEFAULT_LIBRARY_PATH
