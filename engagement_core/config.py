"""Engine configuration for the engagement core.

Loads ``config/engagement_config.json`` and overlays it on built-in
defaults, section by section. Components receive the resulting dict and
read their own section with chained ``.get()`` calls, so a missing file,
section, or key always falls back to the defaults below.

Sections:
    validation     -- tolerance shared by both reconciliation checks
    project_board  -- board URL/owner stamped onto board timeline events
    identity       -- fuzzy username resolution cutoff
    monitors       -- per-monitor thresholds (inactivity)
"""

import copy
import json
import logging
from pathlib import Path

from engagement_core.paths import ENGAGEMENT_CONFIG_PATH

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE: int = 1
"""Maximum allowed difference between two sources' counts for the same user."""

DEFAULT_INACTIVE_WEEKS: int = 2
"""Weeks without a survey response before an inactivity alert fires."""

DEFAULT_CONFIG: dict = {
    "validation": {
        "max_issue_difference": DEFAULT_TOLERANCE,
    },
    "project_board": {
        "url": "",
        "owner": "",
    },
    "identity": {
        "resolve_usernames": False,
        "fuzzy_score_cutoff": 85,
    },
    "monitors": {
        "inactivity": {
            "inactive_weeks": DEFAULT_INACTIVE_WEEKS,
            "contribution_drop_percentage": 30,
            "contributor_drop_count": 2,
        },
    },
}


def _merge(base: dict, override: dict) -> dict:
    """Recursively overlay ``override`` onto a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict:
    """Load engine configuration merged over the defaults.

    Args:
        path: Config file to read. Defaults to ENGAGEMENT_CONFIG_PATH.

    Returns:
        Full config dict. A missing file yields a copy of DEFAULT_CONFIG.

    Raises:
        json.JSONDecodeError: If the file exists but is not valid JSON.
    """
    config_path = path or ENGAGEMENT_CONFIG_PATH
    if not config_path.exists():
        logger.info("No config file at %s, using defaults", config_path)
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)
    logger.debug("Loaded config from %s", config_path)
    return _merge(DEFAULT_CONFIG, data)


def validation_tolerance(config: dict | None) -> int:
    """Return the shared reconciliation tolerance from a config dict."""
    return (
        (config or {})
        .get("validation", {})
        .get("max_issue_difference", DEFAULT_TOLERANCE)
    )
