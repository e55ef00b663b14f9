"""Centralized path constants for the engagement core.

Every file path the package reads is defined here as a module-level
constant. Source files import from this module instead of constructing
ad-hoc ``Path(...)`` literals.

Design rules:
  1. This module imports ONLY ``pathlib.Path`` -- no project imports, no
     config imports, no runtime validation.
  2. No path existence checks at import time. The config loader falls
     back to defaults when the file is absent.
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# -- Project Root --
# ---------------------------------------------------------------------------

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
"""Absolute path to the project root directory (one level above ``engagement_core/``)."""

# ---------------------------------------------------------------------------
# -- Config Paths --
# ---------------------------------------------------------------------------

CONFIG_DIR: Path = PROJECT_ROOT / "config"
"""Directory containing engine configuration files."""

ENGAGEMENT_CONFIG_PATH: Path = CONFIG_DIR / "engagement_config.json"
"""Main engine configuration (validation tolerance, board reference, monitors)."""
