"""
config.py — Administrative configuration for the grade engine.

Holds:
- The closed set of subject identifiers and their display labels
- Decision thresholds (honor < encouragement < congratulations < excellence)
- Admission threshold for annual promotion
- Per-subject coefficients

Configuration is a plain value passed into every computation; nothing in the
engine reads it from global state.
"""

import logging
import os
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ── Subjects ────────────────────────────────────────────────────────

SUBJECTS: List[Dict[str, str]] = [
    {"key": "math", "label": "Mathematics"},
    {"key": "phys", "label": "Physics"},
    {"key": "sci", "label": "Natural Sciences"},
    {"key": "arab", "label": "Arabic"},
    {"key": "fr", "label": "French"},
    {"key": "eng", "label": "English"},
    {"key": "hist", "label": "History & Geography"},
    {"key": "civ", "label": "Civic Education"},
    {"key": "isl", "label": "Islamic Studies"},
    {"key": "art", "label": "Art Education"},
    {"key": "mus", "label": "Music Education"},
    {"key": "pe", "label": "Physical Education"},
]

SUBJECT_KEYS: List[str] = [s["key"] for s in SUBJECTS]
SUBJECT_LABELS: Dict[str, str] = {s["key"]: s["label"] for s in SUBJECTS}

# Fixed pass line; not part of the configurable ladder.
PASS_MARK = 10.0
MAX_SCORE = 20.0


def default_coefficients() -> Dict[str, float]:
    return {key: 1.0 for key in SUBJECT_KEYS}


# ── Engine configuration ────────────────────────────────────────────

class EngineConfig(BaseModel):
    excellence: float = 18.0
    congratulations: float = 16.0
    encouragement: float = 14.0
    honor: float = 12.0
    admission_threshold: float = 10.0
    coefficients: Dict[str, float] = Field(default_factory=default_coefficients)

    def thresholds(self) -> Dict[str, float]:
        return {
            "excellence": self.excellence,
            "congratulations": self.congratulations,
            "encouragement": self.encouragement,
            "honor": self.honor,
        }


def parse_coefficients(raw: Optional[str]) -> Dict[str, float]:
    """
    Parse "math=4,phys=3" into a coefficient table.
    Subjects not mentioned keep the default weight of 1.
    """
    table = default_coefficients()
    if not raw:
        return table
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Malformed coefficient entry '{item}', expected subject=weight.")
        key = key.strip().lower()
        if key not in table:
            logger.warning("Ignoring coefficient for unknown subject '%s'", key)
            continue
        table[key] = float(value)
    return table


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def load_config() -> EngineConfig:
    """Build the engine configuration from environment variables (.env aware)."""
    load_dotenv()
    defaults = EngineConfig()
    return EngineConfig(
        excellence=_env_float("EXCELLENCE_THRESHOLD", defaults.excellence),
        congratulations=_env_float("CONGRATULATIONS_THRESHOLD", defaults.congratulations),
        encouragement=_env_float("ENCOURAGEMENT_THRESHOLD", defaults.encouragement),
        honor=_env_float("HONOR_THRESHOLD", defaults.honor),
        admission_threshold=_env_float("ADMISSION_THRESHOLD", defaults.admission_threshold),
        coefficients=parse_coefficients(os.getenv("SUBJECT_COEFFICIENTS")),
    )
