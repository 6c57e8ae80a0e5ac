"""
decisions.py — Council decision policy.

Maps an average (0-20) to a named outcome via a threshold ladder evaluated
top-down, first match wins. Every rung is configurable except the fixed pass
line of 10.

Threshold order (honor <= encouragement <= congratulations <= excellence) is
not checked: a misordered configuration yields odd labels, not an error.
"""

from typing import Any, Dict, List, Mapping

from council.config import MAX_SCORE, PASS_MARK


# ── Labels ──────────────────────────────────────────────────────────

EXCELLENCE = "excellence"
CONGRATULATIONS = "congratulations"
ENCOURAGEMENT = "encouragement"
HONOR_BOARD = "honor_board"
NO_DISTINCTION = "none"
WARNING = "warning"

PROMOTED = "promoted"
REPEATS = "repeats"
REDIRECTED = "redirected"

ANNUAL_DECISIONS = (PROMOTED, REPEATS, REDIRECTED)

# Decisions that put a student on the term's top-performer list.
HONOR_DECISIONS = (EXCELLENCE, CONGRATULATIONS, ENCOURAGEMENT, HONOR_BOARD)

# (threshold key, label, description), ordered high to low.
DECISION_LADDER = [
    ("excellence", EXCELLENCE, "Excellence"),
    ("congratulations", CONGRATULATIONS, "Congratulations"),
    ("encouragement", ENCOURAGEMENT, "Encouragement"),
    ("honor", HONOR_BOARD, "Honor Board"),
]

# Automatic council observation per average band (min_average, text).
OBSERVATIONS = [
    (18.0, "Excellent results, keep it up."),
    (16.0, "Very good work."),
    (14.0, "Good work."),
    (12.0, "Fairly good results."),
    (10.0, "Average results, more effort is needed."),
    (8.0, "Weak results, must catch up."),
]
LOW_OBSERVATION = "Insufficient results, warning."


# ── Council statuses ────────────────────────────────────────────────

BEHAVIORS = ["exemplary", "good", "disruptive", "hyperactive"]
ABSENCE_OPTIONS = ["punctual", "justified_absences", "frequently_absent", "unjustified_absences"]

NEGATIVE_BEHAVIORS = ("disruptive", "hyperactive")
NEGATIVE_ABSENCES = ("frequently_absent", "unjustified_absences")

DEFAULT_BEHAVIOR = "good"
DEFAULT_ABSENCE = "punctual"


# ── Classification ──────────────────────────────────────────────────

def classify(average: float, thresholds: Mapping[str, float]) -> str:
    """Return the decision label for a term average."""
    for key, label, _ in DECISION_LADDER:
        if average >= thresholds[key]:
            return label
    if average >= PASS_MARK:
        return NO_DISTINCTION
    return WARNING


def is_honor(decision: str) -> bool:
    return decision in HONOR_DECISIONS


def default_observation(average: float) -> str:
    for min_average, text in OBSERVATIONS:
        if average >= min_average:
            return text
    return LOW_OBSERVATION


def get_decision_ladder(thresholds: Mapping[str, float]) -> List[Dict[str, Any]]:
    """Return the full ladder with bounds, for legends and configuration screens."""
    rungs = [(float(thresholds[key]), label, desc) for key, label, desc in DECISION_LADDER]
    rungs.append((PASS_MARK, NO_DISTINCTION, "No distinction"))
    rungs.append((0.0, WARNING, "Warning"))

    ladder = []
    for idx, (min_average, label, desc) in enumerate(rungs):
        max_average = MAX_SCORE if idx == 0 else rungs[idx - 1][0] - 0.01
        ladder.append({
            "min": min_average,
            "max": round(max_average, 2),
            "label": label,
            "description": desc,
        })
    return ladder
