"""
annual.py — Annual aggregate across the three terms.

The annual average is the plain mean of the three term averages; promotion is
a two-way split on the admission threshold. A manual "redirected" decision is
kept until the next bulk recompute puts the automatic split back.
"""

from typing import Any, Dict

from council.config import EngineConfig
from council.decisions import ANNUAL_DECISIONS, PROMOTED, REPEATS
from council.models import Student
from council.scoring import exact_mean, round_half_up


def annual_average(term1: float, term2: float, term3: float) -> float:
    # Decimal mean; the result does not depend on term order
    return round_half_up(exact_mean((term1, term2, term3)), 2)


def annual_decision(average: float, admission_threshold: float) -> str:
    return PROMOTED if average >= admission_threshold else REPEATS


def compute_annual(term1: float, term2: float, term3: float, admission_threshold: float = 10.0) -> Dict[str, Any]:
    average = annual_average(term1, term2, term3)
    return {
        "average": average,
        "decision": annual_decision(average, admission_threshold),
    }


def apply_annual(student: Student, config: EngineConfig) -> Student:
    """Return a copy of the student with annual average and decision recomputed (rank untouched)."""
    result = compute_annual(
        student.terms[1].average,
        student.terms[2].average,
        student.terms[3].average,
        config.admission_threshold,
    )
    copy = student.model_copy(deep=True)
    copy.annual.average = result["average"]
    copy.annual.decision = result["decision"]
    return copy


def set_annual_override(student: Student, decision: str) -> Student:
    """Record an administrative annual decision (e.g. redirected)."""
    if decision not in ANNUAL_DECISIONS:
        raise ValueError(f"Unknown annual decision '{decision}'; expected one of {ANNUAL_DECISIONS}.")
    copy = student.model_copy(deep=True)
    copy.annual.decision = decision
    return copy
