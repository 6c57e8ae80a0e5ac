"""
scoring.py — Subject and term averages.

- Subject average: ((evaluation + test) / 2 + exam * 2) / 3
- Term average: coefficient-weighted mean of the subject averages

Both are computed in Decimal from the marks as entered and rounded exactly
once, to 2 decimals, half away from zero. The rounded value is what gets
stored and used downstream.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from council.config import SUBJECT_KEYS, EngineConfig
from council.decisions import classify
from council.errors import CoefficientError, EmptySubjectSetError, SubjectSetError
from council.models import SubjectScore


def to_decimal(value) -> Decimal:
    """Exact decimal of a mark, average or weight, as it was typed (0.21 -> 0.21)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(repr(float(value)))


def round_half_up(value: Union[float, Decimal], digits: int = 2) -> float:
    """Round like a report card does: 12.345 -> 12.35, -0.125 -> -0.13."""
    quantum = Decimal(1).scaleb(-digits)
    return float(to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def exact_mean(values: Iterable) -> Decimal:
    """Plain mean computed in Decimal, independent of value order."""
    items = [to_decimal(v) for v in values]
    if not items:
        raise ValueError("Cannot average an empty sequence.")
    return sum(items, Decimal(0)) / len(items)


def percentage(count: int, total: int, digits: int = 1) -> float:
    return round_half_up(Decimal(int(count)) * 100 / Decimal(int(total)), digits)


# ── Subject ─────────────────────────────────────────────────────────

def subject_average(evaluation: float, test: float, exam: float) -> float:
    """
    Average of one subject; the exam weighs twice the mean of the other two.
    Inputs are not clamped, keeping them in 0-20 is up to the caller.
    """
    raw = ((to_decimal(evaluation) + to_decimal(test)) / 2 + to_decimal(exam) * 2) / 3
    return round_half_up(raw, 2)


def score_subject(score: SubjectScore) -> SubjectScore:
    """Return a copy of the score with its average recomputed from the raw marks."""
    return score.model_copy(update={
        "average": subject_average(score.evaluation, score.test, score.exam),
    })


# ── Term ────────────────────────────────────────────────────────────

def validate_subject_set(
    subjects: Mapping[str, Any], subject_keys: Optional[Iterable[str]] = None
) -> None:
    """Raise SubjectSetError unless there is exactly one entry per recognized subject."""
    expected = set(subject_keys or SUBJECT_KEYS)
    present = set(subjects)
    if present != expected:
        raise SubjectSetError(missing=expected - present, extra=present - expected)


def term_average(subjects: Mapping[str, SubjectScore], coefficients: Mapping[str, float]) -> float:
    """Weighted mean of subject averages; missing coefficients count as 1."""
    if not subjects:
        raise EmptySubjectSetError("Cannot compute a term average from an empty subject set.")

    total_weighted = Decimal(0)
    total_coef = Decimal(0)
    for key, score in subjects.items():
        coef = float(coefficients.get(key, 1))
        # also rejects NaN and infinity
        if not 0 < coef < float("inf"):
            raise CoefficientError(key, coef)
        total_weighted += to_decimal(score.average) * to_decimal(coef)
        total_coef += to_decimal(coef)

    return round_half_up(total_weighted / total_coef, 2)


def compute_term_average(subjects: Mapping[str, SubjectScore], config: EngineConfig) -> Dict[str, Any]:
    """Average and decision of a complete subject set (one entry per recognized subject)."""
    if subjects:
        validate_subject_set(subjects)
    average = term_average(subjects, config.coefficients)
    return {
        "average": average,
        "decision": classify(average, config.thresholds()),
    }
