"""
Council routes — grade engine API endpoints.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException
from pydantic import TypeAdapter, ValidationError

from council.annual import compute_annual
from council.config import MAX_SCORE, SUBJECTS, load_config
from council.decisions import get_decision_ladder
from council.errors import DuplicateStudentError, GradeEngineError
from council.models import ClassGroup, Student, SubjectScore, ensure_unique_ids
from council.ranking import parse_scope, rank_roster
from council.recompute import commit_bulk_recompute, plan_bulk_recompute
from council.scoring import compute_term_average, score_subject, subject_average
from council.statistics import compute_class_statistics, compute_subject_statistics

logger = logging.getLogger(__name__)

router = APIRouter()

CONFIG = load_config()

_students = TypeAdapter(List[Student])
_classes = TypeAdapter(List[ClassGroup])
_subjects = TypeAdapter(Dict[str, SubjectScore])


# ── Helpers ─────────────────────────────────────────────────────────

def validate_score(name: str, value: Any) -> float:
    """Raw marks must be numbers in 0-20; the engine itself never clamps."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise HTTPException(422, f"'{name}' must be a number.")
    if not 0 <= score <= MAX_SCORE:
        raise HTTPException(422, f"'{name}' must be between 0 and {MAX_SCORE:g}, got {score:g}.")
    return score


def _check_marks(subjects: Dict[str, SubjectScore], where: str = "") -> None:
    for key, score in subjects.items():
        for field in ("evaluation", "test", "exam"):
            validate_score(f"{where}{key}.{field}", getattr(score, field))


def _parse(adapter: TypeAdapter, data: Any):
    try:
        return adapter.validate_python(data)
    except ValidationError as exc:
        raise HTTPException(422, exc.errors(include_url=False, include_context=False))


def _students_from_payload(payload: dict) -> List[Student]:
    data = payload.get("data")
    if data is None:
        raise HTTPException(400, "No data provided.")
    students = _parse(_students, data)
    try:
        ensure_unique_ids(students)
    except DuplicateStudentError as exc:
        raise HTTPException(422, str(exc))
    for student in students:
        for term_id, term in student.terms.items():
            _check_marks(term.subjects, f"{student.id}.term{term_id}.")
    return students


def _scope_from_payload(payload: dict):
    try:
        return parse_scope(payload.get("scope", 1))
    except GradeEngineError as exc:
        raise HTTPException(400, str(exc))


def _engine_call(fn, *args, **kwargs):
    """Run an engine function, turning engine errors into 400 responses."""
    try:
        return fn(*args, **kwargs)
    except GradeEngineError as exc:
        logger.warning("Grade engine rejected request: %s", exc)
        raise HTTPException(400, str(exc))


# ── Endpoints ───────────────────────────────────────────────────────

@router.get("/config")
async def get_config():
    """Active thresholds, coefficients, subjects and the decision ladder."""
    return {
        "thresholds": CONFIG.thresholds(),
        "admission_threshold": CONFIG.admission_threshold,
        "coefficients": CONFIG.coefficients,
        "subjects": SUBJECTS,
        "decision_ladder": get_decision_ladder(CONFIG.thresholds()),
    }


@router.post("/subject-average")
async def subject_average_endpoint(payload: dict):
    """Average of one subject from evaluation, test and exam marks."""
    marks = {f: validate_score(f, payload.get(f)) for f in ("evaluation", "test", "exam")}
    return {**marks, "average": subject_average(**marks)}


@router.post("/term-average")
async def term_average_endpoint(payload: dict):
    """Weighted term average and decision from a full subject set."""
    subjects = _parse(_subjects, payload.get("subjects") or {})
    _check_marks(subjects)
    scored = {key: score_subject(score) for key, score in subjects.items()}
    result = _engine_call(compute_term_average, scored, CONFIG)
    result["subjects"] = {key: score.average for key, score in scored.items()}
    return result


@router.post("/annual")
async def annual_endpoint(payload: dict):
    """Annual average and promotion decision from three term averages."""
    terms = payload.get("terms")
    if not isinstance(terms, list) or len(terms) != 3:
        raise HTTPException(400, "Provide 'terms' as a list of three term averages.")
    t1, t2, t3 = (validate_score(f"terms[{i}]", t) for i, t in enumerate(terms))
    return compute_annual(t1, t2, t3, CONFIG.admission_threshold)


@router.post("/rank")
async def rank_endpoint(payload: dict):
    """Rank a roster in one scope (term 1-3 or annual)."""
    students = _students_from_payload(payload)
    scope = _scope_from_payload(payload)
    ranked = _engine_call(rank_roster, students, scope)
    return {"scope": scope, "students": [s.model_dump() for s in ranked]}


@router.post("/statistics")
async def statistics_endpoint(payload: dict):
    """Class statistics for a ranked roster in one scope."""
    students = _students_from_payload(payload)
    scope = _scope_from_payload(payload)
    return _engine_call(compute_class_statistics, students, scope, CONFIG)


@router.post("/subject-statistics")
async def subject_statistics_endpoint(payload: dict):
    """Class mean, best, lowest and pass rate for one subject in one term."""
    students = _students_from_payload(payload)
    subject = payload.get("subject")
    if not subject:
        raise HTTPException(400, "Provide 'subject'.")
    return _engine_call(compute_subject_statistics, students, payload.get("term", 1), subject)


def _plan_from_payload(payload: dict):
    data = payload.get("data")
    if data is None:
        raise HTTPException(400, "No data provided.")
    classes = _parse(_classes, data)
    for group in classes:
        for student in group.students:
            for term_id, term in student.terms.items():
                _check_marks(term.subjects, f"{student.id}.term{term_id}.")
    return _engine_call(plan_bulk_recompute, classes, CONFIG)


@router.post("/recompute/preview")
async def recompute_preview(payload: dict):
    """
    Preview a bulk recompute without committing.
    Expects: { "data": [...classes...] }
    """
    plan = _plan_from_payload(payload)
    return plan.model_dump()


@router.post("/recompute/apply")
async def recompute_apply(payload: dict):
    """
    Recompute every class from raw marks and the current configuration.
    Expects: { "data": [...classes...], "confirm": true }
    Manual decisions and observations are overwritten.
    """
    plan = _plan_from_payload(payload)
    classes = _engine_call(commit_bulk_recompute, plan, confirmed=bool(payload.get("confirm")))
    return {
        "classes": [c.model_dump() for c in classes],
        "overwritten": len(plan.overwrites),
        "student_count": plan.student_count,
    }
