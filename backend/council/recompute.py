"""
recompute.py — Recompute cascades and the bulk recompute.

A raw-score edit recomputes subject average -> term average -> term decision
for one student, then re-ranks that term for the whole class. Adding or
removing a student re-ranks every scope of the class.

Bulk recompute re-derives every average, decision, automatic observation,
annual aggregate and rank of every class from raw marks and the current
configuration. It runs in two phases:

1. plan_bulk_recompute() builds the complete proposed state on copies and
   lists every decision/observation it will replace.
2. commit_bulk_recompute() hands back the proposed state, only once the
   operator has confirmed.

Any error while planning propagates before anything is committed, so the
caller's data is never half-updated.
"""

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from council.annual import apply_annual
from council.config import SUBJECT_LABELS, EngineConfig
from council.decisions import default_observation
from council.errors import RecomputeNotConfirmedError, StudentNotFoundError, UnknownSubjectError
from council.models import TERM_IDS, ClassGroup, Student, SubjectScore, TermRecord, ensure_unique_ids
from council.ranking import ANNUAL, parse_scope, rank_all_scopes, rank_scope
from council.scoring import compute_term_average, score_subject, validate_subject_set

logger = logging.getLogger(__name__)


# ── Single student ──────────────────────────────────────────────────

def recompute_term(term: TermRecord, config: EngineConfig, refresh_observation: bool = False) -> TermRecord:
    """Recompute subject averages, term average and decision of one term record."""
    validate_subject_set(term.subjects)
    subjects = {key: score_subject(score) for key, score in term.subjects.items()}
    result = compute_term_average(subjects, config)

    update = {
        "subjects": subjects,
        "average": result["average"],
        "decision": result["decision"],
    }
    if refresh_observation:
        update["observation"] = default_observation(result["average"])
    return term.model_copy(update=update, deep=True)


def recompute_student(student: Student, config: EngineConfig, refresh_observation: bool = False) -> Student:
    """Recompute all three terms of a student. Annual fields are left as they are."""
    copy = student.model_copy(deep=True)
    for term_id in TERM_IDS:
        copy.terms[term_id] = recompute_term(copy.terms[term_id], config, refresh_observation)
    return copy


def _find(roster: Sequence[Student], student_id: str) -> int:
    for idx, student in enumerate(roster):
        if student.id == student_id:
            return idx
    raise StudentNotFoundError(student_id)


def update_subject_score(
    roster: Sequence[Student],
    student_id: str,
    term,
    subject: str,
    evaluation: float,
    test: float,
    exam: float,
    config: EngineConfig,
    remark: Optional[str] = None,
) -> List[Student]:
    """
    Replace one student's raw marks for one subject and term, then recompute
    that term and re-rank the term roster. Returns a new roster in the same order.
    """
    term = parse_scope(term)
    if term == ANNUAL:
        raise ValueError("Marks are recorded per term, not for the annual scope.")
    if subject not in SUBJECT_LABELS:
        raise UnknownSubjectError(subject)
    ensure_unique_ids(roster)

    idx = _find(roster, student_id)
    student = roster[idx].model_copy(deep=True)
    record = student.terms[term]
    previous = record.subjects.get(subject, SubjectScore())
    record.subjects[subject] = SubjectScore(
        evaluation=evaluation,
        test=test,
        exam=exam,
        remark=previous.remark if remark is None else remark,
    )
    student.terms[term] = recompute_term(record, config)

    updated = list(roster)
    updated[idx] = student
    return rank_scope(updated, term)


def add_student(roster: Sequence[Student], student: Student, config: EngineConfig) -> List[Student]:
    """Recompute the newcomer from raw marks, append it and re-rank every scope."""
    student = apply_annual(recompute_student(student, config), config)
    updated = [*roster, student]
    ensure_unique_ids(updated)
    return rank_all_scopes(updated)


def remove_student(roster: Sequence[Student], student_id: str) -> List[Student]:
    """Drop a student and re-rank every scope of what remains."""
    _find(roster, student_id)
    return rank_all_scopes([s for s in roster if s.id != student_id])


# ── Whole class ─────────────────────────────────────────────────────

def recompute_class(roster: Sequence[Student], config: EngineConfig, refresh_observation: bool = False) -> List[Student]:
    """Full recompute of one roster: terms, annual aggregate, all four rank scopes."""
    students = [
        apply_annual(recompute_student(s, config, refresh_observation), config)
        for s in roster
    ]
    return rank_all_scopes(students)


# ── Bulk recompute ──────────────────────────────────────────────────

class Overwrite(BaseModel):
    class_id: str
    student_id: str
    student_name: str
    scope: str
    field: str
    previous: str
    proposed: str


class RecomputePlan(BaseModel):
    classes: List[ClassGroup]
    overwrites: List[Overwrite] = Field(default_factory=list)
    class_count: int = 0
    student_count: int = 0


def _collect_overwrites(group: ClassGroup, before: Student, after: Student) -> List[Overwrite]:
    found = []

    def note(scope: str, field: str, previous: str, proposed: str):
        found.append(Overwrite(
            class_id=group.id,
            student_id=before.id,
            student_name=before.name,
            scope=scope,
            field=field,
            previous=previous,
            proposed=proposed,
        ))

    for term_id in TERM_IDS:
        old, new = before.terms[term_id], after.terms[term_id]
        if old.decision != new.decision:
            note(str(term_id), "decision", old.decision, new.decision)
        # An empty observation is simply filled in, nothing is lost
        if old.observation and old.observation != new.observation:
            note(str(term_id), "observation", old.observation, new.observation)
    if before.annual.decision != after.annual.decision:
        note(ANNUAL, "decision", before.annual.decision, after.annual.decision)
    return found


def plan_bulk_recompute(classes: Sequence[ClassGroup], config: EngineConfig) -> RecomputePlan:
    """Compute the proposed state for every class without touching the input."""
    proposed: List[ClassGroup] = []
    overwrites: List[Overwrite] = []
    student_count = 0

    for group in classes:
        students = recompute_class(group.students, config, refresh_observation=True)
        for before, after in zip(group.students, students):
            overwrites.extend(_collect_overwrites(group, before, after))
        student_count += len(students)
        proposed.append(group.model_copy(update={"students": students}, deep=True))

    logger.info(
        "Bulk recompute planned: %d classes, %d students, %d values to overwrite",
        len(proposed), student_count, len(overwrites),
    )
    return RecomputePlan(
        classes=proposed,
        overwrites=overwrites,
        class_count=len(proposed),
        student_count=student_count,
    )


def commit_bulk_recompute(plan: RecomputePlan, confirmed: bool = False) -> List[ClassGroup]:
    if not confirmed:
        raise RecomputeNotConfirmedError(
            f"Bulk recompute would overwrite {len(plan.overwrites)} decisions/observations; "
            "confirmation is required."
        )
    logger.info("Bulk recompute committed for %d classes", plan.class_count)
    return [group.model_copy(deep=True) for group in plan.classes]


def bulk_recompute(classes: Sequence[ClassGroup], config: EngineConfig, confirmed: bool = False) -> List[ClassGroup]:
    """Plan and commit in one call; refuses to run unless confirmed."""
    return commit_bulk_recompute(plan_bulk_recompute(classes, config), confirmed=confirmed)
