"""
ranking.py — Roster ranking.

Ranks are 1-based sequential positions after sorting a roster descending by
the average of one scope. Four independent rank spaces exist: terms 1, 2, 3
and the annual scope. A rank is only meaningful inside the scope it was
computed for.

Ties on average are broken by registration number, then name, then input
order, so every student gets a distinct rank and the result does not depend
on how the roster happened to be loaded.
"""

from typing import List, Sequence, Union

from council.errors import InvalidScopeError
from council.models import TERM_IDS, Student

ANNUAL = "annual"

Scope = Union[int, str]


def parse_scope(value) -> Scope:
    """Normalize 1 / "1" / "term 1" / "annual" into a scope value."""
    if isinstance(value, bool):
        raise InvalidScopeError(f"Invalid scope: {value!r}")
    if isinstance(value, int):
        if value in TERM_IDS:
            return value
        raise InvalidScopeError(f"Unknown term {value}; expected one of {TERM_IDS} or 'annual'.")
    text = str(value).strip().lower()
    if text == ANNUAL:
        return ANNUAL
    digits = "".join(ch for ch in text if ch.isdigit())
    if digits and int(digits) in TERM_IDS:
        return int(digits)
    raise InvalidScopeError(f"Invalid scope: {value!r}")


def scope_average(student: Student, scope: Scope) -> float:
    if scope == ANNUAL:
        return student.annual.average
    return student.terms[scope].average


def scope_rank(student: Student, scope: Scope) -> int:
    if scope == ANNUAL:
        return student.annual.rank
    return student.terms[scope].rank


def _ranking_order(students: Sequence[Student], scope: Scope) -> List[int]:
    return sorted(range(len(students)), key=lambda idx: (
        -scope_average(students[idx], scope),
        students[idx].registration_number,
        students[idx].name,
        idx,
    ))


def _set_rank(student: Student, scope: Scope, rank: int) -> None:
    if scope == ANNUAL:
        student.annual.rank = rank
    else:
        student.terms[scope].rank = rank


def rank_roster(students: Sequence[Student], scope: Scope) -> List[Student]:
    """
    Return ranked copies of every student, ordered by rank.
    The whole roster is ranked at once; ranks are never patched one student at a time.
    """
    scope = parse_scope(scope)
    ranked = []
    for position, idx in enumerate(_ranking_order(students, scope), start=1):
        copy = students[idx].model_copy(deep=True)
        _set_rank(copy, scope, position)
        ranked.append(copy)
    return ranked


def rank_scope(students: Sequence[Student], scope: Scope) -> List[Student]:
    """Re-rank one scope, returning copies in the input order."""
    scope = parse_scope(scope)
    copies = [s.model_copy(deep=True) for s in students]
    for position, idx in enumerate(_ranking_order(copies, scope), start=1):
        _set_rank(copies[idx], scope, position)
    return copies


def rank_all_scopes(students: Sequence[Student]) -> List[Student]:
    """Re-rank every term and the annual scope, keeping the input order."""
    copies = list(students)
    for scope in (*TERM_IDS, ANNUAL):
        copies = rank_scope(copies, scope)
    return copies
