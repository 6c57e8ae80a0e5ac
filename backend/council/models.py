"""
models.py — Grade-book data model.

Derived fields (subject average, term average, rank, annual figures) live next
to the raw marks they come from. They are only ever written by the engine's
recompute functions; callers author raw marks and council statuses.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from council.config import SUBJECT_KEYS
from council.decisions import DEFAULT_ABSENCE, DEFAULT_BEHAVIOR, NO_DISTINCTION, REPEATS
from council.errors import DuplicateStudentError

TERM_IDS = (1, 2, 3)


class SubjectScore(BaseModel):
    evaluation: float = 0.0
    test: float = 0.0
    exam: float = 0.0
    remark: str = ""
    average: float = 0.0


class TermRecord(BaseModel):
    subjects: Dict[str, SubjectScore]
    average: float = 0.0
    rank: int = 0
    decision: str = NO_DISTINCTION
    behavior_status: str = DEFAULT_BEHAVIOR
    absence_status: str = DEFAULT_ABSENCE
    observation: str = ""


class AnnualRecord(BaseModel):
    average: float = 0.0
    rank: int = 0
    decision: str = REPEATS


class Student(BaseModel):
    id: str
    name: str
    gender: Literal["M", "F"] = "M"
    birth_date: str = ""
    registration_number: str = ""
    terms: Dict[int, TermRecord]
    annual: AnnualRecord = Field(default_factory=AnnualRecord)

    @field_validator("terms")
    @classmethod
    def _three_terms(cls, terms):
        if set(terms) != set(TERM_IDS):
            raise ValueError(f"terms must hold exactly terms {list(TERM_IDS)}")
        return terms


class ClassGroup(BaseModel):
    id: str
    name: str
    major: str = ""
    year: str = ""
    students: List[Student] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_student_ids(self):
        ensure_unique_ids(self.students)
        return self


def ensure_unique_ids(students: List[Student]) -> None:
    """Raise DuplicateStudentError if two students share an id."""
    seen, duplicates = set(), set()
    for student in students:
        if student.id in seen:
            duplicates.add(student.id)
        seen.add(student.id)
    if duplicates:
        raise DuplicateStudentError(duplicates)


# ── Factories ───────────────────────────────────────────────────────

def empty_subject_set(subject_keys: Optional[List[str]] = None) -> Dict[str, SubjectScore]:
    return {key: SubjectScore() for key in (subject_keys or SUBJECT_KEYS)}


def empty_term() -> TermRecord:
    return TermRecord(subjects=empty_subject_set())


def new_student(
    student_id: str,
    name: str,
    gender: str = "M",
    birth_date: str = "",
    registration_number: str = "",
) -> Student:
    """Create a student with all-zero scores in every term and default decisions."""
    return Student(
        id=student_id,
        name=name,
        gender=gender,
        birth_date=birth_date,
        registration_number=registration_number,
        terms={term_id: empty_term() for term_id in TERM_IDS},
        annual=AnnualRecord(),
    )
