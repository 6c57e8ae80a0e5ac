"""
Tests for council/recompute.py — edit cascades and the two-phase bulk recompute.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from pydantic import ValidationError

from council.annual import set_annual_override
from council.config import SUBJECT_KEYS, EngineConfig
from council.decisions import REDIRECTED, REPEATS, WARNING
from council.errors import (
    DuplicateStudentError,
    RecomputeNotConfirmedError,
    StudentNotFoundError,
    SubjectSetError,
    UnknownSubjectError,
)
from council.models import ClassGroup, SubjectScore, new_student
from council.recompute import (
    add_student,
    bulk_recompute,
    commit_bulk_recompute,
    plan_bulk_recompute,
    recompute_class,
    recompute_student,
    remove_student,
    update_subject_score,
)

CONFIG = EngineConfig()


def _student(sid, evaluation, test, exam):
    s = new_student(sid, f"Student {sid}", registration_number=sid)
    for term in s.terms.values():
        for key in SUBJECT_KEYS:
            term.subjects[key] = SubjectScore(evaluation=evaluation, test=test, exam=exam)
    return s


@pytest.fixture
def classes():
    return [
        ClassGroup(id="c1", name="3S1", students=[_student("a", 14, 16, 15), _student("b", 8, 10, 9)]),
        ClassGroup(id="c2", name="3S2", students=[_student("c", 18, 19, 18.5)]),
    ]


class TestStudentCascade:

    def test_recompute_student_refreshes_every_term(self):
        student = recompute_student(_student("a", 14, 16, 15), CONFIG)
        for term in student.terms.values():
            assert term.subjects["math"].average == 15.0
            assert term.average == 15.0
            assert term.decision == "encouragement"

    def test_recompute_student_rejects_incomplete_subject_set(self):
        student = _student("a", 10, 10, 10)
        del student.terms[2].subjects["pe"]
        with pytest.raises(SubjectSetError):
            recompute_student(student, CONFIG)

    def test_update_subject_score_cascades_and_reranks(self):
        roster = [new_student("a", "A", registration_number="1"), new_student("b", "B", registration_number="2")]
        roster = update_subject_score(roster, "b", 1, "math", 20, 20, 20, CONFIG, remark="great")
        assert [s.id for s in roster] == ["a", "b"]
        b = roster[1].terms[1]
        assert b.subjects["math"].average == 20.0
        assert b.subjects["math"].remark == "great"
        assert b.average == round(20 / 12, 2)
        assert b.decision == WARNING
        assert b.rank == 1
        assert roster[0].terms[1].rank == 2
        # other terms untouched
        assert roster[1].terms[2].rank == 0

    def test_update_unknown_student_or_subject(self):
        roster = [new_student("a", "A")]
        with pytest.raises(StudentNotFoundError):
            update_subject_score(roster, "zz", 1, "math", 10, 10, 10, CONFIG)
        with pytest.raises(UnknownSubjectError):
            update_subject_score(roster, "a", 1, "latin", 10, 10, 10, CONFIG)

    def test_add_and_remove_rerank_all_scopes(self):
        roster = recompute_class([_student("a", 14, 16, 15), _student("b", 8, 10, 9)], CONFIG)
        roster = add_student(roster, _student("c", 20, 20, 20), CONFIG)
        assert [s.annual.rank for s in roster] == [2, 3, 1]
        roster = remove_student(roster, "c")
        assert [s.annual.rank for s in roster] == [1, 2]
        assert [s.terms[3].rank for s in roster] == [1, 2]
        with pytest.raises(StudentNotFoundError):
            remove_student(roster, "c")

    def test_add_student_recomputes_raw_marks(self):
        roster = recompute_class([_student("a", 14, 16, 15)], CONFIG)
        newcomer = _student("c", 20, 20, 20)
        assert newcomer.terms[1].average == 0.0
        roster = add_student(roster, newcomer, CONFIG)
        added = roster[1]
        assert added.terms[1].average == 20.0
        assert added.annual.average == 20.0
        assert added.annual.decision == "promoted"
        assert added.terms[1].rank == 1
        assert roster[0].terms[1].rank == 2

    def test_update_keeps_every_student_in_place(self):
        roster = [new_student(sid, name) for sid, name in (("a", "Amine"), ("b", "Sara"), ("c", "Yanis"))]
        roster = update_subject_score(roster, "b", 2, "math", 20, 20, 20, CONFIG)
        assert [s.name for s in roster] == ["Amine", "Sara", "Yanis"]
        assert roster[1].terms[2].subjects["math"].average == 20.0
        assert [s.terms[2].rank for s in roster] == [2, 1, 3]

    def test_shared_student_id_is_rejected(self):
        roster = [new_student("dup", "Amine"), new_student("dup", "Sara")]
        with pytest.raises(DuplicateStudentError) as exc:
            update_subject_score(roster, "dup", 1, "math", 20, 20, 20, CONFIG)
        assert exc.value.student_ids == ["dup"]
        with pytest.raises(DuplicateStudentError):
            add_student([new_student("a", "Amine")], new_student("a", "Sara"), CONFIG)

    def test_class_group_rejects_shared_student_id(self):
        with pytest.raises(ValidationError):
            ClassGroup(id="c1", name="3S1", students=[new_student("dup", "Amine"), new_student("dup", "Sara")])


class TestBulkRecompute:

    def test_requires_confirmation(self, classes):
        with pytest.raises(RecomputeNotConfirmedError):
            bulk_recompute(classes, CONFIG)

    def test_plan_leaves_input_untouched(self, classes):
        before = [c.model_dump() for c in classes]
        plan = plan_bulk_recompute(classes, CONFIG)
        assert [c.model_dump() for c in classes] == before
        assert plan.class_count == 2
        assert plan.student_count == 3

    def test_recomputes_everything(self, classes):
        result = bulk_recompute(classes, CONFIG, confirmed=True)
        a, b = result[0].students
        assert a.terms[1].average == 15.0
        assert a.terms[1].rank == 1 and b.terms[1].rank == 2
        assert b.annual.average == 9.0
        assert b.annual.decision == REPEATS
        assert a.annual.rank == 1
        assert a.terms[1].observation == "Good work."
        assert result[1].students[0].terms[1].decision == "excellence"

    def test_coefficients_change_averages(self):
        student = _student("a", 10, 10, 10)
        student.terms[1].subjects["math"] = SubjectScore(evaluation=19, test=19, exam=19)
        config = EngineConfig(coefficients={key: (12.0 if key == "math" else 1.0) for key in SUBJECT_KEYS})
        result = bulk_recompute([ClassGroup(id="c", name="c", students=[student])], config, confirmed=True)
        # (19 * 12 + 10 * 11) / 23
        assert result[0].students[0].terms[1].average == 14.7

    def test_manual_overrides_listed_and_overwritten(self, classes):
        student = classes[0].students[1]
        student.terms[1].observation = "Spoke to parents."
        classes[0].students[1] = set_annual_override(student, REDIRECTED)

        plan = plan_bulk_recompute(classes, CONFIG)
        fields = {(o.student_id, o.scope, o.field) for o in plan.overwrites}
        assert ("b", "annual", "decision") in fields
        assert ("b", "1", "observation") in fields

        result = commit_bulk_recompute(plan, confirmed=True)
        b = result[0].students[1]
        assert b.annual.decision == REPEATS
        assert b.terms[1].observation != "Spoke to parents."

    def test_idempotent(self, classes):
        first = bulk_recompute(classes, CONFIG, confirmed=True)
        second_plan = plan_bulk_recompute(first, CONFIG)
        second = commit_bulk_recompute(second_plan, confirmed=True)
        assert [c.model_dump() for c in second] == [c.model_dump() for c in first]
        assert second_plan.overwrites == []
