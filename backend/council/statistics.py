"""
statistics.py — Class-level statistics over a ranked roster.

Computes, for one term or the annual scope:
- Class average, pass rate, pass/fail counts, best and lowest averages
- Top performers (honor decisions for a term, top 3 for the year)
- Score-band distribution (empty bands omitted)
- At-risk band (9.00-9.99)
- Behavior and absence flags (term scope), full list + preview
- Subject performance (term) / per-term class means (annual)

Every function is a pure read of the roster; students are never modified.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from council.config import PASS_MARK, SUBJECT_KEYS, SUBJECT_LABELS, EngineConfig
from council.decisions import HONOR_DECISIONS, NEGATIVE_ABSENCES, NEGATIVE_BEHAVIORS
from council.errors import InvalidScopeError, UnknownSubjectError
from council.models import TERM_IDS, Student
from council.ranking import ANNUAL, Scope, parse_scope, scope_average, scope_rank
from council.scoring import exact_mean, percentage, round_half_up

AT_RISK_RANGE = (9.0, 10.0)
ANNUAL_TOP_COUNT = 3
PREVIEW_LIMIT = 5

# (label, min, max) ordered high to low; the top band includes 20.
SCORE_BANDS = [
    ("18-20", 18.0, 20.0),
    ("16-18", 16.0, 18.0),
    ("14-16", 14.0, 16.0),
    ("12-14", 12.0, 14.0),
    ("10-12", 10.0, 12.0),
    ("0-10", 0.0, 10.0),
]
_BAND_EDGES = [-np.inf, 10.0, 12.0, 14.0, 16.0, 18.0, np.inf]
_BAND_LABELS = [label for label, _, _ in reversed(SCORE_BANDS)]


# ── Helpers ─────────────────────────────────────────────────────────

def _sanitize(obj):
    """Recursively coerce numpy/pandas scalars to JSON-safe Python types."""
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_sanitize(v) for v in obj]
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (np.floating, float)):
        v = float(obj)
        return None if (np.isnan(v) or np.isinf(v)) else v
    return obj


def _roster_frame(roster: Sequence[Student], scope: Scope) -> pd.DataFrame:
    """One row per student with the scope's average, rank, decision and statuses."""
    rows = []
    for student in roster:
        row = {
            "id": student.id,
            "name": student.name,
            "average": scope_average(student, scope),
            "rank": scope_rank(student, scope),
        }
        if scope == ANNUAL:
            row["decision"] = student.annual.decision
            row["behavior_status"] = None
            row["absence_status"] = None
        else:
            term = student.terms[scope]
            row["decision"] = term.decision
            row["behavior_status"] = term.behavior_status
            row["absence_status"] = term.absence_status
        rows.append(row)
    columns = ["id", "name", "average", "rank", "decision", "behavior_status", "absence_status"]
    return pd.DataFrame(rows, columns=columns)


def _by_average(df: pd.DataFrame) -> pd.DataFrame:
    # mergesort is stable, so equal averages keep roster order
    return df.sort_values("average", ascending=False, kind="mergesort")


def _entries(df: pd.DataFrame, extra: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    fields = ["id", "name", "average", "rank"] + (extra or [])
    return [{f: row[f] for f in fields} for _, row in df.iterrows()]


def _pass_line(scope: Scope, config: EngineConfig) -> float:
    return config.admission_threshold if scope == ANNUAL else PASS_MARK


# ── Building blocks ─────────────────────────────────────────────────

def score_distribution(averages: Sequence[float]) -> List[Dict[str, Any]]:
    """Count averages per fixed band, high to low, dropping empty bands."""
    values = pd.Series(list(averages), dtype=float)
    if values.empty:
        return []
    bands = pd.cut(values, bins=_BAND_EDGES, labels=_BAND_LABELS, right=False)
    counts = bands.value_counts()
    distribution = []
    for label, low, high in SCORE_BANDS:
        count = int(counts.get(label, 0))
        if count > 0:
            distribution.append({"band": label, "min": low, "max": high, "count": count})
    return distribution


def flag_behavior(roster: Sequence[Student], term: Scope) -> List[Dict[str, Any]]:
    """All students of the term whose behavior status is in the negative set."""
    term = parse_scope(term)
    if term == ANNUAL:
        return []
    return [
        {"id": s.id, "name": s.name, "behavior_status": s.terms[term].behavior_status,
         "decision": s.terms[term].decision}
        for s in roster
        if s.terms[term].behavior_status in NEGATIVE_BEHAVIORS
    ]


def flag_absence(roster: Sequence[Student], term: Scope) -> List[Dict[str, Any]]:
    """All students of the term whose absence status is in the negative set."""
    term = parse_scope(term)
    if term == ANNUAL:
        return []
    return [
        {"id": s.id, "name": s.name, "absence_status": s.terms[term].absence_status}
        for s in roster
        if s.terms[term].absence_status in NEGATIVE_ABSENCES
    ]


def at_risk_students(roster: Sequence[Student], scope: Scope) -> List[Dict[str, Any]]:
    scope = parse_scope(scope)
    low, high = AT_RISK_RANGE
    return [
        {"id": s.id, "name": s.name, "average": scope_average(s, scope)}
        for s in roster
        if low <= scope_average(s, scope) < high
    ]


# ── Class statistics ────────────────────────────────────────────────

def compute_class_statistics(
    roster: Sequence[Student],
    scope: Scope,
    config: EngineConfig,
    preview_limit: int = PREVIEW_LIMIT,
) -> Dict[str, Any]:
    """Statistics report for one class roster in one scope (term 1-3 or annual)."""
    scope = parse_scope(scope)
    df = _roster_frame(roster, scope)
    pass_line = _pass_line(scope, config)

    report: Dict[str, Any] = {
        "scope": scope,
        "mode": "annual" if scope == ANNUAL else "term",
        "total_students": len(df),
        "pass_line": pass_line,
        "class_average": None,
        "pass_rate": 0.0,
        "pass_count": 0,
        "fail_count": 0,
        "max_average": None,
        "min_average": None,
        "top_performers": [],
        "distribution": [],
        "at_risk": [],
    }
    if scope != ANNUAL:
        report["behavior_flags"] = {"total": 0, "preview": [], "students": []}
        report["absence_flags"] = {"total": 0, "preview": [], "students": []}

    if df.empty:
        return report

    averages = df["average"].astype(float)
    passed = averages >= pass_line
    report.update({
        "class_average": round_half_up(exact_mean(averages), 2),
        "pass_rate": percentage(passed.sum(), len(averages)),
        "pass_count": int(passed.sum()),
        "fail_count": int((~passed).sum()),
        "max_average": float(averages.max()),
        "min_average": float(averages.min()),
        "distribution": score_distribution(averages.tolist()),
        "at_risk": at_risk_students(roster, scope),
    })

    ordered = _by_average(df)
    if scope == ANNUAL:
        report["top_performers"] = _entries(ordered.head(ANNUAL_TOP_COUNT), ["decision"])
        report["admitted_count"] = report["pass_count"]
        report["repeat_count"] = report["fail_count"]
        report["term_averages"] = [
            {
                "term": term_id,
                "average": round_half_up(exact_mean(s.terms[term_id].average for s in roster), 2),
            }
            for term_id in TERM_IDS
        ]
    else:
        honors = ordered[ordered["decision"].isin(HONOR_DECISIONS)]
        report["top_performers"] = _entries(honors, ["decision"])
        report["subject_performance"] = subject_performance(roster, scope)

        behavior = flag_behavior(roster, scope)
        absence = flag_absence(roster, scope)
        report["behavior_flags"] = {
            "total": len(behavior),
            "preview": behavior[:preview_limit],
            "students": behavior,
        }
        report["absence_flags"] = {
            "total": len(absence),
            "preview": absence[:preview_limit],
            "students": absence,
        }

    return _sanitize(report)


# ── Subject statistics ──────────────────────────────────────────────

def subject_performance(roster: Sequence[Student], term: Scope) -> List[Dict[str, Any]]:
    """Class mean of every subject for one term, best subject first."""
    term = parse_scope(term)
    if term == ANNUAL or not roster:
        return []
    frame = pd.DataFrame([
        {key: s.terms[term].subjects[key].average for key in SUBJECT_KEYS if key in s.terms[term].subjects}
        for s in roster
    ])
    means = pd.Series(
        {key: round_half_up(exact_mean(frame[key].dropna()), 2) for key in frame.columns},
        dtype=float,
    ).sort_values(ascending=False, kind="mergesort")
    return _sanitize([
        {"subject": key, "label": SUBJECT_LABELS.get(key, key), "average": mean}
        for key, mean in means.items()
    ])


def compute_subject_statistics(roster: Sequence[Student], term: Scope, subject: str) -> Dict[str, Any]:
    """Mean, best, lowest and pass rate of one subject across the class for one term."""
    term = parse_scope(term)
    if term == ANNUAL:
        raise InvalidScopeError("Subject statistics are only available for a term.")
    if subject not in SUBJECT_LABELS:
        raise UnknownSubjectError(subject)

    marks = pd.Series(
        [s.terms[term].subjects[subject].average for s in roster if subject in s.terms[term].subjects],
        dtype=float,
    )
    result: Dict[str, Any] = {
        "term": term,
        "subject": subject,
        "label": SUBJECT_LABELS[subject],
        "count": len(marks),
        "average": None,
        "max": None,
        "min": None,
        "pass_rate": 0.0,
    }
    if marks.empty:
        return result

    result.update({
        "average": round_half_up(exact_mean(marks), 2),
        "max": float(marks.max()),
        "min": float(marks.min()),
        "pass_rate": percentage((marks >= PASS_MARK).sum(), len(marks)),
    })
    return _sanitize(result)
