"""
errors.py — Exception types raised by the grade engine.

Input-range problems (raw scores outside 0-20) are a caller contract and are
never raised here; the API layer rejects them before they reach the engine.
"""


class GradeEngineError(Exception):
    """Base class for every error the engine raises."""


class ConfigurationError(GradeEngineError, ValueError):
    """Coefficients or subject sets that make a computation impossible."""


class EmptySubjectSetError(ConfigurationError):
    pass


class CoefficientError(ConfigurationError):
    def __init__(self, subject: str, value: float):
        self.subject = subject
        self.value = value
        super().__init__(f"Coefficient for '{subject}' must be positive, got {value}.")


class SubjectSetError(GradeEngineError, ValueError):
    """A term record does not hold exactly one entry per recognized subject."""

    def __init__(self, missing=None, extra=None):
        self.missing = sorted(missing or [])
        self.extra = sorted(extra or [])
        parts = []
        if self.missing:
            parts.append("missing: " + ", ".join(self.missing))
        if self.extra:
            parts.append("unknown: " + ", ".join(self.extra))
        super().__init__("Invalid subject set (" + "; ".join(parts) + ").")


class InvalidScopeError(GradeEngineError, ValueError):
    pass


class RecomputeNotConfirmedError(GradeEngineError):
    """Bulk recompute was asked to commit without operator confirmation."""


class UnknownSubjectError(GradeEngineError, KeyError):
    def __init__(self, subject: str):
        self.subject = subject
        super().__init__(f"Unknown subject '{subject}'.")

    def __str__(self) -> str:
        return self.args[0]


class StudentNotFoundError(GradeEngineError, KeyError):
    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"Student '{student_id}' not found.")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateStudentError(GradeEngineError, ValueError):
    """Two students of one roster share an id."""

    def __init__(self, student_ids):
        self.student_ids = sorted(student_ids)
        super().__init__("Duplicate student id(s): " + ", ".join(self.student_ids) + ".")
