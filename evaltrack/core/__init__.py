"""
Core module containing the evaluation object model and the discrepancy engine.
"""

from .entities import *
from .exceptions import *
from .enums import *
from .rubric import *
from .discrepancy import *

__all__ = [
    # Entities
    "AbstractEntity",
    "Student",
    "Enrollment",
    "SchoolClass",
    "normalize_cpf",

    # Rubric
    "GOALS",
    "GRADES",
    "UNGRADED",
    "GRADE_RANK",
    "rank",
    "is_valid_grade",
    "is_ungraded",
    "validate_grade",
    "validate_goal",

    # Discrepancy engine
    "HIGHLIGHT_THRESHOLD",
    "DiscrepancyResult",
    "StudentDiscrepancyRow",
    "compare_goal",
    "student_discrepancy",
    "enrollment_discrepancy",
    "class_discrepancy_report",

    # Enums
    "Grade",
    "RubricGoal",
    "EvaluationKind",

    # Exceptions
    "EvalTrackException",
    "ValidationError",
    "InvalidGradeError",
    "NotFoundError",
    "EnrollmentNotFoundError",
    "ConflictError",
    "DuplicateEnrollmentError",
    "PersistenceError",
    "ConfigurationError",
]
