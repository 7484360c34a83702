"""
Rubric goals and the ordinal grade scale.
"""

from typing import Any, Dict, Optional, Tuple

from .enums import Grade, RubricGoal
from .exceptions import InvalidGradeError, ValidationError


GOALS: Tuple[str, ...] = tuple(goal.value for goal in RubricGoal)
GRADES: Tuple[str, ...] = tuple(grade.value for grade in Grade)

# Ungraded sentinel; never ranked.
UNGRADED = ""

GRADE_RANK: Dict[str, int] = {grade.value: position for position, grade in enumerate(Grade)}


def rank(grade: Any) -> Optional[int]:
    """Return the ordinal rank of a grade, or None when it is missing or invalid."""
    if not isinstance(grade, str):
        return None
    return GRADE_RANK.get(grade)


def is_valid_grade(grade: Any) -> bool:
    return rank(grade) is not None


def is_ungraded(grade: Any) -> bool:
    return grade is None or grade == UNGRADED


def validate_grade(grade: Any) -> str:
    """Return the grade unchanged, or raise InvalidGradeError."""
    if not is_valid_grade(grade):
        raise InvalidGradeError(grade)
    return grade


def validate_goal(goal: Any) -> str:
    """Return the goal unchanged if it belongs to the rubric."""
    if goal not in GOALS:
        raise ValidationError(
            f"Unknown goal {goal!r}. Must be one of: {', '.join(GOALS)}",
            error_code="invalid_goal",
            details={"goal": goal}
        )
    return goal
