"""
Discrepancy engine: compares teacher grades with student self-evaluations.

Only overstatement is flagged. A goal is discrepant when the student's
self-grade ranks strictly higher than the teacher's grade; a student rating
themselves lower than the teacher did is never reported. All functions are
pure and derive their results on demand from an enrollment's maps.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .entities import Enrollment, SchoolClass
from .rubric import GOALS, is_ungraded, rank


HIGHLIGHT_THRESHOLD = 25


@dataclass
class DiscrepancyResult:
    """Aggregate discrepancy signal for one student."""
    percentage: int
    highlight: bool
    considered: int = 0
    discrepant: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'percentage': self.percentage,
            'highlight': self.highlight,
            'considered': self.considered,
            'discrepant': self.discrepant,
        }


@dataclass
class StudentDiscrepancyRow:
    """One line of a class discrepancy report."""
    cpf: str
    name: str
    goals: Dict[str, bool]
    result: DiscrepancyResult
    teacher_evaluations: Dict[str, str] = field(default_factory=dict)
    self_evaluations: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cpf': self.cpf,
            'name': self.name,
            'goals': dict(self.goals),
            'teacher_evaluations': dict(self.teacher_evaluations),
            'self_evaluations': dict(self.self_evaluations),
            **self.result.to_dict(),
        }


def compare_goal(teacher_grade: Any, self_grade: Any) -> bool:
    """True iff both grades are valid and the self grade ranks above the teacher's."""
    teacher_rank = rank(teacher_grade)
    self_rank = rank(self_grade)
    if teacher_rank is None or self_rank is None:
        return False
    return teacher_rank < self_rank


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def student_discrepancy(goals: Sequence[str], teacher_map: Mapping[str, Any],
                        self_map: Mapping[str, Any],
                        threshold: int = HIGHLIGHT_THRESHOLD) -> DiscrepancyResult:
    """
    Aggregate discrepancy over a list of goals.

    A goal is considered when at least one side holds a non-empty grade.
    The percentage is discrepant/considered rounded to an integer, and 0 when
    nothing was considered. ``highlight`` is set when the percentage exceeds
    ``threshold``.
    """
    considered = 0
    discrepant = 0
    for goal in goals:
        teacher_grade = teacher_map.get(goal)
        self_grade = self_map.get(goal)
        if is_ungraded(teacher_grade) and is_ungraded(self_grade):
            continue
        considered += 1
        if compare_goal(teacher_grade, self_grade):
            discrepant += 1

    percentage = _round_half_up(100 * discrepant / considered) if considered else 0
    return DiscrepancyResult(
        percentage=percentage,
        highlight=percentage > threshold,
        considered=considered,
        discrepant=discrepant,
    )


def enrollment_discrepancy(enrollment: Enrollment, goals: Sequence[str] = GOALS,
                           threshold: int = HIGHLIGHT_THRESHOLD) -> StudentDiscrepancyRow:
    teacher_map = enrollment.teacher_evaluations
    self_map = enrollment.self_evaluations
    return StudentDiscrepancyRow(
        cpf=enrollment.cpf,
        name=enrollment.student.name,
        goals={goal: compare_goal(teacher_map.get(goal), self_map.get(goal)) for goal in goals},
        result=student_discrepancy(goals, teacher_map, self_map, threshold),
        teacher_evaluations=teacher_map,
        self_evaluations=self_map,
    )


def class_discrepancy_report(school_class: SchoolClass, goals: Optional[Sequence[str]] = None,
                             threshold: int = HIGHLIGHT_THRESHOLD) -> List[StudentDiscrepancyRow]:
    """Discrepancy rows for every enrollment, in enrollment order."""
    goals = GOALS if goals is None else goals
    return [enrollment_discrepancy(enrollment, goals, threshold)
            for enrollment in school_class.enrollments]
