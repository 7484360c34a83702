# tests/test_discrepancy.py

import itertools

import pytest

from evaltrack.core.discrepancy import (
    DiscrepancyResult,
    class_discrepancy_report,
    compare_goal,
    student_discrepancy,
)
from evaltrack.core.enums import EvaluationKind
from evaltrack.core.rubric import GOALS, GRADE_RANK, GRADES


# --- compare_goal ---


def test_compare_goal_matches_rank_order_for_every_valid_pair():
    for teacher, own in itertools.product(GRADES, GRADES):
        assert compare_goal(teacher, own) == (GRADE_RANK[teacher] < GRADE_RANK[own])


def test_compare_goal_equal_grades_are_not_discrepant():
    assert compare_goal("MA", "MA") is False
    assert compare_goal("MANA", "MANA") is False


def test_compare_goal_flags_self_overstatement():
    assert compare_goal("MPA", "MA") is True
    assert compare_goal("MANA", "MPA") is True
    assert compare_goal("MANA", "MA") is True


def test_compare_goal_never_flags_self_understatement():
    assert compare_goal("MA", "MPA") is False
    assert compare_goal("MA", "MANA") is False
    assert compare_goal("MPA", "MANA") is False


@pytest.mark.parametrize("teacher, own", [
    ("", "MA"),
    ("MANA", ""),
    (None, "MA"),
    ("MANA", None),
    ("X", "MA"),
    ("MANA", "X"),
    ("ma", "MA"),
    (None, None),
])
def test_compare_goal_missing_or_invalid_grades_are_never_discrepant(teacher, own):
    assert compare_goal(teacher, own) is False


# --- student_discrepancy ---


def test_student_discrepancy_with_nothing_considered():
    result = student_discrepancy([], {}, {})
    assert result.percentage == 0
    assert result.highlight is False


def test_student_discrepancy_no_grades_on_any_goal():
    result = student_discrepancy(GOALS, {}, {})
    assert result == DiscrepancyResult(percentage=0, highlight=False, considered=0, discrepant=0)


def test_student_discrepancy_counts_goals_graded_on_either_side():
    teacher = {"Requirements": "MA", "Configuration Management": "MPA"}
    own = {"Requirements": "MA", "Configuration Management": "MA", "Project Management": "MANA"}

    result = student_discrepancy(GOALS, teacher, own)

    assert result.considered == 3
    assert result.discrepant == 1
    assert result.percentage == 33
    assert result.highlight is True


def test_student_discrepancy_highlight_is_strictly_above_threshold():
    # 1 of 4 considered goals = 25%, not highlighted
    teacher = {"Requirements": "MPA", "Design": "MA", "Tests": "MA", "Refactoring": "MA"}
    own = {"Requirements": "MA", "Design": "MA", "Tests": "MA", "Refactoring": "MA"}

    result = student_discrepancy(GOALS, teacher, own)

    assert result.percentage == 25
    assert result.highlight is False


def test_student_discrepancy_rounds_to_nearest_integer():
    # 2 of 3 = 66.67%
    teacher = {"Requirements": "MANA", "Design": "MANA", "Tests": "MA"}
    own = {"Requirements": "MA", "Design": "MPA", "Tests": "MA"}

    assert student_discrepancy(GOALS, teacher, own).percentage == 67


def test_student_discrepancy_ignores_goals_outside_the_list():
    teacher = {"Requirements": "MANA", "Unknown": "MANA"}
    own = {"Requirements": "MANA", "Unknown": "MA"}

    result = student_discrepancy(GOALS, teacher, own)

    assert result.considered == 1
    assert result.discrepant == 0


def test_student_discrepancy_understatement_counts_as_considered_only():
    teacher = {"Requirements": "MA", "Design": "MA"}
    own = {"Requirements": "MANA", "Design": "MPA"}

    result = student_discrepancy(GOALS, teacher, own)

    assert result.considered == 2
    assert result.discrepant == 0
    assert result.percentage == 0


def test_student_discrepancy_custom_threshold():
    teacher = {"Requirements": "MPA", "Design": "MA", "Tests": "MA", "Refactoring": "MA"}
    own = {"Requirements": "MA", "Design": "MA", "Tests": "MA", "Refactoring": "MA"}

    assert student_discrepancy(GOALS, teacher, own, threshold=20).highlight is True


# --- class_discrepancy_report ---


def test_class_discrepancy_report_follows_enrollment_order(school_class, students):
    for student in students:
        school_class.enroll(student)

    first, second, _ = students
    school_class.record_evaluation(first.cpf, "Design", "MANA", EvaluationKind.TEACHER)
    school_class.record_evaluation(first.cpf, "Design", "MA", EvaluationKind.SELF)
    school_class.record_evaluation(second.cpf, "Tests", "MA", EvaluationKind.TEACHER)
    school_class.record_evaluation(second.cpf, "Tests", "MPA", EvaluationKind.SELF)

    report = class_discrepancy_report(school_class)

    assert [row.cpf for row in report] == [s.cpf for s in students]
    assert report[0].goals["Design"] is True
    assert report[0].result.percentage == 100
    assert report[0].result.highlight is True
    assert report[1].goals["Tests"] is False
    assert report[1].result.percentage == 0
    assert report[2].result.considered == 0
    assert set(report[2].goals) == set(GOALS)


def test_discrepancy_row_to_dict_flattens_result(school_class, students):
    school_class.enroll(students[0])
    row = class_discrepancy_report(school_class)[0]

    data = row.to_dict()

    assert data["cpf"] == students[0].cpf
    assert data["name"] == "Ana Souza"
    assert data["percentage"] == 0
    assert data["highlight"] is False
