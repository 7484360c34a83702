#!/usr/bin/env python3
"""
Demo scenario for the EvalTrack platform.
"""

import os
import sys
import traceback

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from evaltrack.core.enums import EvaluationKind
from evaltrack.core.exceptions import ConflictError, ValidationError
from evaltrack.core.rubric import GOALS
from evaltrack.main import EvalTrackPlatform


def run_demo():
    """Run a walkthrough of the EvalTrack platform against in-memory storage."""
    print("=" * 60)
    print("EVALTRACK CLASSROOM EVALUATION - DEMO")
    print("=" * 60)

    platform = EvalTrackPlatform({'persist': False})
    service = platform.enrollment_service

    try:
        print("\n1. Creating sample data...")
        school_class = create_sample_data(service)

        print("\n2. Demonstrating enrollment rules...")
        demonstrate_enrollment(service, school_class)

        print("\n3. Recording evaluations...")
        demonstrate_evaluations(service, school_class)

        print("\n4. Discrepancy report...")
        show_discrepancies(service, school_class)

        print("\n5. Scheduling a self-evaluation request...")
        demonstrate_scheduling(platform, school_class)

        print("\n6. Platform statistics...")
        show_statistics(service)

        print("\n" + "=" * 60)
        print("DEMO COMPLETED SUCCESSFULLY!")
        print("=" * 60)

    except Exception as e:
        print(f"\nDemo failed with error: {e}")
        traceback.print_exc()

    finally:
        platform.shutdown()


def create_sample_data(service):
    """Create students and a class."""
    print("  Creating students...")
    service.create_student("Ana Souza", "123.456.789-00", "ana@example.com")
    service.create_student("Bruno Lima", "987.654.321-00", "bruno@example.com")
    service.create_student("Carla Dias", "111.222.333-44", "carla@example.com")

    print("  Creating class...")
    school_class = service.create_class("Software Engineering", 1, 2024)
    print(f"  ✓ Class {school_class.display_key} created")
    return school_class


def demonstrate_enrollment(service, school_class):
    """Enroll everyone, then show the duplicate check."""
    for student in service.list_students():
        service.enroll(school_class.id, student.cpf)
        print(f"    {student.cpf} -> {school_class.display_key}")

    try:
        service.enroll(school_class.id, "123.456.789-00")
    except ConflictError as e:
        print(f"    Duplicate enrollment rejected: {e.message}")


def demonstrate_evaluations(service, school_class):
    """Teacher grades and self-evaluations, including an invalid grade."""
    # (goal, teacher grade, self grade)
    sample = {
        "12345678900": [("Requirements", "MA", "MA"), ("Design", "MPA", "MA"), ("Tests", "MANA", "MPA")],
        "98765432100": [("Requirements", "MPA", "MPA"), ("Tests", "MA", "MANA")],
    }
    for cpf, rows in sample.items():
        for goal, teacher_grade, self_grade in rows:
            service.record_evaluation(school_class.id, cpf, goal, teacher_grade, EvaluationKind.TEACHER)
            service.record_evaluation(school_class.id, cpf, goal, self_grade, EvaluationKind.SELF)
        print(f"    Recorded {len(rows)} goals for {cpf}")

    try:
        service.record_evaluation(school_class.id, "11122233344", "Design", "A+")
    except ValidationError as e:
        print(f"    Invalid grade rejected: {e.message}")


def show_discrepancies(service, school_class):
    """Print the per-student discrepancy table."""
    header = "  ".join(goal[:6] for goal in GOALS)
    print(f"    {'student':20}  {header}  pct")
    for row in service.discrepancy_report(school_class.id):
        flags = "  ".join(("  X   " if row.goals[goal] else "  .   ") for goal in GOALS)
        marker = " <--" if row.result.highlight else ""
        print(f"    {row.name:20}  {flags}  {row.result.percentage:3}%{marker}")


def demonstrate_scheduling(platform, school_class):
    """Compute (but do not queue) a delayed request."""
    scheduled = platform.scheduler_service.schedule_self_evaluation_request(
        school_class, "Refactoring", days=1, hours=6
    )
    print(f"    {scheduled.message}")


def show_statistics(service):
    """Show platform statistics."""
    stats = service.get_statistics()
    print(f"    Students: {stats['total_students']}")
    print(f"    Classes: {stats['total_classes']}")
    print(f"    Enrollments: {stats['total_enrollments']}")


if __name__ == "__main__":
    run_demo()
