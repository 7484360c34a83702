"""
Enumerations and constants for the EvalTrack platform.
"""

from enum import Enum


class Grade(Enum):
    """Rubric grade levels, lowest first."""
    MANA = "MANA"  # Meta Ainda Nao Atingida
    MPA = "MPA"    # Meta Parcialmente Atingida
    MA = "MA"      # Meta Atingida


class RubricGoal(Enum):
    """Evaluation goals in display order."""
    REQUIREMENTS = "Requirements"
    CONFIGURATION_MANAGEMENT = "Configuration Management"
    PROJECT_MANAGEMENT = "Project Management"
    DESIGN = "Design"
    TESTS = "Tests"
    REFACTORING = "Refactoring"


class EvaluationKind(Enum):
    """Who assigned an evaluation."""
    TEACHER = "teacher"
    SELF = "self"
