"""
EvalTrack: classroom evaluation tracker.

Keeps students, classes and enrollments in memory, records teacher grades and
student self-evaluations against a fixed rubric, and reports where students
rate themselves above their teacher.
"""

__version__ = "1.0.0"
__author__ = "EvalTrack Development Team"
__description__ = "Classroom evaluation tracker with self-evaluation discrepancy reports"
