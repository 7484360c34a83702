"""
Services module containing the application services.
"""

from .enrollment_service import EnrollmentService
from .scheduler_service import SchedulerService, ScheduledSelfEvaluation, compute_target_time

__all__ = [
    "EnrollmentService",
    "SchedulerService",
    "ScheduledSelfEvaluation",
    "compute_target_time",
]
