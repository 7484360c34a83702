"""
Custom exceptions for the EvalTrack platform.
"""

from typing import Optional, Any, Dict


class EvalTrackException(Exception):
    """Base exception for all EvalTrack-related errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(EvalTrackException):
    """Raised when data validation fails."""
    pass


class InvalidGradeError(ValidationError):
    """Raised when a grade is not one of the rubric levels."""

    def __init__(self, grade: Any):
        super().__init__(
            f"Invalid grade {grade!r}. Must be MANA, MPA, or MA",
            error_code="invalid_grade",
            details={"grade": grade}
        )


class NotFoundError(EvalTrackException):
    """Raised when a requested resource is not found."""
    pass


class EnrollmentNotFoundError(NotFoundError):
    """Raised when a student has no enrollment in a class."""

    def __init__(self, class_id: str, cpf: str):
        super().__init__(
            f"Student {cpf} is not enrolled in class {class_id}",
            error_code="enrollment_not_found",
            details={"class_id": class_id, "cpf": cpf}
        )


class ConflictError(EvalTrackException):
    """Raised when attempting to create a duplicate entity."""
    pass


class DuplicateEnrollmentError(ConflictError):
    """Raised when a student is enrolled twice in the same class."""

    def __init__(self, class_id: str, cpf: str):
        super().__init__(
            "Student is already enrolled in this class",
            error_code="duplicate_enrollment",
            details={"class_id": class_id, "cpf": cpf}
        )


class PersistenceError(EvalTrackException):
    """Raised when persistence operations fail."""
    pass


class ConfigurationError(EvalTrackException):
    """Raised when configuration is invalid."""
    pass
