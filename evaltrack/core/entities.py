"""
Core entities for the EvalTrack platform.
"""

import re
import uuid
from abc import ABC
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .enums import EvaluationKind
from .exceptions import (
    ValidationError, NotFoundError, EnrollmentNotFoundError, DuplicateEnrollmentError
)
from .rubric import GOALS, is_ungraded, validate_goal, validate_grade


_CPF_PUNCTUATION = re.compile(r"[.\-\s]")


def normalize_cpf(cpf: Any) -> str:
    """Strip formatting punctuation from a CPF."""
    if not isinstance(cpf, str):
        raise ValidationError("CPF must be a string", error_code="invalid_cpf")
    return _CPF_PUNCTUATION.sub("", cpf)


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required", error_code="missing_field",
                              details={"field": field_name})
    return value.strip()


def _require_positive_int(value: Any, field_name: str) -> int:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field_name} must be a positive integer", error_code="invalid_field",
                              details={"field": field_name, "value": value})
    return value


def _coerce_kind(kind: Union[EvaluationKind, str]) -> EvaluationKind:
    if isinstance(kind, EvaluationKind):
        return kind
    try:
        return EvaluationKind(kind)
    except ValueError:
        raise ValidationError(f"Unknown evaluation kind {kind!r}", error_code="invalid_kind")


class AbstractEntity(ABC):
    """Base abstract entity with universal ID, lifecycle, and versioning."""

    def __init__(self, entity_id: Optional[str] = None):
        self._id = entity_id or str(uuid.uuid4())
        self._created_at = datetime.now(timezone.utc)
        self._updated_at = self._created_at
        self._version = 1

    @property
    def id(self) -> str:
        return self._id

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def version(self) -> int:
        return self._version

    def touch(self) -> None:
        """Record a modification."""
        self._updated_at = datetime.now(timezone.utc)
        self._version += 1

    def _restore_metadata(self, data: Mapping[str, Any]) -> None:
        if data.get("created_at"):
            self._created_at = datetime.fromisoformat(data["created_at"])
        if data.get("updated_at"):
            self._updated_at = datetime.fromisoformat(data["updated_at"])
        self._version = data.get("version", self._version)

    def to_dict(self) -> Dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            'id': self._id,
            'created_at': self._created_at.isoformat(),
            'updated_at': self._updated_at.isoformat(),
            'version': self._version,
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id}, version={self._version})"


class Student(AbstractEntity):
    """Student identified by a normalized CPF."""

    def __init__(self, name: str, cpf: str, email: str):
        cpf = _require_text(normalize_cpf(cpf), "cpf")
        super().__init__(entity_id=cpf)
        self._name = _require_text(name, "name")
        self._cpf = cpf
        self._email = _require_text(email, "email")

    @property
    def name(self) -> str:
        return self._name

    @property
    def cpf(self) -> str:
        return self._cpf

    @property
    def email(self) -> str:
        return self._email

    def update_details(self, name: str, email: str) -> None:
        """Replace name and email; the CPF never changes."""
        name = _require_text(name, "name")
        self._email = _require_text(email, "email")
        self._name = name
        self.touch()

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'name': self._name,
            'cpf': self._cpf,
            'email': self._email,
        })
        return base_dict

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Student":
        student = cls(name=data["name"], cpf=data["cpf"], email=data["email"])
        student._restore_metadata(data)
        return student


class Enrollment:
    """A student's membership in a class with both evaluation maps."""

    def __init__(self, student: Student):
        self._student = student
        self._evaluations: Dict[EvaluationKind, Dict[str, str]] = {
            EvaluationKind.TEACHER: {},
            EvaluationKind.SELF: {},
        }
        self._self_evaluation_requests: List[str] = []

    @property
    def student(self) -> Student:
        return self._student

    @property
    def cpf(self) -> str:
        return self._student.cpf

    @property
    def teacher_evaluations(self) -> Dict[str, str]:
        return dict(self._evaluations[EvaluationKind.TEACHER])

    @property
    def self_evaluations(self) -> Dict[str, str]:
        return dict(self._evaluations[EvaluationKind.SELF])

    @property
    def self_evaluation_requests(self) -> List[str]:
        return list(self._self_evaluation_requests)

    def evaluations(self, kind: Union[EvaluationKind, str]) -> Dict[str, str]:
        return dict(self._evaluations[_coerce_kind(kind)])

    def set_evaluation(self, goal: str, grade: Optional[str],
                       kind: Union[EvaluationKind, str] = EvaluationKind.TEACHER) -> bool:
        """
        Upsert or clear the grade for a goal.

        An empty grade removes the record. Returns True if the map changed.
        """
        kind = _coerce_kind(kind)
        validate_goal(goal)
        grades = self._evaluations[kind]

        if is_ungraded(grade):
            return grades.pop(goal, None) is not None

        validate_grade(grade)
        changed = grades.get(goal) != grade
        grades[goal] = grade
        if kind is EvaluationKind.SELF and goal in self._self_evaluation_requests:
            self._self_evaluation_requests.remove(goal)
            changed = True
        return changed

    def request_self_evaluation(self, goal: str) -> bool:
        """Mark a goal as awaiting self-evaluation. Returns False if already pending."""
        validate_goal(goal)
        if goal in self._self_evaluation_requests:
            return False
        self._self_evaluation_requests.append(goal)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'student': {
                'name': self._student.name,
                'cpf': self._student.cpf,
                'email': self._student.email,
            },
            'evaluations': _records(self._evaluations[EvaluationKind.TEACHER]),
            'self_evaluations': _records(self._evaluations[EvaluationKind.SELF]),
            'self_evaluation_requests': list(self._self_evaluation_requests),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], student: Student) -> "Enrollment":
        enrollment = cls(student)
        for record in data.get("evaluations", []):
            enrollment.set_evaluation(record["goal"], record["grade"], EvaluationKind.TEACHER)
        for record in data.get("self_evaluations", []):
            enrollment.set_evaluation(record["goal"], record["grade"], EvaluationKind.SELF)
        for goal in data.get("self_evaluation_requests", []):
            enrollment.request_self_evaluation(goal)
        return enrollment

    def __repr__(self) -> str:
        return f"Enrollment(cpf={self.cpf})"


def _records(grades: Mapping[str, str]) -> List[Dict[str, str]]:
    """Evaluation records in rubric order."""
    return [{'goal': goal, 'grade': grades[goal]} for goal in GOALS if goal in grades]


class SchoolClass(AbstractEntity):
    """A class offering: topic, semester and year plus its enrollments."""

    def __init__(self, topic: str, semester: int, year: int,
                 enrollments: Optional[Iterable[Enrollment]] = None, **kwargs):
        super().__init__(**kwargs)
        self._topic = _require_text(topic, "topic")
        self._semester = _require_positive_int(semester, "semester")
        self._year = _require_positive_int(year, "year")
        self._enrollments: List[Enrollment] = []
        for enrollment in enrollments or []:
            if self.find_enrollment(enrollment.cpf) is not None:
                raise DuplicateEnrollmentError(self.id, enrollment.cpf)
            self._enrollments.append(enrollment)

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def semester(self) -> int:
        return self._semester

    @property
    def year(self) -> int:
        return self._year

    @property
    def natural_key(self) -> Tuple[str, int, int]:
        return (self._topic, self._year, self._semester)

    @property
    def display_key(self) -> str:
        return f"{self._topic}-{self._year}-{self._semester}"

    @property
    def enrollments(self) -> List[Enrollment]:
        return list(self._enrollments)

    def enrolled_students(self) -> List[Student]:
        return [enrollment.student for enrollment in self._enrollments]

    def rename(self, topic: str) -> None:
        self._topic = _require_text(topic, "topic")
        self.touch()

    def set_semester(self, semester: int) -> None:
        self._semester = _require_positive_int(semester, "semester")
        self.touch()

    def set_year(self, year: int) -> None:
        self._year = _require_positive_int(year, "year")
        self.touch()

    def change_key(self, topic: str, semester: int, year: int) -> None:
        """Set topic, semester and year together; nothing changes if any is invalid."""
        topic = _require_text(topic, "topic")
        semester = _require_positive_int(semester, "semester")
        year = _require_positive_int(year, "year")
        if (topic, year, semester) == self.natural_key:
            return
        self._topic, self._semester, self._year = topic, semester, year
        self.touch()

    def restore_key(self, natural_key: Tuple[str, int, int]) -> None:
        """Put back a previously stored (topic, year, semester) without bumping the version."""
        self._topic, self._year, self._semester = natural_key

    def find_enrollment(self, cpf: str) -> Optional[Enrollment]:
        cpf = normalize_cpf(cpf)
        for enrollment in self._enrollments:
            if enrollment.cpf == cpf:
                return enrollment
        return None

    def get_enrollment(self, cpf: str) -> Enrollment:
        enrollment = self.find_enrollment(cpf)
        if enrollment is None:
            raise EnrollmentNotFoundError(self.id, normalize_cpf(cpf))
        return enrollment

    def enroll(self, student: Student) -> Enrollment:
        """Enroll a student. Raises DuplicateEnrollmentError if already enrolled."""
        if self.find_enrollment(student.cpf) is not None:
            raise DuplicateEnrollmentError(self.id, student.cpf)
        enrollment = Enrollment(student)
        self._enrollments.append(enrollment)
        self.touch()
        return enrollment

    def unenroll(self, cpf: str) -> bool:
        """Drop a student. Returns True if an enrollment was removed."""
        enrollment = self.find_enrollment(cpf)
        if enrollment is None:
            return False
        self._enrollments.remove(enrollment)
        self.touch()
        return True

    def record_evaluation(self, cpf: str, goal: str, grade: Optional[str],
                          kind: Union[EvaluationKind, str] = EvaluationKind.TEACHER) -> Enrollment:
        """Record, overwrite, or clear (empty grade) a teacher or self grade."""
        enrollment = self.get_enrollment(cpf)
        if enrollment.set_evaluation(goal, grade, kind):
            self.touch()
        return enrollment

    def request_self_evaluation(self, cpf: str, goal: str) -> Enrollment:
        enrollment = self.get_enrollment(cpf)
        if enrollment.request_self_evaluation(goal):
            self.touch()
        return enrollment

    def request_self_evaluation_all(self, goal: str) -> List[Enrollment]:
        """Request a self-evaluation on a goal from every enrolled student."""
        validate_goal(goal)
        changed = [e for e in self._enrollments if e.request_self_evaluation(goal)]
        if changed:
            self.touch()
        return list(self._enrollments)

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'key': self.display_key,
            'topic': self._topic,
            'semester': self._semester,
            'year': self._year,
            'enrollments': [enrollment.to_dict() for enrollment in self._enrollments],
        })
        return base_dict

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], students: Mapping[str, Student]) -> "SchoolClass":
        """Rebuild a class, resolving each enrollment's student by CPF."""
        enrollments = []
        for enrollment_data in data.get("enrollments") or []:
            cpf = normalize_cpf(enrollment_data["student"]["cpf"])
            student = students.get(cpf)
            if student is None:
                raise NotFoundError(f"Student with CPF {cpf} not found",
                                    error_code="student_not_found", details={"cpf": cpf})
            enrollments.append(Enrollment.from_dict(enrollment_data, student))

        school_class = cls(
            topic=data["topic"],
            semester=data["semester"],
            year=data["year"],
            enrollments=enrollments,
            entity_id=data.get("id"),
        )
        school_class._restore_metadata(data)
        return school_class
