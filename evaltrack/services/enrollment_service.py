"""
Enrollment service: student/class CRUD, enrollments and evaluation recording.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Union

from ..core.discrepancy import HIGHLIGHT_THRESHOLD, StudentDiscrepancyRow, class_discrepancy_report
from ..core.entities import Enrollment, SchoolClass, Student, normalize_cpf
from ..core.enums import EvaluationKind
from ..core.exceptions import ConflictError
from ..persistence.repositories import ClassRepository, StudentRepository
from ..persistence.snapshot_store import JsonSnapshotStore

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Coordinates the repositories, the class model and snapshot persistence."""

    def __init__(self, student_repository: StudentRepository, class_repository: ClassRepository,
                 snapshot_store: Optional[JsonSnapshotStore] = None,
                 highlight_threshold: int = HIGHLIGHT_THRESHOLD):
        self._students = student_repository
        self._classes = class_repository
        self._snapshot_store = snapshot_store
        self._highlight_threshold = highlight_threshold
        self._pending_save: Optional[Future] = None
        self._lock = threading.RLock()

    # Students

    def list_students(self) -> List[Student]:
        return self._students.find_all()

    def get_student(self, cpf: str) -> Student:
        return self._students.get(cpf)

    def create_student(self, name: str, cpf: str, email: str) -> Student:
        with self._lock:
            student = self._students.save(Student(name=name, cpf=cpf, email=email))
            self._persist()
            return student

    def update_student(self, cpf: str, name: str, email: str) -> Student:
        with self._lock:
            student = self._students.get(cpf)
            student.update_details(name, email)
            self._students.update(student)
            self._persist()
            return student

    def delete_student(self, cpf: str) -> bool:
        """Delete a student and drop it from every class it is enrolled in."""
        with self._lock:
            cpf = normalize_cpf(cpf)
            if not self._students.delete(cpf):
                return False
            for school_class in self._classes.find_by_student(cpf):
                school_class.unenroll(cpf)
                logger.info("Unenrolled deleted student %s from class %s", cpf, school_class.id)
            self._persist()
            return True

    # Classes

    def list_classes(self) -> List[SchoolClass]:
        return self._classes.find_all()

    def get_class(self, class_id: str) -> SchoolClass:
        return self._classes.get(class_id)

    def create_class(self, topic: str, semester: int, year: int) -> SchoolClass:
        with self._lock:
            school_class = self._classes.save(SchoolClass(topic=topic, semester=semester, year=year))
            self._persist()
            return school_class

    def update_class(self, class_id: str, topic: str, semester: int, year: int) -> SchoolClass:
        """
        Rename a class or move it to another semester/year.

        The new (topic, year, semester) key is checked before anything is
        mutated, so a collision leaves the class untouched.
        """
        with self._lock:
            school_class = self._classes.update_key(class_id, topic, semester, year)
            self._persist()
            return school_class

    def delete_class(self, class_id: str) -> bool:
        with self._lock:
            deleted = self._classes.delete(class_id)
            if deleted:
                self._persist()
            return deleted

    # Enrollments

    def enroll(self, class_id: str, cpf: str) -> Enrollment:
        with self._lock:
            school_class = self._classes.get(class_id)
            student = self._students.get(cpf)
            enrollment = school_class.enroll(student)
            logger.info("Enrolled student %s in class %s", student.cpf, school_class.id)
            self._persist()
            return enrollment

    def unenroll(self, class_id: str, cpf: str) -> bool:
        with self._lock:
            school_class = self._classes.get(class_id)
            removed = school_class.unenroll(cpf)
            if removed:
                logger.info("Unenrolled student %s from class %s", cpf, school_class.id)
                self._persist()
            return removed

    def record_evaluation(self, class_id: str, cpf: str, goal: str, grade: Optional[str],
                          kind: Union[EvaluationKind, str] = EvaluationKind.TEACHER) -> Enrollment:
        """Record, overwrite or clear a grade; also the entry point for bulk grade imports."""
        with self._lock:
            school_class = self._classes.get(class_id)
            enrollment = school_class.record_evaluation(cpf, goal, grade, kind)
            self._persist()
            return enrollment

    def request_self_evaluation(self, class_id: str, cpf: str, goal: str) -> Enrollment:
        with self._lock:
            school_class = self._classes.get(class_id)
            enrollment = school_class.request_self_evaluation(cpf, goal)
            logger.info("Self-evaluation requested from %s on %r in class %s",
                        enrollment.cpf, goal, school_class.id)
            self._persist()
            return enrollment

    def request_self_evaluation_all(self, class_id: str, goal: str) -> List[Enrollment]:
        with self._lock:
            school_class = self._classes.get(class_id)
            enrollments = school_class.request_self_evaluation_all(goal)
            logger.info("Self-evaluation requested from %d students on %r in class %s",
                        len(enrollments), goal, school_class.id)
            self._persist()
            return enrollments

    # Reports

    def discrepancy_report(self, class_id: str) -> List[StudentDiscrepancyRow]:
        with self._lock:
            school_class = self._classes.get(class_id)
            return class_discrepancy_report(school_class, threshold=self._highlight_threshold)

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            classes = self._classes.find_all()
            return {
                'total_students': self._students.count(),
                'total_classes': len(classes),
                'total_enrollments': sum(len(c.enrollments) for c in classes),
            }

    # Persistence

    def load(self) -> None:
        """Populate the repositories from the snapshot store."""
        if self._snapshot_store is None:
            return
        students, classes = self._snapshot_store.load()
        with self._lock:
            for student in students:
                self._students.save(student)
            for school_class in classes:
                try:
                    self._classes.save(school_class)
                except ConflictError as e:
                    logger.warning("Skipping class %s from snapshot: %s", school_class.id, e.message)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for the most recent snapshot write. Returns its outcome."""
        pending = self._pending_save
        if pending is None:
            return True
        return pending.result(timeout=timeout)

    def _persist(self) -> None:
        if self._snapshot_store is None:
            return
        self._pending_save = self._snapshot_store.trigger_save(
            self._students.find_all(), self._classes.find_all()
        )
