# tests/test_enrollment_service.py

import json

import pytest

from evaltrack.core.enums import EvaluationKind
from evaltrack.core.exceptions import (
    ConflictError,
    EnrollmentNotFoundError,
    InvalidGradeError,
    NotFoundError,
)
from evaltrack.persistence import ClassRepository, JsonSnapshotStore, StudentRepository
from evaltrack.services import EnrollmentService


def _populate(service):
    service.create_student("Ana Souza", "123.456.789-00", "ana@example.com")
    service.create_student("Bruno Lima", "987.654.321-00", "bruno@example.com")
    return service.create_class("Software Engineering", 1, 2024)


def test_create_and_list(service):
    school_class = _populate(service)

    assert [s.cpf for s in service.list_students()] == ["12345678900", "98765432100"]
    assert service.list_classes() == [school_class]
    assert service.get_class("Software Engineering-2024-1") is school_class


def test_enroll_twice_conflicts(service):
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")

    with pytest.raises(ConflictError):
        service.enroll(school_class.id, "123.456.789-00")


def test_enroll_unknown_student_or_class(service):
    school_class = _populate(service)

    with pytest.raises(NotFoundError):
        service.enroll(school_class.id, "00000000000")
    with pytest.raises(NotFoundError):
        service.enroll("missing", "12345678900")


def test_unenroll(service):
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")

    assert service.unenroll(school_class.id, "12345678900") is True
    assert service.unenroll(school_class.id, "12345678900") is False


def test_record_evaluation_and_report(service):
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")
    service.record_evaluation(school_class.id, "12345678900", "Design", "MPA")
    service.record_evaluation(school_class.id, "12345678900", "Design", "MA", EvaluationKind.SELF)

    report = service.discrepancy_report(school_class.id)

    assert len(report) == 1
    assert report[0].result.percentage == 100
    assert report[0].result.highlight is True


def test_record_evaluation_for_unenrolled_student(service):
    school_class = _populate(service)
    with pytest.raises(EnrollmentNotFoundError):
        service.record_evaluation(school_class.id, "12345678900", "Design", "MA")


def test_record_invalid_grade(service):
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")
    with pytest.raises(InvalidGradeError):
        service.record_evaluation(school_class.id, "12345678900", "Design", "X")


def test_custom_highlight_threshold():
    service = EnrollmentService(StudentRepository(), ClassRepository(), highlight_threshold=100)
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")
    service.record_evaluation(school_class.id, "12345678900", "Design", "MANA")
    service.record_evaluation(school_class.id, "12345678900", "Design", "MA", EvaluationKind.SELF)

    assert service.discrepancy_report(school_class.id)[0].result.highlight is False


def test_update_class_collision_leaves_class_unchanged(service):
    first = _populate(service)
    second = service.create_class("Software Engineering", 2, 2024)

    with pytest.raises(ConflictError):
        service.update_class(second.id, first.topic, first.semester, first.year)

    assert second.natural_key == ("Software Engineering", 2024, 2)


def test_update_class_keeps_id_and_enrollments(service):
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")

    updated = service.update_class(school_class.id, "Software Design", 2, 2025)

    assert updated.id == school_class.id
    assert updated.display_key == "Software Design-2025-2"
    assert len(updated.enrollments) == 1


def test_delete_student_drops_enrollments(service):
    school_class = _populate(service)
    other = service.create_class("Databases", 1, 2024)
    service.enroll(school_class.id, "12345678900")
    service.enroll(other.id, "12345678900")
    service.enroll(other.id, "98765432100")

    assert service.delete_student("123.456.789-00") is True

    assert school_class.enrollments == []
    assert [e.cpf for e in other.enrollments] == ["98765432100"]
    assert service.delete_student("12345678900") is False


def test_delete_class(service):
    school_class = _populate(service)
    assert service.delete_class(school_class.id) is True
    assert service.delete_class(school_class.id) is False


def test_request_self_evaluation_all(service):
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")
    service.enroll(school_class.id, "98765432100")

    enrollments = service.request_self_evaluation_all(school_class.id, "Tests")

    assert [e.self_evaluation_requests for e in enrollments] == [["Tests"], ["Tests"]]


def test_statistics(service):
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")

    assert service.get_statistics() == {
        'total_students': 2,
        'total_classes': 1,
        'total_enrollments': 1,
    }


def test_flush_without_store_is_true(service):
    assert service.flush() is True


def test_mutations_are_persisted_and_reloaded(tmp_path):
    path = tmp_path / "data" / "students.json"
    store = JsonSnapshotStore(str(path))
    service = EnrollmentService(StudentRepository(), ClassRepository(), snapshot_store=store)
    school_class = _populate(service)
    service.enroll(school_class.id, "12345678900")
    service.record_evaluation(school_class.id, "12345678900", "Tests", "MA")
    assert service.flush(timeout=5) is True
    store.close()

    data = json.loads(path.read_text(encoding="utf-8"))
    assert [s["cpf"] for s in data["students"]] == ["12345678900", "98765432100"]

    reloaded = EnrollmentService(StudentRepository(), ClassRepository(),
                                 snapshot_store=JsonSnapshotStore(str(path)))
    reloaded.load()
    restored = reloaded.get_class(school_class.id)
    assert restored.to_dict() == school_class.to_dict()
    assert restored.enrollments[0].student is reloaded.get_student("12345678900")
