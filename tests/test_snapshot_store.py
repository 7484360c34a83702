# tests/test_snapshot_store.py

import json

import pytest

from evaltrack.core.entities import SchoolClass
from evaltrack.core.enums import EvaluationKind
from evaltrack.core.exceptions import PersistenceError
from evaltrack.persistence import ClassRepository, JsonSnapshotStore, StudentRepository
from evaltrack.services import EnrollmentService


@pytest.fixture
def store(tmp_path):
    snapshot_store = JsonSnapshotStore(str(tmp_path / "students.json"))
    yield snapshot_store
    snapshot_store.close()


def test_load_missing_file_is_empty(store):
    assert store.load() == ([], [])


def test_load_corrupt_file_is_empty(tmp_path):
    path = tmp_path / "students.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonSnapshotStore(str(path)).load() == ([], [])


def test_load_non_object_is_empty(tmp_path):
    path = tmp_path / "students.json"
    path.write_text("[]", encoding="utf-8")

    assert JsonSnapshotStore(str(path)).load() == ([], [])


def test_save_and_load_round_trip(store, students, school_class):
    school_class.enroll(students[0])
    school_class.enroll(students[1])
    school_class.record_evaluation(students[0].cpf, "Tests", "MPA")
    school_class.record_evaluation(students[0].cpf, "Tests", "MA", EvaluationKind.SELF)

    store.save(students, [school_class])
    loaded_students, loaded_classes = store.load()

    assert [s.to_dict() for s in loaded_students] == [s.to_dict() for s in students]
    assert [c.to_dict() for c in loaded_classes] == [school_class.to_dict()]
    # enrollments point at the loaded student objects
    assert loaded_classes[0].enrollments[0].student is loaded_students[0]


def test_save_writes_students_and_classes(store, students, school_class):
    store.save(students[:1], [school_class])

    with open(store.path, encoding="utf-8") as f:
        data = json.load(f)

    assert set(data) == {"students", "classes"}
    assert data["students"][0]["cpf"] == "12345678900"
    assert data["classes"][0]["key"] == "Software Engineering-2024-1"


def test_load_skips_malformed_records(tmp_path, students):
    path = tmp_path / "students.json"
    path.write_text(json.dumps({
        "students": [students[0].to_dict(), {"name": "No CPF"}, "oops", None],
        "classes": [
            {"topic": "Databases", "semester": 1, "year": 2024,
             "enrollments": [{"student": {"cpf": "99999999999"}}]},
            "oops",
            42,
            {"topic": "Networks", "semester": 1, "year": 2024, "enrollments": ["oops"]},
            SchoolClass("Compilers", 2, 2024).to_dict(),
        ],
    }), encoding="utf-8")

    loaded_students, loaded_classes = JsonSnapshotStore(str(path)).load()

    assert [s.cpf for s in loaded_students] == ["12345678900"]
    assert [c.topic for c in loaded_classes] == ["Compilers"]


@pytest.mark.parametrize("content", [
    {"students": None, "classes": None},
    {"students": "oops", "classes": {"id": "x"}},
    {},
])
def test_load_tolerates_missing_or_non_list_sections(tmp_path, content):
    path = tmp_path / "students.json"
    path.write_text(json.dumps(content), encoding="utf-8")

    assert JsonSnapshotStore(str(path)).load() == ([], [])


def test_service_starts_from_malformed_snapshot(tmp_path, students):
    path = tmp_path / "students.json"
    path.write_text(json.dumps({"students": [students[0].to_dict()], "classes": ["oops"]}),
                    encoding="utf-8")
    service = EnrollmentService(StudentRepository(), ClassRepository(),
                                snapshot_store=JsonSnapshotStore(str(path)))

    service.load()

    assert [s.cpf for s in service.list_students()] == ["12345678900"]
    assert service.list_classes() == []


def test_trigger_save_resolves_true(store, students):
    future = store.trigger_save(students, [])

    assert future.result(timeout=5) is True
    assert len(store.load()[0]) == 3


def test_trigger_save_snapshots_state_at_call_time(store, students):
    future = store.trigger_save(students, [])
    students[0].update_details("Changed Later", "later@example.com")
    future.result(timeout=5)

    assert store.load()[0][0].name == "Ana Souza"


def test_trigger_save_failure_resolves_false(tmp_path, students):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    failing = JsonSnapshotStore(str(blocker / "students.json"))

    try:
        assert failing.trigger_save(students, []).result(timeout=5) is False
    finally:
        failing.close()


def test_save_failure_raises(tmp_path, students):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(PersistenceError):
        JsonSnapshotStore(str(blocker / "students.json")).save(students, [])
