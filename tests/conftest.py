"""Shared pytest fixtures.

Provides:
- ``students``: three Student entities
- ``school_class``: an empty class
- ``service``: EnrollmentService over fresh in-memory repositories
- ``client``: FastAPI TestClient over an in-memory platform
"""

import pytest
from fastapi.testclient import TestClient

from evaltrack.core.entities import SchoolClass, Student
from evaltrack.main import EvalTrackPlatform
from evaltrack.persistence import ClassRepository, StudentRepository
from evaltrack.services import EnrollmentService


@pytest.fixture
def students():
    return [
        Student("Ana Souza", "123.456.789-00", "ana@example.com"),
        Student("Bruno Lima", "987.654.321-00", "bruno@example.com"),
        Student("Carla Dias", "111.222.333-44", "carla@example.com"),
    ]


@pytest.fixture
def school_class():
    return SchoolClass("Software Engineering", 1, 2024)


@pytest.fixture
def service():
    return EnrollmentService(StudentRepository(), ClassRepository())


@pytest.fixture
def platform():
    return EvalTrackPlatform({"persist": False})


@pytest.fixture
def client(platform):
    with TestClient(platform.app) as test_client:
        yield test_client
