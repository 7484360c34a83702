# tests/test_scheduler_service.py

from datetime import datetime, timedelta, timezone

import pytest

from evaltrack.core.exceptions import ValidationError
from evaltrack.services import SchedulerService, compute_target_time

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_compute_target_time_adds_offsets():
    assert compute_target_time(NOW, days=1, hours=2, minutes=30) == NOW + timedelta(days=1, hours=2, minutes=30)


def test_compute_target_time_zero_delay():
    assert compute_target_time(NOW) == NOW


@pytest.mark.parametrize("delay", [{"days": -1}, {"hours": -2}, {"minutes": 1.5}, {"days": True}])
def test_compute_target_time_rejects_bad_delays(delay):
    with pytest.raises(ValidationError):
        compute_target_time(NOW, **delay)


def test_schedule_self_evaluation_request(school_class):
    scheduled = SchedulerService().schedule_self_evaluation_request(
        school_class, "Design", days=2, minutes=15, now=NOW
    )

    assert scheduled.class_id == school_class.id
    assert scheduled.requested_at == NOW
    assert scheduled.target_time == datetime(2024, 3, 3, 12, 15, tzinfo=timezone.utc)
    assert "Software Engineering" in scheduled.message
    assert "2024-03-03 12:15" in scheduled.message
    assert scheduled.to_dict()["goal"] == "Design"


def test_schedule_does_not_touch_enrollments(school_class, students):
    school_class.enroll(students[0])

    SchedulerService().schedule_self_evaluation_request(school_class, "Tests", hours=1, now=NOW)

    assert school_class.enrollments[0].self_evaluation_requests == []


def test_schedule_rejects_unknown_goal(school_class):
    with pytest.raises(ValidationError):
        SchedulerService().schedule_self_evaluation_request(school_class, "Cooking", now=NOW)
