"""
Scheduler service for self-evaluation requests.

Only the target time is computed, for the confirmation shown to the teacher.
Nothing is queued, persisted or delivered at that time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from ..core.entities import SchoolClass
from ..core.exceptions import ValidationError
from ..core.rubric import validate_goal


@dataclass
class ScheduledSelfEvaluation:
    """A computed (not executed) self-evaluation request."""
    class_id: str
    class_topic: str
    goal: str
    requested_at: datetime
    target_time: datetime

    @property
    def message(self) -> str:
        return (f"Self-evaluation request for class {self.class_topic}, goal {self.goal}, "
                f"scheduled for {self.target_time.strftime('%Y-%m-%d %H:%M')}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'class_id': self.class_id,
            'goal': self.goal,
            'requested_at': self.requested_at.isoformat(),
            'target_time': self.target_time.isoformat(),
            'message': self.message,
        }


def compute_target_time(now: datetime, days: int = 0, hours: int = 0, minutes: int = 0) -> datetime:
    """now + days*24h + hours*1h + minutes*1min."""
    for name, value in (("days", days), ("hours", hours), ("minutes", minutes)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"{name} must be a non-negative integer",
                                  error_code="invalid_delay", details={name: value})
    return now + timedelta(days=days, hours=hours, minutes=minutes)


class SchedulerService:
    """Computes when a scheduled self-evaluation request would fire."""

    def schedule_self_evaluation_request(self, school_class: SchoolClass, goal: str,
                                         days: int = 0, hours: int = 0, minutes: int = 0,
                                         now: Optional[datetime] = None) -> ScheduledSelfEvaluation:
        validate_goal(goal)
        now = now or datetime.now(timezone.utc)
        return ScheduledSelfEvaluation(
            class_id=school_class.id,
            class_topic=school_class.topic,
            goal=goal,
            requested_at=now,
            target_time=compute_target_time(now, days, hours, minutes),
        )
