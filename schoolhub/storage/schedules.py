from __future__ import annotations

import uuid
from typing import Any, List, Mapping, Optional

from schoolhub.storage.kv import KeyValueStore
from schoolhub.storage.models import Schedule

SCHEDULE_PREFIX = ("schedule",)
# Query parameters accepted when listing a day's classes
FILTER_FIELDS = ("classroom", "subject", "year", "group", "course")
UPDATABLE_FIELDS = (
    "start_time",
    "end_time",
    "subject",
    "year",
    "classroom",
    "teacher",
    "course",
    "group",
)


def _matches(schedule: Schedule, filters: Mapping[str, Optional[str]]) -> bool:
    for name in FILTER_FIELDS:
        wanted = filters.get(name)
        if wanted and getattr(schedule, name) != wanted:
            return False
    return True


def visible_to(schedule: Schedule, username: str, role: str) -> bool:
    """Teachers only see their own classes; admins and students see every class."""
    if role == "teacher":
        return schedule.teacher == username
    return role in {"admin", "student"}


class ScheduleStore:
    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def create_schedule(
        self,
        day: str,
        start_time: str,
        end_time: str,
        subject: str,
        **extra: Any,
    ) -> Schedule:
        year = extra.get("year")
        schedule = Schedule(
            id=str(uuid.uuid4()),
            day=day,
            start_time=start_time,
            end_time=end_time,
            subject=subject,
            year=str(year) if year is not None else None,
            classroom=extra.get("classroom"),
            teacher=extra.get("teacher"),
            course=extra.get("course"),
            group=extra.get("group"),
        )
        self.kv.set((*SCHEDULE_PREFIX, day, schedule.id), schedule.to_record())
        return schedule

    def get_schedule(self, day: str, schedule_id: str) -> Optional[Schedule]:
        record = self.kv.get((*SCHEDULE_PREFIX, day, schedule_id))
        return Schedule.from_record(record) if record else None

    def list_schedules(self) -> List[Schedule]:
        return [Schedule.from_record(record) for _, record in self.kv.list(SCHEDULE_PREFIX)]

    def list_for_day(
        self,
        day: str,
        *,
        username: str,
        role: str,
        filters: Optional[Mapping[str, Optional[str]]] = None,
    ) -> List[Schedule]:
        filters = filters or {}
        results = []
        for _, record in self.kv.list((*SCHEDULE_PREFIX, day)):
            schedule = Schedule.from_record(record)
            if visible_to(schedule, username, role) and _matches(schedule, filters):
                results.append(schedule)
        return results

    def update_schedule(
        self, day: str, schedule_id: str, changes: Mapping[str, Any]
    ) -> Optional[Schedule]:
        schedule = self.get_schedule(day, schedule_id)
        if schedule is None:
            return None
        for name in UPDATABLE_FIELDS:
            value = changes.get(name)
            if value is None:
                continue
            setattr(schedule, name, str(value) if name == "year" else value)
        self.kv.set((*SCHEDULE_PREFIX, day, schedule_id), schedule.to_record())
        return schedule

    def delete_schedule(self, day: str, schedule_id: str) -> bool:
        if self.kv.get((*SCHEDULE_PREFIX, day, schedule_id)) is None:
            return False
        self.kv.delete((*SCHEDULE_PREFIX, day, schedule_id))
        return True


__all__ = ["ScheduleStore", "visible_to"]
