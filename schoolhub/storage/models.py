from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    """Base identity shared by every role."""

    id: str
    username: str
    password_hash: str
    tokens: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)

    role: ClassVar[str] = ""
    # Stored attribute name -> dataclass field name for role-specific data
    attribute_names: ClassVar[Dict[str, str]] = {}

    def attributes(self) -> Dict[str, Any]:
        return {
            stored: getattr(self, attr) for stored, attr in self.attribute_names.items()
        }


@dataclass
class Student(User):
    student_id: str = ""
    course: str = ""
    year: int = 1
    group: str = ""

    role: ClassVar[str] = "student"
    attribute_names: ClassVar[Dict[str, str]] = {
        "studentId": "student_id",
        "course": "course",
        "year": "year",
        "group": "group",
    }


@dataclass
class Teacher(User):
    teacher_id: str = ""
    department: str = ""
    subjects: List[str] = field(default_factory=list)

    role: ClassVar[str] = "teacher"
    attribute_names: ClassVar[Dict[str, str]] = {
        "teacherId": "teacher_id",
        "department": "department",
        "subjects": "subjects",
    }


@dataclass
class Admin(User):
    permissions: List[str] = field(default_factory=list)

    role: ClassVar[str] = "admin"
    attribute_names: ClassVar[Dict[str, str]] = {"permissions": "permissions"}


USER_TYPES: Dict[str, Type[User]] = {cls.role: cls for cls in (Student, Teacher, Admin)}
ROLES = tuple(USER_TYPES)


def _coerce_attribute(cls: Type[User], attr: str, value: Any) -> Any:
    kind = next(f.type for f in fields(cls) if f.name == attr)
    if kind == "int":
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise ValueError(f"{attr} must be an integer")
        try:
            return int(value)
        except (OverflowError, ValueError) as exc:
            raise ValueError(f"{attr} must be an integer") from exc
    if kind == "List[str]":
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ValueError(f"{attr} must be a list of strings")
        return [str(item) for item in value]
    return str(value)


def build_user(
    role: str,
    *,
    id: str,
    username: str,
    password_hash: str,
    attributes: Optional[Mapping[str, Any]] = None,
    tokens: Optional[List[str]] = None,
    created_at: Optional[datetime] = None,
) -> User:
    """Construct the role variant, falling back to field defaults for missing attributes.

    Raises:
        ValueError: unknown role or an attribute of the wrong shape
    """
    cls = USER_TYPES.get(role)
    if cls is None:
        raise ValueError(f"invalid role: {role!r}")
    provided = attributes or {}
    kwargs: Dict[str, Any] = {}
    for stored, attr in cls.attribute_names.items():
        value = provided.get(stored)
        # Empty values count as missing
        if value is None or value == "" or value == []:
            continue
        kwargs[attr] = _coerce_attribute(cls, attr, value)
    return cls(
        id=id,
        username=username,
        password_hash=password_hash,
        tokens=list(tokens or []),
        created_at=created_at or _utcnow(),
        **kwargs,
    )


def user_to_record(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "passwordHash": user.password_hash,
        "role": user.role,
        "tokens": list(user.tokens),
        "createdAt": user.created_at.isoformat(),
        **user.attributes(),
    }


def user_from_record(record: Mapping[str, Any]) -> User:
    created = record.get("createdAt")
    return build_user(
        record["role"],
        id=record["id"],
        username=record["username"],
        password_hash=record["passwordHash"],
        attributes=record,
        tokens=record.get("tokens") or [],
        created_at=datetime.fromisoformat(created) if created else None,
    )


@dataclass
class Message:
    id: str
    sender: str
    to: str
    subject: str
    body: str
    date: str
    time: str
    read: bool = False

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from": self.sender,
            "to": self.to,
            "subject": self.subject,
            "body": self.body,
            "date": self.date,
            "time": self.time,
            "read": self.read,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Message":
        return cls(
            id=record["id"],
            sender=record.get("from", ""),
            to=record.get("to", ""),
            subject=record.get("subject", ""),
            body=record.get("body", ""),
            date=record.get("date", ""),
            time=record.get("time", ""),
            read=bool(record.get("read", False)),
        )


@dataclass
class Schedule:
    id: str
    day: str
    start_time: str
    end_time: str
    subject: str
    year: Optional[str] = None
    classroom: Optional[str] = None
    teacher: Optional[str] = None
    course: Optional[str] = None
    group: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "day": self.day,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "subject": self.subject,
            "year": self.year,
            "classroom": self.classroom,
            "teacher": self.teacher,
            "course": self.course,
            "group": self.group,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Schedule":
        year = record.get("year")
        return cls(
            id=record["id"],
            day=record["day"],
            start_time=record.get("startTime", ""),
            end_time=record.get("endTime", ""),
            subject=record.get("subject", ""),
            year=str(year) if year is not None else None,
            classroom=record.get("classroom"),
            teacher=record.get("teacher"),
            course=record.get("course"),
            group=record.get("group"),
        )
