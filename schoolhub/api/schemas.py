from __future__ import annotations

from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Stable error codes rendered in the error envelope
_VALID_ERROR_CODES = frozenset({
    "unauthorized",
    "forbidden",
    "not_found",
    "validation_error",
    "conflict",
    "server_error",
})

# Registration fields each role must supply in additionalData
ROLE_REQUIRED_FIELDS: Dict[str, tuple[str, ...]] = {
    "student": ("studentId", "course", "year", "group"),
    "teacher": ("teacherId", "department", "subjects"),
    "admin": ("permissions",),
}


class ErrorBody(BaseModel):
    """Error envelope body with stable code values."""

    code: str
    message: str
    details: Optional[Any] = None  # object, array, or null

    @field_validator("code")
    @classmethod
    def _validate_error_code(cls, value: str) -> str:
        if value not in _VALID_ERROR_CODES:
            raise ValueError(
                f"Invalid error code '{value}'. Must be one of: {', '.join(sorted(_VALID_ERROR_CODES))}"
            )
        return value


class Envelope(BaseModel):
    """API envelope format shared by every endpoint."""

    status: str = Field(..., pattern="^(ok|error)$")
    data: Optional[Any] = None
    error: Optional[ErrorBody] = None
    request_id: str = Field(default_factory=lambda: str(uuid4()))


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1)
    role: str
    additional_data: Dict[str, Any] = Field(default_factory=dict, alias="additionalData")

    def missing_role_fields(self) -> List[str]:
        required = ROLE_REQUIRED_FIELDS.get(self.role, ())
        return [
            name
            for name in required
            if self.additional_data.get(name) in (None, "", [])
        ]


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    token: str


class MessageCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(..., alias="from")
    to: str
    subject: str = ""
    body: str = ""


class MessageUpdateRequest(BaseModel):
    subject: Optional[str] = None
    body: Optional[str] = None
    # Wire name kept for existing clients
    readed: Optional[bool] = None


class ScheduleCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: str = Field(..., min_length=1)
    start_time: str = Field(..., alias="startTime")
    end_time: str = Field(..., alias="endTime")
    subject: str
    year: Optional[Union[int, str]] = None
    classroom: Optional[str] = None
    teacher: Optional[str] = None
    course: Optional[str] = None
    group: Optional[str] = None


class ScheduleUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    subject: Optional[str] = None
    year: Optional[Union[int, str]] = None
    classroom: Optional[str] = None
    teacher: Optional[str] = None
    course: Optional[str] = None
    group: Optional[str] = None
