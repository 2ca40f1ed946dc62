from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from schoolhub.api.schemas import (
    Envelope,
    LoginRequest,
    MessageCreateRequest,
    MessageUpdateRequest,
    RegisterRequest,
    ScheduleCreateRequest,
    ScheduleUpdateRequest,
    TokenResponse,
)
from schoolhub.logging import get_logger
from schoolhub.service.errors import ForbiddenError, NotFoundError, ValidationError
from schoolhub.service.results import AuthFailure
from schoolhub.service.runtime import get_runtime
from schoolhub.service.sessions import AuthContext
from schoolhub.storage.models import User, user_to_record

logger = get_logger(__name__)

router = APIRouter()

# Fields never returned from the user list
_PRIVATE_USER_FIELDS = ("passwordHash", "tokens")


def _http_error(
    code: str, message: str, status_code: int, details: Optional[dict | str] = None
) -> HTTPException:
    payload: dict[str, object] = {
        "status": "error",
        "error": {"code": code, "message": message},
    }
    if details is not None:
        payload["error"]["details"] = details  # type: ignore[index]
    return HTTPException(status_code=status_code, detail=payload)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def _public_user(user: User) -> Dict[str, Any]:
    record = user_to_record(user)
    for name in _PRIVATE_USER_FIELDS:
        record.pop(name, None)
    return record


async def get_user(authorization: Optional[str] = Header(None)) -> AuthContext:
    runtime = get_runtime()
    result = runtime.verifier.verify(_bearer_token(authorization))
    if result.failure is AuthFailure.STORE_FAILURE:
        raise _http_error("server_error", "internal server error", status_code=500)
    if not result.ok or result.value is None:
        # One message for every rejection reason; the reason is only logged
        raise _http_error("unauthorized", "invalid session", status_code=401)
    return result.value


async def get_admin_user(principal: AuthContext = Depends(get_user)) -> AuthContext:
    if principal.role != "admin":
        raise _http_error("forbidden", "admin access required", status_code=403)
    return principal


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=Envelope, status_code=201, tags=["auth"])
async def register(body: RegisterRequest):
    """Create an account for any role.

    Raises:
        400: role-required fields missing, invalid role, or username taken
        403: registration disabled by configuration
        500: store failure
    """
    runtime = get_runtime()
    if not runtime.settings.allow_registration:
        raise ForbiddenError("registration is disabled")
    missing = body.missing_role_fields()
    if missing:
        raise ValidationError(
            f"missing required fields for role {body.role}", detail={"missing": missing}
        )
    result = runtime.auth.register(
        body.username, body.password, body.role, body.additional_data
    )
    result.raise_for_failure()
    return Envelope(status="ok", data={"message": result.message, "username": body.username})


@router.post("/auth/login", response_model=Envelope, tags=["auth"])
async def login(body: LoginRequest):
    """Exchange username and password for a session token.

    Raises:
        401: unknown user or wrong password (indistinguishable to the caller)
    """
    runtime = get_runtime()
    result = runtime.auth.login(body.username, body.password)
    if result.failure in (AuthFailure.NOT_FOUND, AuthFailure.INVALID_CREDENTIALS):
        raise _http_error("unauthorized", "invalid credentials", status_code=401)
    result.raise_for_failure()
    return Envelope(status="ok", data=TokenResponse(token=result.value))


@router.post("/auth/logout", response_model=Envelope, tags=["auth"])
async def logout(authorization: Optional[str] = Header(None)):
    """Revoke the presented token.

    Already-revoked tokens log out successfully, so this does not go through
    ``get_user``.
    """
    runtime = get_runtime()
    token = _bearer_token(authorization)
    if not token:
        raise _http_error("unauthorized", "missing bearer token", status_code=401)
    result = runtime.auth.logout(token)
    result.raise_for_failure()
    return Envelope(status="ok", data={"message": result.message})


@router.get("/auth/userlist", response_model=Envelope, tags=["auth"])
async def list_users(principal: AuthContext = Depends(get_admin_user)):
    runtime = get_runtime()
    result = runtime.auth.list_users()
    result.raise_for_failure()
    return Envelope(status="ok", data=[_public_user(user) for user in result.value or []])


@router.delete("/auth/delete/{username}", response_model=Envelope, tags=["auth"])
async def delete_user(username: str, principal: AuthContext = Depends(get_admin_user)):
    runtime = get_runtime()
    result = runtime.auth.delete_user(username)
    result.raise_for_failure()
    logger.info("admin_deleted_user", admin=principal.username, username=username)
    return Envelope(status="ok", data={"message": result.message})


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@router.post("/messages", response_model=Envelope, status_code=201, tags=["messages"])
async def create_messages(
    body: List[MessageCreateRequest],
    principal: AuthContext = Depends(get_admin_user),
):
    runtime = get_runtime()
    created = [
        runtime.messages.create_message(item.sender, item.to, item.subject, item.body)
        for item in body
    ]
    for message in created:
        logger.info("message_created", message_id=message.id, to=message.to)
    return Envelope(
        status="ok",
        data={
            "message": f"Created {len(created)} messages.",
            "messages": [message.to_record() for message in created],
        },
    )


@router.get("/messages", response_model=Envelope, tags=["messages"])
async def list_messages(principal: AuthContext = Depends(get_admin_user)):
    runtime = get_runtime()
    return Envelope(
        status="ok",
        data=[message.to_record() for message in runtime.messages.list_messages()],
    )


# Declared before /messages/{message_id} so "user" is not taken as an id
@router.get("/messages/user", response_model=Envelope, tags=["messages"])
async def list_my_messages(principal: AuthContext = Depends(get_user)):
    runtime = get_runtime()
    messages = runtime.messages.list_messages(recipient=principal.username)
    return Envelope(status="ok", data=[message.to_record() for message in messages])


@router.get("/messages/{message_id}", response_model=Envelope, tags=["messages"])
async def get_message(message_id: str, principal: AuthContext = Depends(get_user)):
    runtime = get_runtime()
    message = runtime.messages.get_message(message_id)
    if message is None:
        raise NotFoundError("message not found", detail={"id": message_id})
    if message.to != principal.username and principal.role != "admin":
        raise ForbiddenError("access denied")
    return Envelope(status="ok", data=message.to_record())


@router.put("/messages/{message_id}", response_model=Envelope, tags=["messages"])
async def update_message(
    message_id: str,
    body: MessageUpdateRequest,
    principal: AuthContext = Depends(get_admin_user),
):
    runtime = get_runtime()
    message = runtime.messages.update_message(
        message_id, subject=body.subject, body=body.body, read=body.readed
    )
    if message is None:
        raise NotFoundError("message not found", detail={"id": message_id})
    return Envelope(status="ok", data=message.to_record())


@router.delete("/messages/{message_id}", response_model=Envelope, tags=["messages"])
async def delete_message(message_id: str, principal: AuthContext = Depends(get_admin_user)):
    runtime = get_runtime()
    if not runtime.messages.delete_message(message_id):
        raise NotFoundError("message not found", detail={"id": message_id})
    return Envelope(status="ok", data={"message": "Message deleted"})


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


@router.post("/schedules", response_model=Envelope, tags=["schedules"])
async def create_schedules(
    body: List[ScheduleCreateRequest],
    principal: AuthContext = Depends(get_admin_user),
):
    runtime = get_runtime()
    created = [
        runtime.schedules.create_schedule(
            item.day,
            item.start_time,
            item.end_time,
            item.subject,
            year=item.year,
            classroom=item.classroom,
            teacher=item.teacher,
            course=item.course,
            group=item.group,
        )
        for item in body
    ]
    return Envelope(
        status="ok",
        data={
            "message": f"{len(created)} schedules created.",
            "schedules": [schedule.to_record() for schedule in created],
        },
    )


@router.get("/schedules", response_model=Envelope, tags=["schedules"])
async def list_schedules(principal: AuthContext = Depends(get_user)):
    runtime = get_runtime()
    return Envelope(
        status="ok",
        data=[schedule.to_record() for schedule in runtime.schedules.list_schedules()],
    )


@router.get("/schedules/{day}", response_model=Envelope, tags=["schedules"])
async def list_day_schedules(
    day: str,
    classroom: Optional[str] = Query(None),
    subject: Optional[str] = Query(None),
    year: Optional[str] = Query(None),
    group: Optional[str] = Query(None),
    course: Optional[str] = Query(None),
    principal: AuthContext = Depends(get_user),
):
    """Classes on ``day``; teachers only see the classes they teach."""
    runtime = get_runtime()
    schedules = runtime.schedules.list_for_day(
        day,
        username=principal.username,
        role=principal.role,
        filters={
            "classroom": classroom,
            "subject": subject,
            "year": year,
            "group": group,
            "course": course,
        },
    )
    return Envelope(status="ok", data=[schedule.to_record() for schedule in schedules])


@router.get("/schedules/{day}/{schedule_id}", response_model=Envelope, tags=["schedules"])
async def get_schedule(day: str, schedule_id: str, principal: AuthContext = Depends(get_user)):
    runtime = get_runtime()
    schedule = runtime.schedules.get_schedule(day, schedule_id)
    if schedule is None:
        raise NotFoundError("schedule not found", detail={"day": day, "id": schedule_id})
    return Envelope(status="ok", data=schedule.to_record())


@router.put("/schedules/{day}/{schedule_id}", response_model=Envelope, tags=["schedules"])
async def update_schedule(
    day: str,
    schedule_id: str,
    body: ScheduleUpdateRequest,
    principal: AuthContext = Depends(get_admin_user),
):
    runtime = get_runtime()
    schedule = runtime.schedules.update_schedule(
        day, schedule_id, body.model_dump(exclude_none=True)
    )
    if schedule is None:
        raise NotFoundError("schedule not found", detail={"day": day, "id": schedule_id})
    return Envelope(status="ok", data=schedule.to_record())


@router.delete("/schedules/{day}/{schedule_id}", response_model=Envelope, tags=["schedules"])
async def delete_schedule(
    day: str, schedule_id: str, principal: AuthContext = Depends(get_admin_user)
):
    runtime = get_runtime()
    if not runtime.schedules.delete_schedule(day, schedule_id):
        raise NotFoundError("schedule not found", detail={"day": day, "id": schedule_id})
    return Envelope(status="ok", data={"message": "Schedule deleted"})
