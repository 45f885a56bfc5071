"""Lesson action requests.

The command surface sends one of three actions for a lesson. They are a
closed union discriminated on ``action``; anything else fails validation
here, before a transaction is opened, so the status service only ever
matches over known variants.

Example:
    >>> action = parse_action({"action": "schedule", "publish_at": "2030-01-01T09:00:00Z"})
    >>> action.publish_at
    '2030-01-01T09:00:00Z'
    >>> parse_action({"action": "publish_now"})
    PublishNowAction(action='publish_now')
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from lesson_spine.core.errors import ValidationError
from lesson_spine.core.models import validation_message


class ScheduleAction(BaseModel):
    """Schedule request. ``publish_at`` is carried as sent.

    Only its type is checked here. :meth:`LessonStatusService.schedule`
    validates the value after the lesson lookup, so an unknown lesson
    reports not-found whatever timestamp came with it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    action: Literal["schedule"] = "schedule"
    publish_at: str | datetime | None = None

    @field_validator("publish_at", mode="before")
    @classmethod
    def _check_publish_at_type(cls, value: Any) -> Any:
        if value is None or isinstance(value, str | datetime):
            return value
        raise ValueError("Invalid publish_at")


class PublishNowAction(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    action: Literal["publish_now"] = "publish_now"


class ArchiveAction(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    action: Literal["archive"] = "archive"


LessonAction = Annotated[
    ScheduleAction | PublishNowAction | ArchiveAction,
    Field(discriminator="action"),
]

_ACTION_ADAPTER: TypeAdapter[ScheduleAction | PublishNowAction | ArchiveAction] = TypeAdapter(
    LessonAction
)

_UNKNOWN_ACTION_ERRORS = {"union_tag_invalid", "union_tag_not_found", "model_attributes_type"}


def _first_message(exc: pydantic.ValidationError) -> str:
    if exc.errors()[0]["type"] in _UNKNOWN_ACTION_ERRORS:
        return "Unknown action"
    return validation_message(exc)


def parse_action(payload: Any) -> ScheduleAction | PublishNowAction | ArchiveAction:
    """Validate a raw action payload into one of the action variants.

    Raises:
        ValidationError: Unknown action name or malformed arguments.
    """
    if isinstance(payload, ScheduleAction | PublishNowAction | ArchiveAction):
        return payload
    if not isinstance(payload, dict):
        raise ValidationError("Unknown action", details={"payload": repr(payload)})
    try:
        return _ACTION_ADAPTER.validate_python(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            _first_message(exc),
            details=exc.errors(include_url=False, include_context=False, include_input=False),
            cause=exc,
        ) from exc


__all__ = [
    "ArchiveAction",
    "LessonAction",
    "PublishNowAction",
    "ScheduleAction",
    "parse_action",
]
