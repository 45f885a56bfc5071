"""
Domain records and authoring drafts.

Records (``LessonRecord``, ``TermRecord``, ``ProgramRecord``,
``AssetRecord``) are frozen dataclasses: they are what a store returns from
inside a transaction and what services hand back to callers. They are
snapshots, never live rows.

Drafts (``ProgramDraft``, ``TermDraft``, ``LessonDraft``, ``AssetDraft``)
are pydantic models validating authoring input before anything reaches a
store:

* the primary content language must be one of the available languages
  (available languages default to ``[primary]``);
* a single ``content_url_primary`` may stand in for the per-language map,
  but at least the primary content URL is required;
* video lessons need ``duration_ms``;
* asset types must match their owner (posters for programs, thumbnails and
  subtitles for lessons).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar
from uuid import uuid4

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator

from lesson_spine.core.enums import (
    ASSET_TYPES_BY_OWNER,
    AssetOwner,
    AssetType,
    AssetVariant,
    ContentType,
    LessonStatus,
    ProgramStatus,
)
from lesson_spine.core.errors import ValidationError
from lesson_spine.core.timestamps import to_iso8601


def new_id() -> str:
    """Generate a new entity identifier."""
    return str(uuid4())


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class ProgramRecord:
    id: str
    title: str
    language_primary: str
    languages_available: tuple[str, ...]
    description: str | None = None
    status: ProgramStatus = ProgramStatus.DRAFT
    published_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "language_primary": self.language_primary,
            "languages_available": list(self.languages_available),
            "status": self.status.value,
            "published_at": to_iso8601(self.published_at),
        }


@dataclass(frozen=True)
class TermRecord:
    id: str
    program_id: str
    term_number: int
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "term_number": self.term_number,
            "title": self.title,
        }


@dataclass(frozen=True)
class LessonRecord:
    """Snapshot of a lesson row."""

    id: str
    term_id: str
    lesson_number: int
    title: str
    content_type: ContentType
    content_language_primary: str
    content_languages_available: tuple[str, ...]
    content_urls_by_language: dict[str, str]
    duration_ms: int | None = None
    is_paid: bool = False
    subtitle_languages: tuple[str, ...] | None = None
    subtitle_urls_by_language: dict[str, str] | None = None
    status: LessonStatus = LessonStatus.DRAFT
    publish_at: datetime | None = None
    published_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "term_id": self.term_id,
            "lesson_number": self.lesson_number,
            "title": self.title,
            "content_type": self.content_type.value,
            "duration_ms": self.duration_ms,
            "is_paid": self.is_paid,
            "content_language_primary": self.content_language_primary,
            "content_languages_available": list(self.content_languages_available),
            "content_urls_by_language": dict(self.content_urls_by_language),
            "subtitle_languages": (
                list(self.subtitle_languages) if self.subtitle_languages is not None else None
            ),
            "subtitle_urls_by_language": self.subtitle_urls_by_language,
            "status": self.status.value,
            "publish_at": to_iso8601(self.publish_at),
            "published_at": to_iso8601(self.published_at),
        }


@dataclass(frozen=True)
class AssetRecord:
    """One asset row. ``key`` is the upsert identity."""

    owner: AssetOwner
    owner_id: str
    language: str
    variant: AssetVariant
    asset_type: AssetType
    url: str
    id: str = field(default_factory=new_id)

    @property
    def key(self) -> tuple[AssetOwner, str, str, AssetVariant, AssetType]:
        return (self.owner, self.owner_id, self.language, self.variant, self.asset_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner.value,
            "owner_id": self.owner_id,
            "language": self.language,
            "variant": self.variant.value,
            "asset_type": self.asset_type.value,
            "url": self.url,
        }


# =============================================================================
# Drafts (authoring input)
# =============================================================================


class ProgramDraft(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    description: str | None = None
    language_primary: str = Field(min_length=1)
    languages_available: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_languages(self) -> ProgramDraft:
        if not self.languages_available:
            self.languages_available = [self.language_primary]
        if self.language_primary not in self.languages_available:
            raise ValueError("language_primary must be included in languages_available")
        return self

    def to_record(self) -> ProgramRecord:
        return ProgramRecord(
            id=new_id(),
            title=self.title,
            description=self.description,
            language_primary=self.language_primary,
            languages_available=tuple(self.languages_available),
        )


class TermDraft(BaseModel):
    model_config = ConfigDict(extra="forbid")

    program_id: str = Field(min_length=1)
    term_number: int = Field(ge=1)
    title: str | None = None

    def to_record(self) -> TermRecord:
        return TermRecord(
            id=new_id(),
            program_id=self.program_id,
            term_number=self.term_number,
            title=self.title,
        )


class LessonDraft(BaseModel):
    model_config = ConfigDict(extra="forbid")

    term_id: str = Field(min_length=1)
    lesson_number: int = Field(ge=1)
    title: str = Field(min_length=1)
    content_type: ContentType
    duration_ms: int | None = Field(default=None, ge=0)
    is_paid: bool = False
    content_language_primary: str = Field(min_length=1)
    content_languages_available: list[str] = Field(default_factory=list)
    content_urls_by_language: dict[str, str] | None = None
    content_url_primary: str | None = None
    subtitle_languages: list[str] | None = None
    subtitle_urls_by_language: dict[str, str] | None = None

    @model_validator(mode="after")
    def _check_invariants(self) -> LessonDraft:
        if not self.content_languages_available:
            self.content_languages_available = [self.content_language_primary]
        if self.content_language_primary not in self.content_languages_available:
            raise ValueError(
                "content_language_primary must be included in content_languages_available"
            )

        if not self.content_urls_by_language:
            if not self.content_url_primary:
                raise ValueError("At least primary content URL is required")
            self.content_urls_by_language = {
                self.content_language_primary: self.content_url_primary
            }

        if self.content_type is ContentType.VIDEO and self.duration_ms is None:
            raise ValueError("duration_ms is required for video lessons")
        return self

    def to_record(self) -> LessonRecord:
        return LessonRecord(
            id=new_id(),
            term_id=self.term_id,
            lesson_number=self.lesson_number,
            title=self.title,
            content_type=self.content_type,
            duration_ms=self.duration_ms,
            is_paid=self.is_paid,
            content_language_primary=self.content_language_primary,
            content_languages_available=tuple(self.content_languages_available),
            content_urls_by_language=dict(self.content_urls_by_language or {}),
            subtitle_languages=(
                tuple(self.subtitle_languages) if self.subtitle_languages is not None else None
            ),
            subtitle_urls_by_language=self.subtitle_urls_by_language,
            status=LessonStatus.DRAFT,
        )


class AssetDraft(BaseModel):
    model_config = ConfigDict(extra="forbid")

    owner: AssetOwner
    owner_id: str = Field(min_length=1)
    language: str = Field(min_length=1)
    variant: AssetVariant
    asset_type: AssetType
    url: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_owner_type(self) -> AssetDraft:
        allowed = ASSET_TYPES_BY_OWNER[self.owner]
        if self.asset_type not in allowed:
            names = ", ".join(sorted(t.value for t in allowed))
            raise ValueError(f"asset_type for a {self.owner.value} must be one of: {names}")
        return self

    def to_record(self) -> AssetRecord:
        return AssetRecord(
            owner=self.owner,
            owner_id=self.owner_id,
            language=self.language,
            variant=self.variant,
            asset_type=self.asset_type,
            url=self.url,
        )


# =============================================================================
# Validation helpers
# =============================================================================

DraftT = TypeVar("DraftT", bound=BaseModel)


def validation_message(exc: pydantic.ValidationError) -> str:
    """First error of a pydantic failure as one human-readable line."""
    error = exc.errors()[0]
    cause = error.get("ctx", {}).get("error")
    if cause is not None:
        return str(cause)
    location = ".".join(str(part) for part in error["loc"])
    return f"{location}: {error['msg']}" if location else error["msg"]


def parse_draft(model: type[DraftT], payload: DraftT | Mapping[str, Any]) -> DraftT:
    """Validate *payload* as *model*, raising our :class:`ValidationError`."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            validation_message(exc),
            details=exc.errors(include_url=False, include_context=False, include_input=False),
            cause=exc,
        ) from exc


__all__ = [
    "AssetDraft",
    "AssetRecord",
    "LessonDraft",
    "LessonRecord",
    "ProgramDraft",
    "ProgramRecord",
    "TermDraft",
    "TermRecord",
    "new_id",
    "parse_draft",
    "validation_message",
]
