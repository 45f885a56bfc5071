"""Publish precondition: primary-language thumbnails.

A lesson may only become ``published`` when its primary content language
has a ``portrait`` and a ``landscape`` thumbnail. When the lesson has no
thumbnail rows at all for that language the check is waived, unless the
policy turns the waiver off (``LESSON_SPINE_THUMBNAIL_WAIVE_WHEN_EMPTY``).

The same policy object is used by ``publish_now`` (where an unmet check is a
``PreconditionFailedError``) and by the scheduled coordinator (where it is a
``TransientSkip``).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lesson_spine.core.enums import AssetVariant
from lesson_spine.core.errors import ErrorContext, PreconditionFailedError
from lesson_spine.core.models import LessonRecord
from lesson_spine.store.protocol import PublicationTransaction

DEFAULT_REQUIRED_VARIANTS: frozenset[AssetVariant] = frozenset(
    {AssetVariant.PORTRAIT, AssetVariant.LANDSCAPE}
)

MISSING_THUMBNAILS_MESSAGE = (
    "Primary content language must have portrait and landscape thumbnails before publishing"
)


@dataclass(frozen=True)
class ThumbnailPolicy:
    required_variants: frozenset[AssetVariant] = DEFAULT_REQUIRED_VARIANTS
    waive_when_empty: bool = True


@dataclass(frozen=True)
class ThumbnailCheck:
    """Outcome of evaluating the thumbnail precondition for one lesson."""

    lesson_id: str
    language: str
    present: frozenset[AssetVariant]
    missing: frozenset[AssetVariant] = field(default_factory=frozenset)
    waived: bool = False

    @property
    def satisfied(self) -> bool:
        return self.waived or not self.missing

    def to_log_fields(self) -> dict[str, object]:
        return {
            "lesson_id": self.lesson_id,
            "language": self.language,
            "present": sorted(v.value for v in self.present),
            "missing": sorted(v.value for v in self.missing),
        }


def evaluate_thumbnails(
    tx: PublicationTransaction,
    lesson: LessonRecord,
    policy: ThumbnailPolicy,
) -> ThumbnailCheck:
    """Check the lesson's primary-language thumbnails against *policy*."""
    language = lesson.content_language_primary
    present = frozenset(tx.thumbnail_variants(lesson.id, language))
    if not present and policy.waive_when_empty:
        return ThumbnailCheck(lesson_id=lesson.id, language=language, present=present, waived=True)
    return ThumbnailCheck(
        lesson_id=lesson.id,
        language=language,
        present=present,
        missing=policy.required_variants - present,
    )


def ensure_thumbnails(
    tx: PublicationTransaction,
    lesson: LessonRecord,
    policy: ThumbnailPolicy,
) -> ThumbnailCheck:
    """Like :func:`evaluate_thumbnails` but raise when the check fails.

    Raises:
        PreconditionFailedError: Required variants are missing.
    """
    check = evaluate_thumbnails(tx, lesson, policy)
    if not check.satisfied:
        raise PreconditionFailedError(
            MISSING_THUMBNAILS_MESSAGE,
            context=ErrorContext(lesson_id=lesson.id, action="publish_now"),
            details=check.to_log_fields(),
        )
    return check


__all__ = [
    "DEFAULT_REQUIRED_VARIANTS",
    "MISSING_THUMBNAILS_MESSAGE",
    "ThumbnailCheck",
    "ThumbnailPolicy",
    "ensure_thumbnails",
    "evaluate_thumbnails",
]
