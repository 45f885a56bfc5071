"""
Closed vocabularies for lessons, programs and assets.

Every status, content kind and asset key component is an enum so that an
unknown value is rejected at the boundary instead of travelling through the
state machine as a free-form string.

STDLIB ONLY - NO PYDANTIC.
"""

from enum import Enum


class LessonStatus(str, Enum):
    """Lifecycle of a lesson: draft -> scheduled -> published, or -> archived."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    ARCHIVED = "archived"

    @property
    def is_terminal(self) -> bool:
        return self is LessonStatus.ARCHIVED


class ProgramStatus(str, Enum):
    """Lifecycle of a program. Driven by lesson activity except for archive."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentType(str, Enum):
    VIDEO = "video"
    ARTICLE = "article"


class AssetVariant(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    SQUARE = "square"
    BANNER = "banner"


class AssetType(str, Enum):
    """Kind of asset. Programs carry posters; lessons carry thumbnails and subtitles."""

    POSTER = "poster"
    THUMBNAIL = "thumbnail"
    SUBTITLE = "subtitle"


class AssetOwner(str, Enum):
    PROGRAM = "program"
    LESSON = "lesson"


#: Asset types each owner kind may carry.
ASSET_TYPES_BY_OWNER: dict[AssetOwner, frozenset[AssetType]] = {
    AssetOwner.PROGRAM: frozenset({AssetType.POSTER}),
    AssetOwner.LESSON: frozenset({AssetType.THUMBNAIL, AssetType.SUBTITLE}),
}


class StoreBackend(str, Enum):
    """Backing store used for lesson, program and asset rows."""

    SQL = "sql"
    MEMORY = "memory"


__all__ = [
    "ASSET_TYPES_BY_OWNER",
    "AssetOwner",
    "AssetType",
    "AssetVariant",
    "ContentType",
    "LessonStatus",
    "ProgramStatus",
    "StoreBackend",
]
