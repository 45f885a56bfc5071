"""Authoring operations: programs, terms, lessons and their assets.

Lessons are always created as drafts without timestamps; everything after
that goes through :class:`~lesson_spine.publishing.LessonStatusService`.
Assets are upserted by (owner, language, variant, asset type).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from lesson_spine.core.enums import AssetOwner, AssetType, AssetVariant
from lesson_spine.core.errors import ErrorContext, NotFoundError
from lesson_spine.core.logging import get_logger
from lesson_spine.core.models import (
    AssetDraft,
    AssetRecord,
    LessonDraft,
    LessonRecord,
    ProgramDraft,
    ProgramRecord,
    TermDraft,
    TermRecord,
    parse_draft,
)
from lesson_spine.store.protocol import PublicationStore, PublicationTransaction

logger = get_logger(__name__)


class AuthoringService:
    """Create content and manage assets.

    Example:
        >>> authoring = AuthoringService(store)
        >>> program = authoring.create_program({"title": "Intro", "language_primary": "en"})
        >>> term = authoring.create_term({"program_id": program.id, "term_number": 1})
    """

    def __init__(self, store: PublicationStore) -> None:
        self.store = store

    # === Programs, terms, lessons ===

    def create_program(self, payload: ProgramDraft | Mapping[str, Any]) -> ProgramRecord:
        program = parse_draft(ProgramDraft, payload).to_record()
        with self.store.transaction() as tx:
            tx.insert_program(program)
        logger.info("program_created", program_id=program.id, title=program.title)
        return program

    def create_term(self, payload: TermDraft | Mapping[str, Any]) -> TermRecord:
        term = parse_draft(TermDraft, payload).to_record()
        with self.store.transaction() as tx:
            self._require_program(tx, term.program_id)
            tx.insert_term(term)
        logger.info("term_created", term_id=term.id, program_id=term.program_id)
        return term

    def create_lesson(self, payload: LessonDraft | Mapping[str, Any]) -> LessonRecord:
        lesson = parse_draft(LessonDraft, payload).to_record()
        with self.store.transaction() as tx:
            if tx.get_term(lesson.term_id) is None:
                raise NotFoundError(f"Term {lesson.term_id} not found")
            tx.insert_lesson(lesson)
        logger.info("lesson_created", lesson_id=lesson.id, term_id=lesson.term_id)
        return lesson

    def get_program(self, program_id: str) -> ProgramRecord:
        with self.store.transaction() as tx:
            return self._require_program(tx, program_id)

    def get_lesson(self, lesson_id: str) -> LessonRecord:
        with self.store.transaction() as tx:
            return self._require_lesson(tx, lesson_id)

    def list_lessons(self, term_id: str) -> list[LessonRecord]:
        with self.store.transaction() as tx:
            return tx.list_lessons(term_id)

    # === Assets ===

    def set_lesson_asset(
        self,
        lesson_id: str,
        language: str,
        variant: AssetVariant | str,
        url: str,
        asset_type: AssetType | str = AssetType.THUMBNAIL,
    ) -> AssetRecord:
        """Upsert a lesson thumbnail or subtitle."""
        return self._set_asset(AssetOwner.LESSON, lesson_id, language, variant, asset_type, url)

    def remove_lesson_asset(
        self,
        lesson_id: str,
        language: str,
        variant: AssetVariant | str,
        asset_type: AssetType | str = AssetType.THUMBNAIL,
    ) -> bool:
        """Delete a lesson asset; ``False`` when there was nothing to delete."""
        draft = parse_draft(
            AssetDraft,
            {
                "owner": AssetOwner.LESSON,
                "owner_id": lesson_id,
                "language": language,
                "variant": variant,
                "asset_type": asset_type,
                "url": "-",
            },
        )
        with self.store.transaction() as tx:
            self._require_lesson(tx, lesson_id)
            removed = tx.delete_asset(
                draft.owner, draft.owner_id, draft.language, draft.variant, draft.asset_type
            )
        logger.info(
            "asset_removed",
            owner="lesson",
            owner_id=lesson_id,
            language=language,
            variant=draft.variant.value,
            asset_type=draft.asset_type.value,
            removed=removed,
        )
        return removed

    def set_program_asset(
        self,
        program_id: str,
        language: str,
        variant: AssetVariant | str,
        url: str,
    ) -> AssetRecord:
        """Upsert a program poster."""
        return self._set_asset(
            AssetOwner.PROGRAM, program_id, language, variant, AssetType.POSTER, url
        )

    def list_assets(self, owner: AssetOwner, owner_id: str) -> list[AssetRecord]:
        with self.store.transaction() as tx:
            return tx.list_assets(owner, owner_id)

    def _set_asset(
        self,
        owner: AssetOwner,
        owner_id: str,
        language: str,
        variant: AssetVariant | str,
        asset_type: AssetType | str,
        url: str,
    ) -> AssetRecord:
        asset = parse_draft(
            AssetDraft,
            {
                "owner": owner,
                "owner_id": owner_id,
                "language": language,
                "variant": variant,
                "asset_type": asset_type,
                "url": url,
            },
        ).to_record()
        with self.store.transaction() as tx:
            if owner is AssetOwner.LESSON:
                self._require_lesson(tx, owner_id)
            else:
                self._require_program(tx, owner_id)
            stored = tx.upsert_asset(asset)
        logger.info("asset_upserted", **stored.to_dict())
        return stored

    # === Helpers ===

    @staticmethod
    def _require_program(tx: PublicationTransaction, program_id: str) -> ProgramRecord:
        program = tx.get_program(program_id)
        if program is None:
            raise NotFoundError(
                f"Program {program_id} not found", context=ErrorContext(program_id=program_id)
            )
        return program

    @staticmethod
    def _require_lesson(tx: PublicationTransaction, lesson_id: str) -> LessonRecord:
        lesson = tx.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError(
                f"Lesson {lesson_id} not found", context=ErrorContext(lesson_id=lesson_id)
            )
        return lesson


__all__ = ["AuthoringService"]
