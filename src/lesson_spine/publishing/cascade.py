"""Program status cascade.

When a lesson becomes ``published`` its program becomes (or stays)
``published`` in the same transaction. ``published_at`` is set the first
time only. Archived programs are never republished by lesson activity.
"""

from __future__ import annotations

from datetime import datetime

from lesson_spine.core.errors import ErrorContext, InternalFailureError
from lesson_spine.core.logging import get_logger
from lesson_spine.core.models import LessonRecord, ProgramRecord
from lesson_spine.store.protocol import PublicationTransaction

logger = get_logger(__name__)


def cascade_program_status(
    tx: PublicationTransaction,
    lesson: LessonRecord,
    now: datetime,
) -> ProgramRecord | None:
    """Publish the program owning *lesson* inside the caller's transaction.

    Returns the updated program, or ``None`` when it is archived and was
    left untouched.

    Raises:
        InternalFailureError: The lesson's term or program row is missing.
    """
    term = tx.get_term(lesson.term_id)
    if term is None:
        raise InternalFailureError(
            f"Term {lesson.term_id} of lesson {lesson.id} not found",
            context=ErrorContext(lesson_id=lesson.id),
        )

    program = tx.mark_program_published(term.program_id, now)
    if program is not None:
        logger.debug(
            "program_status_cascaded",
            program_id=program.id,
            lesson_id=lesson.id,
            published_at=program.published_at.isoformat() if program.published_at else None,
        )
        return program

    if tx.get_program(term.program_id) is None:
        raise InternalFailureError(
            f"Program {term.program_id} of lesson {lesson.id} not found",
            context=ErrorContext(lesson_id=lesson.id, program_id=term.program_id),
        )
    logger.info("program_cascade_skipped_archived", program_id=term.program_id, lesson_id=lesson.id)
    return None


__all__ = ["cascade_program_status"]
