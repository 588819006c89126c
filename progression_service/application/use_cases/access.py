"""Gating decisions for lessons, chapter tests and the final exam.

Every decision is recomputed from completion facts in the progress record. The
advisory cursor is consulted in one place only: a learner whose cursor is past
a chapter may always open that chapter's test.
"""
import structlog

from ...domain.decisions import Allowed, Decision, Denied
from ...domain.entities import Identity
from ...domain.errors import Unauthorized
from ...infrastructure.metrics import access_decisions_total
from ..ports import ICatalogReader, IProgressStore

logger = structlog.get_logger()

ELEVATED_ACCESS = "elevated access"


def require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise Unauthorized()
    return identity


def _observe(target: str, decision: Decision) -> Decision:
    outcome = "allowed" if decision.can_access else "denied"
    access_decisions_total.labels(target=target, outcome=outcome).inc()
    return decision


class AccessEvaluator:
    def __init__(self, catalog: ICatalogReader, progress: IProgressStore):
        self.catalog = catalog
        self.progress = progress

    def can_access_lesson(self, identity: Identity | None, lesson_id: int) -> Decision:
        return _observe("lesson", self._lesson_decision(identity, lesson_id))

    def can_access_chapter_test(self, identity: Identity | None, chapter_id: int) -> Decision:
        return _observe("chapter_test", self._chapter_test_decision(identity, chapter_id))

    def can_access_final_exam(self, identity: Identity | None, course_id: int) -> Decision:
        return _observe("final_exam", self._final_exam_decision(identity, course_id))

    def _lesson_decision(self, identity: Identity | None, lesson_id: int) -> Decision:
        identity = require_identity(identity)
        if identity.role.is_elevated:
            return Allowed(ELEVATED_ACCESS)

        lesson = self.catalog.get_lesson(lesson_id)
        chapter = self.catalog.get_chapter(lesson.chapter_id)

        if chapter.chapter_number == 1 and lesson.lesson_number == 1:
            return Allowed("first lesson")

        progress = self.progress.get(identity.user_id, chapter.course_id)
        if progress is None:
            return Denied("You must start from lesson 1")

        if progress.has_passed_lesson(lesson.id):
            return Allowed("already completed")

        if lesson.lesson_number == 1 and chapter.chapter_number > 1:
            previous_chapter = self.catalog.find_chapter_by_number(chapter.course_id, chapter.chapter_number - 1)
            previous_lessons = (
                self.catalog.list_lessons_of_chapter(previous_chapter.id) if previous_chapter else []
            )
            if all(progress.has_passed_lesson(l.id) for l in previous_lessons):
                return Allowed("previous chapter completed")
            return Denied("Complete all lessons in the previous chapter first")

        previous_number = lesson.lesson_number - 1
        previous = next(
            (l for l in self.catalog.list_lessons_of_chapter(chapter.id) if l.lesson_number == previous_number),
            None,
        )
        if previous is None:
            logger.warning("previous_lesson_missing", chapter_id=chapter.id, lesson_number=previous_number)
            return Allowed("no previous lesson")
        if progress.has_passed_lesson(previous.id):
            return Allowed("previous lesson completed")
        return Denied(f"Complete lesson {previous_number} first")

    def _chapter_test_decision(self, identity: Identity | None, chapter_id: int) -> Decision:
        identity = require_identity(identity)
        if identity.role.is_elevated:
            return Allowed(ELEVATED_ACCESS)

        chapter = self.catalog.get_chapter(chapter_id)
        progress = self.progress.get(identity.user_id, chapter.course_id)
        if progress is None:
            return Denied("Complete all chapter lessons first")

        lessons = self.catalog.list_lessons_of_chapter(chapter.id)
        total = len(lessons)

        if progress.current_chapter_number > chapter.chapter_number:
            return Allowed("chapter completed")

        # a cursor behind this chapter falls through to denial
        if progress.current_chapter_number == chapter.chapter_number:
            passed = sum(1 for l in lessons if progress.has_passed_lesson(l.id))
            if passed >= total:
                return Allowed("all lessons completed")

        return Denied(f"Complete all {total} lessons first")

    def _final_exam_decision(self, identity: Identity | None, course_id: int) -> Decision:
        identity = require_identity(identity)
        if identity.role.is_elevated:
            return Allowed(ELEVATED_ACCESS)

        course = self.catalog.get_course(course_id)
        progress = self.progress.get(identity.user_id, course.id)
        if progress is None:
            return Denied("Complete all chapters first")

        chapters = self.catalog.list_chapters_of_course(course.id)
        total = len(chapters)
        passed_ids = progress.passed_chapter_ids()
        passed = sum(1 for c in chapters if c.id in passed_ids)

        if passed == total:
            return Allowed("all requirements met")
        return Denied(f"Pass all {total} chapter tests first; you've passed {passed}/{total}")
