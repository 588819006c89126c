"""Course and chapter outlines for learners.

Students only see published children; Admin and SuperVisor callers see the
whole tree. An unpublished course or chapter is refused outright for students.
"""
from ...domain.decisions import Denied
from ...domain.entities import Identity
from ..dto import (
    ChapterOutlineDTO,
    ChapterSummaryDTO,
    ChapterTestInfoDTO,
    CourseOutlineDTO,
    LessonSummaryDTO,
)
from ..ports import ICatalogReader
from .access import require_identity
from .deliver_assessment import CHAPTER_UNPUBLISHED, COURSE_UNPUBLISHED


class CatalogOutline:
    def __init__(self, catalog: ICatalogReader):
        self.catalog = catalog

    def course(self, identity: Identity | None, course_id: int) -> CourseOutlineDTO | Denied:
        identity = require_identity(identity)
        course = self.catalog.get_course(course_id)
        elevated = identity.role.is_elevated
        if not course.is_published and not elevated:
            return Denied(COURSE_UNPUBLISHED)

        chapters = [
            ChapterSummaryDTO(id=c.id, chapter_number=c.chapter_number, title=c.title, description=c.description)
            for c in self.catalog.list_chapters_of_course(course.id)
            if c.is_published or elevated
        ]
        return CourseOutlineDTO(id=course.id, title=course.title, description=course.description, chapters=chapters)

    def chapter(self, identity: Identity | None, chapter_id: int) -> ChapterOutlineDTO | Denied:
        identity = require_identity(identity)
        chapter = self.catalog.get_chapter(chapter_id)
        elevated = identity.role.is_elevated
        if not chapter.is_published and not elevated:
            return Denied(CHAPTER_UNPUBLISHED)

        lessons = [
            LessonSummaryDTO(id=l.id, lesson_number=l.lesson_number, title=l.title, content_type=l.content_type)
            for l in self.catalog.list_lessons_of_chapter(chapter.id)
            if l.is_published or elevated
        ]
        spec = chapter.chapter_test
        return ChapterOutlineDTO(
            id=chapter.id,
            course_id=chapter.course_id,
            chapter_number=chapter.chapter_number,
            title=chapter.title,
            description=chapter.description,
            lessons=lessons,
            chapter_test=ChapterTestInfoDTO(
                total_questions=len(spec.question_ids),
                passing_score=spec.passing_score,
                time_limit=spec.time_limit,
                cooldown_hours=spec.cooldown_hours,
            ),
        )
