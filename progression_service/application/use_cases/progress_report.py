from ...domain.entities import Chapter, Identity, Lesson, Progress
from ..dto import ChapterProgressDTO, DetailedProgressDTO, LessonProgressDTO, NextAction, ProgressSummaryDTO
from ..ports import ICatalogReader, IProgressStore
from .access import require_identity


def _lesson_row(lesson: Lesson, progress: Progress) -> LessonProgressDTO:
    completion = progress.completed_lessons.get(lesson.id)
    done = completion is not None and completion.passed
    return LessonProgressDTO(
        lesson_id=lesson.id,
        lesson_number=lesson.lesson_number,
        title=lesson.title,
        completed=done,
        quiz_score=completion.quiz_score if completion else 0,
        attempts=completion.attempts if completion else 0,
        completed_at=completion.completed_at if completion else None,
    )


def _chapter_row(chapter: Chapter, lessons: list[Lesson], progress: Progress) -> ChapterProgressDTO:
    rows = [_lesson_row(l, progress) for l in lessons]
    attempts = [a for a in progress.chapter_test_attempts if a.chapter_id == chapter.id]
    return ChapterProgressDTO(
        chapter_id=chapter.id,
        chapter_number=chapter.chapter_number,
        title=chapter.title,
        total_lessons=len(rows),
        completed_lessons=sum(1 for r in rows if r.completed),
        all_lessons_completed=all(r.completed for r in rows),
        test_taken=bool(attempts),
        test_passed=any(a.passed for a in attempts),
        test_best_score=max((a.score for a in attempts), default=None),
        test_attempted_at=max((a.attempted_at for a in attempts), default=None),
        lessons=rows,
    )


def next_action(chapters: list[ChapterProgressDTO], final_exam_passed: bool) -> NextAction | None:
    """First unfinished step in course order."""
    for chapter in chapters:
        pending = next((l for l in chapter.lessons if not l.completed), None)
        if pending:
            return NextAction(
                type="lesson",
                message=f"Continue with Lesson {pending.lesson_number}: {pending.title}",
                chapter_number=chapter.chapter_number,
                lesson_number=pending.lesson_number,
                title=pending.title,
            )
        if not chapter.test_passed:
            return NextAction(
                type="chapter-test",
                message=f"Take Chapter {chapter.chapter_number} Test",
                chapter_number=chapter.chapter_number,
                title=chapter.title,
            )
    if final_exam_passed:
        return NextAction(type="completed", message="Congratulations! You've completed the course.")
    return NextAction(type="final-exam", message="Take the Final Exam to earn your certificates")


class ProgressReporter:
    def __init__(self, catalog: ICatalogReader, progress: IProgressStore):
        self.catalog = catalog
        self.progress = progress

    def summary(self, identity: Identity | None, course_id: int) -> ProgressSummaryDTO:
        """First read creates the progress record."""
        identity = require_identity(identity)
        course = self.catalog.get_course(course_id)
        progress = self.progress.get_or_create(identity.user_id, course.id)
        return ProgressSummaryDTO(
            current_chapter=progress.current_chapter_number,
            current_lesson=progress.current_lesson_number,
            completed_lessons=sum(1 for c in progress.completed_lessons.values() if c.passed),
            chapter_tests_passed=len(progress.passed_chapter_ids()),
            final_exam_passed=progress.final_exam_passed,
            course_completed=progress.course_completed,
            certificate_issued=progress.certificate_issued,
        )

    def detailed(self, identity: Identity | None, course_id: int) -> DetailedProgressDTO:
        identity = require_identity(identity)
        course = self.catalog.get_course(course_id)
        progress = self.progress.get_or_create(identity.user_id, course.id)

        chapters = [
            _chapter_row(c, self.catalog.list_lessons_of_chapter(c.id), progress)
            for c in self.catalog.list_chapters_of_course(course.id)
        ]
        return DetailedProgressDTO(
            current_chapter=progress.current_chapter_number,
            current_lesson=progress.current_lesson_number,
            course_completed=progress.course_completed,
            certificate_issued=progress.certificate_issued,
            completed_at=progress.completed_at,
            chapters=chapters,
            final_exam_attempts=list(progress.final_exam_attempts),
            final_exam_passed=progress.final_exam_passed,
            final_exam_best_score=max((a.score for a in progress.final_exam_attempts), default=0),
            next_action=next_action(chapters, progress.final_exam_passed),
        )
