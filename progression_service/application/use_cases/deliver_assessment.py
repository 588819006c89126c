"""Hand lesson content and question papers to learners.

A paper is only produced after the same access decision the submission path
uses, and for chapter tests and the final exam only once the cooldown has run
out. Options are shuffled per request; answers and explanations never leave
this module attached to a paper.
"""
import random
from dataclasses import replace
from typing import Callable, Sequence

from ...domain.clock import utcnow
from ...domain.cooldown import check_cooldown
from ...domain.decisions import Decision, Denied
from ...domain.entities import Identity, Lesson, Question
from ...domain.errors import NoQuestionsError
from ...infrastructure.metrics import cooldown_rejections_total
from ..dto import AssessmentPaper
from ..ports import ICatalogReader, IProgressStore
from .access import AccessEvaluator, require_identity
from .record_attempt import CHAPTER_TEST_COOLDOWN_MESSAGE, FINAL_EXAM_COOLDOWN_MESSAGE

LESSON_UNPUBLISHED = "This lesson is not published yet"
CHAPTER_UNPUBLISHED = "This chapter is not published yet"
COURSE_UNPUBLISHED = "This course is not published yet"

COOLDOWN_DELIVERY_MESSAGE = "You must wait before retaking this assessment"


def shuffled(options: Sequence[str]) -> list[str]:
    return random.sample(list(options), len(options))


def _blank(question: Question, shuffle: Callable[[Sequence[str]], list[str]]) -> Question:
    return replace(question, options=tuple(shuffle(question.options)), correct_answer="", explanation=None)


class AssessmentDelivery:
    def __init__(
        self,
        catalog: ICatalogReader,
        progress: IProgressStore,
        clock: Callable = utcnow,
        shuffle: Callable[[Sequence[str]], list[str]] = shuffled,
    ):
        self.catalog = catalog
        self.progress = progress
        self.clock = clock
        self.shuffle = shuffle
        self.access = AccessEvaluator(catalog, progress)

    def _paper(self, kind: str, owner_id: int, title: str, question_ids, passing_score: int,
               assessment: str, **extra) -> AssessmentPaper:
        questions = self.catalog.get_questions(question_ids)
        if not questions:
            raise NoQuestionsError(assessment)
        return AssessmentPaper(
            kind=kind,
            owner_id=owner_id,
            title=title,
            questions=[_blank(q, self.shuffle) for q in questions],
            passing_score=passing_score,
            **extra,
        )

    def lesson_content(self, identity: Identity | None, lesson_id: int) -> Lesson | Decision:
        identity = require_identity(identity)
        lesson = self.catalog.get_lesson(lesson_id)
        if not lesson.is_published and not identity.role.is_elevated:
            return Denied(LESSON_UNPUBLISHED)
        decision = self.access.can_access_lesson(identity, lesson.id)
        if not decision.can_access:
            return decision
        return lesson

    def lesson_quiz(self, identity: Identity | None, lesson_id: int) -> AssessmentPaper | Decision:
        identity = require_identity(identity)
        lesson = self.catalog.get_lesson(lesson_id)
        if not lesson.is_published and not identity.role.is_elevated:
            return Denied(LESSON_UNPUBLISHED)
        decision = self.access.can_access_lesson(identity, lesson.id)
        if not decision.can_access:
            return decision
        return self._paper("lesson_quiz", lesson.id, lesson.title, lesson.quiz.question_ids,
                           lesson.quiz.passing_score, "lesson",
                           unlimited_attempts=lesson.quiz.unlimited_attempts)

    def chapter_test(self, identity: Identity | None, chapter_id: int) -> AssessmentPaper | Decision:
        identity = require_identity(identity)
        chapter = self.catalog.get_chapter(chapter_id)
        if not chapter.is_published and not identity.role.is_elevated:
            return Denied(CHAPTER_UNPUBLISHED)
        decision = self.access.can_access_chapter_test(identity, chapter.id)
        if not decision.can_access:
            return decision

        spec = chapter.chapter_test
        progress = self.progress.get(identity.user_id, chapter.course_id)
        if progress is not None:
            blocked = check_cooldown(progress.chapter_test_cooldowns.get(chapter.id), spec.cooldown_hours,
                                     self.clock(), CHAPTER_TEST_COOLDOWN_MESSAGE)
            if blocked:
                cooldown_rejections_total.labels(kind="chapter_test").inc()
                return replace(blocked, message=COOLDOWN_DELIVERY_MESSAGE)

        return self._paper("chapter_test", chapter.id, chapter.title, spec.question_ids,
                           spec.passing_score, "chapter", time_limit=spec.time_limit)

    def final_exam(self, identity: Identity | None, course_id: int) -> AssessmentPaper | Decision:
        identity = require_identity(identity)
        course = self.catalog.get_course(course_id)
        if not course.is_published and not identity.role.is_elevated:
            return Denied(COURSE_UNPUBLISHED)
        decision = self.access.can_access_final_exam(identity, course.id)
        if not decision.can_access:
            return decision

        spec = course.final_exam
        progress = self.progress.get(identity.user_id, course.id)
        if progress is not None:
            blocked = check_cooldown(progress.final_exam_cooldown, spec.cooldown_hours,
                                     self.clock(), FINAL_EXAM_COOLDOWN_MESSAGE)
            if blocked:
                cooldown_rejections_total.labels(kind="final_exam").inc()
                return replace(blocked, message=COOLDOWN_DELIVERY_MESSAGE)

        return self._paper("final_exam", course.id, course.title, spec.question_ids,
                           spec.passing_score, "exam", time_limit=spec.time_limit)
