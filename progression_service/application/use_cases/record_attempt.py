"""Commit graded submissions into the progress record.

Each submission is one read-check-grade-record cycle against a single progress
record. The store saves with an optimistic version check; when another request
wins the race the whole cycle is replayed on fresh state, so cooldowns and the
completion flag are always decided on what is actually stored.
"""
from typing import Callable, Sequence, TypeVar

import structlog

from ...config import settings
from ...domain.clock import utcnow
from ...domain.cooldown import check_cooldown
from ...domain.decisions import Denied
from ...domain.entities import Identity
from ...domain.errors import ConcurrentUpdateError
from ...domain.grading import GradeResult, SubmittedAnswer
from ...infrastructure.metrics import (
    cooldown_rejections_total,
    graded_submissions_total,
    progress_save_conflicts_total,
)
from ..dto import GradedSubmission
from ..ports import ICatalogReader, ICertificateIssuer, IProgressStore
from .access import AccessEvaluator, require_identity
from .grading import GradingEngine

logger = structlog.get_logger()

T = TypeVar("T")

CHAPTER_TEST_COOLDOWN_MESSAGE = "Test is on cooldown. You cannot submit another attempt yet."
FINAL_EXAM_COOLDOWN_MESSAGE = "Final exam is on cooldown. You cannot submit another attempt yet."


def _count(kind: str, grade: GradeResult) -> None:
    graded_submissions_total.labels(kind=kind, result="passed" if grade.passed else "failed").inc()


class AttemptRecorder:
    def __init__(
        self,
        catalog: ICatalogReader,
        progress: IProgressStore,
        issuer: ICertificateIssuer,
        clock: Callable = utcnow,
        max_retries: int | None = None,
    ):
        self.catalog = catalog
        self.progress = progress
        self.issuer = issuer
        self.clock = clock
        self.max_retries = settings.PROGRESS_SAVE_RETRIES if max_retries is None else max_retries
        self.access = AccessEvaluator(catalog, progress)
        self.grading = GradingEngine(catalog)

    def _with_retries(self, fn: Callable[[], T], identity: Identity, course_id: int) -> T:
        # the first try always runs, even with a zero budget
        attempts = max(self.max_retries, 1)
        for attempt in range(1, attempts + 1):
            try:
                return fn()
            except ConcurrentUpdateError:
                progress_save_conflicts_total.inc()
                logger.warning("progress_save_conflict", user_id=identity.user_id,
                               course_id=course_id, attempt=attempt)
                if attempt == attempts:
                    raise
        raise AssertionError("unreachable")

    # --- lesson quiz

    def submit_lesson_quiz(self, identity: Identity | None, lesson_id: int,
                           answers: Sequence[SubmittedAnswer]) -> GradedSubmission | Denied:
        """Grade a lesson quiz; only a passing submission touches progress."""
        identity = require_identity(identity)
        lesson = self.catalog.get_lesson(lesson_id)
        chapter = self.catalog.get_chapter(lesson.chapter_id)

        def run() -> GradedSubmission | Denied:
            decision = self.access.can_access_lesson(identity, lesson.id)
            if not decision.can_access:
                return decision

            grade = self.grading.grade(lesson.quiz.question_ids, answers, lesson.quiz.passing_score, "lesson")
            if grade.passed:
                progress = self.progress.get_or_create(identity.user_id, chapter.course_id)
                completion = progress.record_lesson_pass(lesson.id, grade.correct_count, self.clock())
                progress.advance_cursor(chapter.chapter_number, lesson.lesson_number)
                self.progress.save(progress)
                logger.info("lesson_completed", user_id=identity.user_id, lesson_id=lesson.id,
                            attempts=completion.attempts)
            return GradedSubmission(grade=grade)

        outcome = self._with_retries(run, identity, chapter.course_id)
        if isinstance(outcome, GradedSubmission):
            _count("lesson_quiz", outcome.grade)
            logger.info("lesson_quiz_graded", user_id=identity.user_id, lesson_id=lesson.id,
                        score=outcome.grade.score, passed=outcome.grade.passed)
        return outcome

    # --- chapter test

    def submit_chapter_test(self, identity: Identity | None, chapter_id: int,
                            answers: Sequence[SubmittedAnswer]) -> GradedSubmission | Denied:
        identity = require_identity(identity)
        chapter = self.catalog.get_chapter(chapter_id)
        spec = chapter.chapter_test

        def run() -> GradedSubmission | Denied:
            decision = self.access.can_access_chapter_test(identity, chapter.id)
            if not decision.can_access:
                return decision

            now = self.clock()
            progress = self.progress.get_or_create(identity.user_id, chapter.course_id)
            blocked = check_cooldown(progress.chapter_test_cooldowns.get(chapter.id), spec.cooldown_hours,
                                     now, CHAPTER_TEST_COOLDOWN_MESSAGE)
            if blocked:
                cooldown_rejections_total.labels(kind="chapter_test").inc()
                logger.info("cooldown_active", user_id=identity.user_id, chapter_id=chapter.id,
                            remaining_minutes=blocked.remaining_minutes)
                return blocked

            grade = self.grading.grade(spec.question_ids, answers, spec.passing_score, "chapter")
            progress.record_chapter_test(chapter.id, grade.score, grade.correct_count, grade.passed, now)
            if grade.passed and self.catalog.find_chapter_by_number(chapter.course_id, chapter.chapter_number + 1):
                progress.advance_cursor(chapter.chapter_number + 1, 1)
            self.progress.save(progress)
            return GradedSubmission(grade=grade)

        outcome = self._with_retries(run, identity, chapter.course_id)
        if isinstance(outcome, GradedSubmission):
            _count("chapter_test", outcome.grade)
            logger.info("chapter_test_recorded", user_id=identity.user_id, chapter_id=chapter.id,
                        score=outcome.grade.score, passed=outcome.grade.passed)
        return outcome

    # --- final exam

    def submit_final_exam(self, identity: Identity | None, course_id: int,
                          answers: Sequence[SubmittedAnswer]) -> GradedSubmission | Denied:
        """Grade the final exam and, on the first pass, issue certificates.

        Issuance runs only after the completion flags are durably saved, and
        only for the submission that flipped ``course_completed``.
        """
        identity = require_identity(identity)
        course = self.catalog.get_course(course_id)
        spec = course.final_exam

        def run():
            decision = self.access.can_access_final_exam(identity, course.id)
            if not decision.can_access:
                return decision, False

            now = self.clock()
            progress = self.progress.get_or_create(identity.user_id, course.id)
            blocked = check_cooldown(progress.final_exam_cooldown, spec.cooldown_hours,
                                     now, FINAL_EXAM_COOLDOWN_MESSAGE)
            if blocked:
                cooldown_rejections_total.labels(kind="final_exam").inc()
                logger.info("cooldown_active", user_id=identity.user_id, course_id=course.id,
                            remaining_minutes=blocked.remaining_minutes)
                return blocked, False

            grade = self.grading.grade(spec.question_ids, answers, spec.passing_score, "exam")
            completed_now = progress.record_final_exam(grade.score, grade.correct_count, grade.passed, now)
            saved = self.progress.save(progress)
            return GradedSubmission(
                grade=grade,
                course_completed=saved.course_completed,
                certificate_issued=saved.certificate_issued,
            ), completed_now

        outcome, completed_now = self._with_retries(run, identity, course.id)
        if not isinstance(outcome, GradedSubmission):
            return outcome

        _count("final_exam", outcome.grade)
        logger.info("final_exam_recorded", user_id=identity.user_id, course_id=course.id,
                    score=outcome.grade.score, passed=outcome.grade.passed, course_completed=completed_now)
        if completed_now:
            outcome.certificates = self.issuer.issue(identity, course, outcome.grade.score)
        return outcome
