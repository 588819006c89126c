from dataclasses import asdict
from typing import Callable, Sequence

import structlog
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..application.ports import ICatalogReader, ICertificateStore, IProgressStore
from ..domain.clock import as_utc, utcnow
from ..domain.entities import (
    AssessmentSpec,
    Certificate,
    Chapter,
    ChapterTestAttempt,
    Cooldown,
    Course,
    FinalExamAttempt,
    Lesson,
    LessonCompletion,
    Progress,
    Question,
    QuizSpec,
)
from ..domain.errors import ConcurrentUpdateError, NotFound
from .cache import chapter_lessons_key, course_chapters_key, get_cache, set_cache
from .metrics import cache_hits_total, cache_misses_total
from .models import (
    CertificateORM,
    ChapterORM,
    ChapterTestAttemptORM,
    ChapterTestCooldownORM,
    CourseORM,
    FinalExamAttemptORM,
    LessonCompletionORM,
    LessonORM,
    ProgressORM,
    QuestionORM,
)

logger = structlog.get_logger()


# --- ORM -> domain

def course_to_domain(c: CourseORM) -> Course:
    return Course(
        id=c.id,
        title=c.title,
        description=c.description,
        final_exam=AssessmentSpec(
            question_ids=tuple(q.id for q in c.exam_questions),
            passing_score=c.final_exam_passing_score,
            cooldown_hours=c.final_exam_cooldown_hours,
            time_limit=c.final_exam_time_limit,
        ),
        is_published=c.is_published,
    )


def chapter_to_domain(c: ChapterORM) -> Chapter:
    return Chapter(
        id=c.id,
        course_id=c.course_id,
        chapter_number=c.chapter_number,
        title=c.title,
        description=c.description,
        chapter_test=AssessmentSpec(
            question_ids=tuple(q.id for q in c.test_questions),
            passing_score=c.test_passing_score,
            cooldown_hours=c.test_cooldown_hours,
            time_limit=c.test_time_limit,
        ),
        is_published=c.is_published,
    )


def lesson_to_domain(l: LessonORM) -> Lesson:
    return Lesson(
        id=l.id,
        chapter_id=l.chapter_id,
        lesson_number=l.lesson_number,
        title=l.title,
        content=l.content,
        content_type=l.content_type,
        audio_url=l.audio_url,
        quiz=QuizSpec(
            question_ids=tuple(q.id for q in l.quiz_questions),
            passing_score=l.quiz_passing_score,
            unlimited_attempts=l.quiz_unlimited_attempts,
        ),
        is_published=l.is_published,
    )


def question_to_domain(q: QuestionORM) -> Question:
    return Question(
        id=q.id,
        question_text=q.question_text,
        options=tuple(q.options),
        correct_answer=q.correct_answer,
        type=q.type,
        explanation=q.explanation,
        audio_url=q.audio_url,
        difficulty=q.difficulty,
    )


def progress_to_domain(p: ProgressORM) -> Progress:
    return Progress(
        id=p.id,
        user_id=p.user_id,
        course_id=p.course_id,
        current_chapter_number=p.current_chapter_number,
        current_lesson_number=p.current_lesson_number,
        completed_lessons={
            c.lesson_id: LessonCompletion(
                lesson_id=c.lesson_id,
                completed_at=as_utc(c.completed_at),
                quiz_score=c.quiz_score,
                attempts=c.attempts,
                passed=c.passed,
            )
            for c in p.completed_lessons
        },
        chapter_test_attempts=[
            ChapterTestAttempt(chapter_id=a.chapter_id, attempted_at=as_utc(a.attempted_at), score=a.score,
                               correct_count=a.correct_count, passed=a.passed, id=a.id)
            for a in p.chapter_test_attempts
        ],
        chapter_test_cooldowns={
            c.chapter_id: Cooldown(last_attempt_at=as_utc(c.last_attempt_at)) for c in p.chapter_test_cooldowns
        },
        final_exam_attempts=[
            FinalExamAttempt(attempted_at=as_utc(a.attempted_at), score=a.score,
                             correct_count=a.correct_count, passed=a.passed, id=a.id)
            for a in p.final_exam_attempts
        ],
        final_exam_cooldown=(
            Cooldown(last_attempt_at=as_utc(p.final_exam_last_attempt_at))
            if p.final_exam_last_attempt_at else None
        ),
        course_completed=p.course_completed,
        completed_at=as_utc(p.completed_at),
        certificate_issued=p.certificate_issued,
        certificate_issued_at=as_utc(p.certificate_issued_at),
        version=p.version,
    )


def certificate_to_domain(c: CertificateORM) -> Certificate:
    return Certificate(
        id=c.id,
        user_id=c.user_id,
        course_id=c.course_id,
        user_name=c.user_name,
        user_email=c.user_email,
        course_title=c.course_title,
        completion_date=as_utc(c.completion_date),
        certificate_number=c.certificate_number,
        verification_code=c.verification_code,
        final_exam_score=c.final_exam_score,
        issued_at=as_utc(c.issued_at),
    )


# --- cached list payloads

def _lesson_from_cache(d: dict) -> Lesson:
    quiz = dict(d["quiz"], question_ids=tuple(d["quiz"]["question_ids"]))
    return Lesson(**dict(d, quiz=QuizSpec(**quiz)))


def _chapter_from_cache(d: dict) -> Chapter:
    test = dict(d["chapter_test"], question_ids=tuple(d["chapter_test"]["question_ids"]))
    return Chapter(**dict(d, chapter_test=AssessmentSpec(**test)))


class SqlCatalogReader(ICatalogReader):
    """Catalog lookups. Ordered lists go through the Redis read-through cache."""

    def __init__(self, db: Session):
        self.db = db

    def get_course(self, course_id: int) -> Course:
        row = self.db.get(CourseORM, course_id)
        if not row:
            raise NotFound("course")
        return course_to_domain(row)

    def get_chapter(self, chapter_id: int) -> Chapter:
        row = self.db.get(ChapterORM, chapter_id)
        if not row:
            raise NotFound("chapter")
        return chapter_to_domain(row)

    def get_lesson(self, lesson_id: int) -> Lesson:
        row = self.db.get(LessonORM, lesson_id)
        if not row:
            raise NotFound("lesson")
        return lesson_to_domain(row)

    def find_chapter_by_number(self, course_id: int, chapter_number: int) -> Chapter | None:
        row = (self.db.query(ChapterORM)
               .filter(ChapterORM.course_id == course_id, ChapterORM.chapter_number == chapter_number)
               .first())
        return chapter_to_domain(row) if row else None

    def list_lessons_of_chapter(self, chapter_id: int) -> list[Lesson]:
        key = chapter_lessons_key(chapter_id)
        cached = get_cache(key)
        if cached is not None:
            cache_hits_total.inc()
            return [_lesson_from_cache(d) for d in cached]

        cache_misses_total.inc()
        rows = self.db.query(LessonORM).filter(LessonORM.chapter_id == chapter_id).order_by(LessonORM.lesson_number).all()
        lessons = [lesson_to_domain(r) for r in rows]
        set_cache(key, [asdict(l) for l in lessons])
        return lessons

    def list_chapters_of_course(self, course_id: int) -> list[Chapter]:
        key = course_chapters_key(course_id)
        cached = get_cache(key)
        if cached is not None:
            cache_hits_total.inc()
            return [_chapter_from_cache(d) for d in cached]

        cache_misses_total.inc()
        rows = self.db.query(ChapterORM).filter(ChapterORM.course_id == course_id).order_by(ChapterORM.chapter_number).all()
        chapters = [chapter_to_domain(r) for r in rows]
        set_cache(key, [asdict(c) for c in chapters])
        return chapters

    def get_questions(self, question_ids: Sequence[int]) -> list[Question]:
        if not question_ids:
            return []
        rows = self.db.query(QuestionORM).filter(QuestionORM.id.in_(list(question_ids))).order_by(QuestionORM.id).all()
        return [question_to_domain(r) for r in rows]


class ProgressRepository(IProgressStore):
    """Progress persistence with an optimistic version check on every save.

    ``progress.version`` is SQLAlchemy's ``version_id_col``: the UPDATE carries
    ``WHERE version = <loaded>`` so two requests that read the same version
    cannot both commit.
    """

    def __init__(self, db: Session, clock: Callable = utcnow):
        self.db = db
        self.clock = clock

    def _row(self, user_id: str, course_id: int) -> ProgressORM | None:
        return (self.db.query(ProgressORM)
                .filter(ProgressORM.user_id == user_id, ProgressORM.course_id == course_id)
                .first())

    def get(self, user_id: str, course_id: int) -> Progress | None:
        row = self._row(user_id, course_id)
        return progress_to_domain(row) if row else None

    def get_or_create(self, user_id: str, course_id: int) -> Progress:
        row = self._row(user_id, course_id)
        if row is None:
            row = ProgressORM(user_id=user_id, course_id=course_id)
            self.db.add(row)
            try:
                self.db.commit()
            except IntegrityError:
                # lost the (user_id, course_id) race; the other insert wins
                self.db.rollback()
                row = self._row(user_id, course_id)
            else:
                self.db.refresh(row)
                logger.info("progress_created", user_id=user_id, course_id=course_id)
        return progress_to_domain(row)

    def save(self, progress: Progress) -> Progress:
        row = self.db.get(ProgressORM, progress.id) if progress.id is not None else None
        if row is None or row.version != progress.version:
            raise ConcurrentUpdateError(progress.user_id, progress.course_id)

        self._apply(row, progress)
        # always dirty the parent so the versioned UPDATE runs
        row.updated_at = self.clock()
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConcurrentUpdateError(progress.user_id, progress.course_id)
        self.db.refresh(row)
        return progress_to_domain(row)

    @staticmethod
    def _apply(row: ProgressORM, progress: Progress) -> None:
        row.current_chapter_number = progress.current_chapter_number
        row.current_lesson_number = progress.current_lesson_number

        completions = {c.lesson_id: c for c in row.completed_lessons}
        for lesson_id, completion in progress.completed_lessons.items():
            target = completions.get(lesson_id)
            if target is None:
                row.completed_lessons.append(LessonCompletionORM(lesson_id=lesson_id))
                target = row.completed_lessons[-1]
            target.completed_at = completion.completed_at
            target.quiz_score = completion.quiz_score
            target.attempts = completion.attempts
            target.passed = completion.passed

        for attempt in progress.chapter_test_attempts:
            if attempt.id is None:
                row.chapter_test_attempts.append(ChapterTestAttemptORM(
                    chapter_id=attempt.chapter_id, attempted_at=attempt.attempted_at,
                    score=attempt.score, correct_count=attempt.correct_count, passed=attempt.passed,
                ))

        cooldowns = {c.chapter_id: c for c in row.chapter_test_cooldowns}
        for chapter_id, cooldown in progress.chapter_test_cooldowns.items():
            target = cooldowns.get(chapter_id)
            if target is None:
                row.chapter_test_cooldowns.append(
                    ChapterTestCooldownORM(chapter_id=chapter_id, last_attempt_at=cooldown.last_attempt_at)
                )
            else:
                target.last_attempt_at = cooldown.last_attempt_at

        for attempt in progress.final_exam_attempts:
            if attempt.id is None:
                row.final_exam_attempts.append(FinalExamAttemptORM(
                    attempted_at=attempt.attempted_at, score=attempt.score,
                    correct_count=attempt.correct_count, passed=attempt.passed,
                ))

        if progress.final_exam_cooldown is not None:
            row.final_exam_last_attempt_at = progress.final_exam_cooldown.last_attempt_at

        row.course_completed = progress.course_completed
        row.completed_at = progress.completed_at
        row.certificate_issued = progress.certificate_issued
        row.certificate_issued_at = progress.certificate_issued_at


class CertificateRepository(ICertificateStore):
    def __init__(self, db: Session):
        self.db = db

    def codes_taken(self, certificate_number: str, verification_code: str) -> bool:
        row = (self.db.query(CertificateORM.id)
               .filter(or_(CertificateORM.certificate_number == certificate_number,
                           CertificateORM.verification_code == verification_code))
               .first())
        return row is not None

    def add(self, certificate: Certificate) -> Certificate:
        row = CertificateORM(**{k: v for k, v in asdict(certificate).items() if k != "id"})
        self.db.add(row); self.db.commit(); self.db.refresh(row)
        return certificate_to_domain(row)

    def list_for_user(self, user_id: str, course_id: int) -> list[Certificate]:
        rows = (self.db.query(CertificateORM)
                .filter(CertificateORM.user_id == user_id, CertificateORM.course_id == course_id)
                .order_by(CertificateORM.id)
                .all())
        return [certificate_to_domain(r) for r in rows]

    def find_by_codes(self, certificate_number: str, verification_code: str) -> Certificate | None:
        row = (self.db.query(CertificateORM)
               .filter(CertificateORM.certificate_number == certificate_number,
                       CertificateORM.verification_code == verification_code)
               .first())
        return certificate_to_domain(row) if row else None
