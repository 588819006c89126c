import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.dirname(CURRENT_DIR)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from progression_service.application.use_cases.access import AccessEvaluator
from progression_service.application.use_cases.record_attempt import AttemptRecorder
from progression_service.config import settings
from progression_service.domain.entities import Identity, Role
from progression_service.domain.grading import SubmittedAnswer
from progression_service.infrastructure import models as m
from progression_service.infrastructure.certificates import CertificateIssuer
from progression_service.infrastructure.db import Base
from progression_service.infrastructure.repositories import (
    CertificateRepository,
    ProgressRepository,
    SqlCatalogReader,
)

test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

STUDENT = Identity(user_id="student-1", role=Role.STUDENT, name="Ada Learner", email="ada@example.com")
OTHER_STUDENT = Identity(user_id="student-2", role=Role.STUDENT, name="Bo Learner", email="bo@example.com")
ADMIN = Identity(user_id="admin-1", role=Role.ADMIN, name="Admin", email="admin@example.com")
SUPERVISOR = Identity(user_id="super-1", role=Role.SUPERVISOR, name="Sue", email="sue@example.com")


@pytest.fixture(autouse=True)
def disable_cache(monkeypatch):
    """Redis is not available in tests"""
    monkeypatch.setattr(settings, "CACHE_ENABLED", False)


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=test_engine)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


class CourseFixture:
    """Published course: N chapters of M lessons, every assessment with Q questions.

    Every question's correct answer is "right"; "wrong" is always an option.
    """

    def __init__(self, db, chapters=2, lessons=2, questions=2, title="Medical Interpreting Basics"):
        self.db = db
        course = m.CourseORM(title=title, final_exam_passing_score=70,
                             final_exam_cooldown_hours=3, final_exam_time_limit=60)
        course.exam_questions = self._questions(questions, "exam", "final")
        for c in range(1, chapters + 1):
            chapter = m.ChapterORM(chapter_number=c, title=f"Chapter {c}", test_passing_score=70,
                                   test_cooldown_hours=3, test_time_limit=20)
            chapter.test_questions = self._questions(questions, f"chapter {c} test", "chapter")
            for n in range(1, lessons + 1):
                lesson = m.LessonORM(lesson_number=n, title=f"Lesson {c}.{n}", content=f"Body of {c}.{n}",
                                     quiz_passing_score=80)
                lesson.quiz_questions = self._questions(questions, f"lesson {c}.{n} quiz", "quiz")
                chapter.lessons.append(lesson)
            course.chapters.append(chapter)
        db.add(course)
        db.commit()

        self.course_id = course.id
        self.title = course.title
        self.chapter_ids = {ch.chapter_number: ch.id for ch in course.chapters}
        self.lesson_ids = {
            (ch.chapter_number, l.lesson_number): l.id for ch in course.chapters for l in ch.lessons
        }
        self.quiz_questions = {
            l.id: [q.id for q in l.quiz_questions] for ch in course.chapters for l in ch.lessons
        }
        self.test_questions = {ch.id: [q.id for q in ch.test_questions] for ch in course.chapters}
        self.exam_questions = [q.id for q in course.exam_questions]

    @staticmethod
    def _questions(count, label, kind):
        return [
            m.QuestionORM(question_text=f"{label} #{i}", options=["right", "wrong", "other"],
                          correct_answer="right", type=kind, explanation=f"{label} #{i} explained")
            for i in range(1, count + 1)
        ]

    def lesson(self, chapter_number, lesson_number):
        return self.lesson_ids[(chapter_number, lesson_number)]

    def chapter(self, chapter_number):
        return self.chapter_ids[chapter_number]

    @staticmethod
    def right(question_ids):
        return [SubmittedAnswer(question_id=q, selected_answer="right") for q in question_ids]

    @staticmethod
    def wrong(question_ids):
        return [SubmittedAnswer(question_id=q, selected_answer="wrong") for q in question_ids]

    def pass_lesson(self, recorder, identity, chapter_number, lesson_number):
        lesson_id = self.lesson(chapter_number, lesson_number)
        return recorder.submit_lesson_quiz(identity, lesson_id, self.right(self.quiz_questions[lesson_id]))

    def pass_chapter(self, recorder, identity, chapter_number, lessons=2):
        for n in range(1, lessons + 1):
            self.pass_lesson(recorder, identity, chapter_number, n)
        chapter_id = self.chapter(chapter_number)
        return recorder.submit_chapter_test(identity, chapter_id, self.right(self.test_questions[chapter_id]))


@pytest.fixture
def course(db):
    return CourseFixture(db)


@pytest.fixture
def catalog(db):
    return SqlCatalogReader(db)


@pytest.fixture
def progress_store(db, clock):
    return ProgressRepository(db, clock=clock)


@pytest.fixture
def mailer():
    return MagicMock()


@pytest.fixture
def issuer(db, clock, mailer):
    return CertificateIssuer(CertificateRepository(db), mailer=mailer, clock=clock, companion_titles=[])


@pytest.fixture
def access(catalog, progress_store):
    return AccessEvaluator(catalog, progress_store)


@pytest.fixture
def recorder(catalog, progress_store, issuer, clock):
    return AttemptRecorder(catalog, progress_store, issuer, clock=clock)


@pytest.fixture
def student():
    return STUDENT


@pytest.fixture
def other_student():
    return OTHER_STUDENT


@pytest.fixture
def admin():
    return ADMIN


@pytest.fixture
def supervisor():
    return SUPERVISOR
