from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    STUDENT = "Student"
    ADMIN = "Admin"
    SUPERVISOR = "SuperVisor"
    USER = "User"

    @classmethod
    def parse(cls, raw: str | None) -> "Role":
        """Unknown or missing roles get the least privileged role."""
        try:
            return cls(raw)
        except ValueError:
            return cls.USER

    @property
    def is_elevated(self) -> bool:
        return self in (Role.ADMIN, Role.SUPERVISOR)


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: Role = Role.STUDENT
    name: str | None = None
    email: str | None = None


# --- Catalog

@dataclass(frozen=True)
class AssessmentSpec:
    """Chapter test or final exam settings."""
    question_ids: tuple[int, ...] = ()
    passing_score: int = 70
    cooldown_hours: float = 3
    time_limit: int = 20


@dataclass(frozen=True)
class QuizSpec:
    question_ids: tuple[int, ...] = ()
    passing_score: int = 80
    unlimited_attempts: bool = True


@dataclass(frozen=True)
class Course:
    id: int
    title: str
    description: str | None = None
    final_exam: AssessmentSpec = AssessmentSpec()
    is_published: bool = True


@dataclass(frozen=True)
class Chapter:
    id: int
    course_id: int
    chapter_number: int
    title: str
    description: str | None = None
    chapter_test: AssessmentSpec = AssessmentSpec()
    is_published: bool = True


@dataclass(frozen=True)
class Lesson:
    id: int
    chapter_id: int
    lesson_number: int
    title: str
    content: str = ""
    content_type: str = "text"
    audio_url: str | None = None
    quiz: QuizSpec = QuizSpec()
    is_published: bool = True


@dataclass(frozen=True)
class Question:
    id: int
    question_text: str
    options: tuple[str, ...]
    correct_answer: str
    type: str = "quiz"
    explanation: str | None = None
    audio_url: str | None = None
    difficulty: str | None = None


# --- Progress

@dataclass
class LessonCompletion:
    lesson_id: int
    completed_at: datetime
    quiz_score: int
    attempts: int = 1
    passed: bool = True


@dataclass(frozen=True)
class ChapterTestAttempt:
    chapter_id: int
    attempted_at: datetime
    score: int
    correct_count: int
    passed: bool
    id: int | None = None


@dataclass(frozen=True)
class FinalExamAttempt:
    attempted_at: datetime
    score: int
    correct_count: int
    passed: bool
    id: int | None = None


@dataclass
class Cooldown:
    last_attempt_at: datetime


@dataclass
class Progress:
    """Per (user, course) progression record.

    ``completed_lessons`` and ``chapter_test_cooldowns`` are keyed by id and
    updated in place; the attempt lists are append-only.
    """
    user_id: str
    course_id: int
    id: int | None = None
    current_chapter_number: int = 1
    current_lesson_number: int = 1
    completed_lessons: dict[int, LessonCompletion] = field(default_factory=dict)
    chapter_test_attempts: list[ChapterTestAttempt] = field(default_factory=list)
    chapter_test_cooldowns: dict[int, Cooldown] = field(default_factory=dict)
    final_exam_attempts: list[FinalExamAttempt] = field(default_factory=list)
    final_exam_cooldown: Cooldown | None = None
    course_completed: bool = False
    completed_at: datetime | None = None
    certificate_issued: bool = False
    certificate_issued_at: datetime | None = None
    version: int = 1

    def has_passed_lesson(self, lesson_id: int) -> bool:
        completion = self.completed_lessons.get(lesson_id)
        return completion is not None and completion.passed

    def passed_chapter_ids(self) -> set[int]:
        return {a.chapter_id for a in self.chapter_test_attempts if a.passed}

    @property
    def final_exam_passed(self) -> bool:
        return any(a.passed for a in self.final_exam_attempts)

    def advance_cursor(self, chapter_number: int, lesson_number: int) -> None:
        if (chapter_number, lesson_number) > (self.current_chapter_number, self.current_lesson_number):
            self.current_chapter_number = chapter_number
            self.current_lesson_number = lesson_number

    def record_lesson_pass(self, lesson_id: int, correct_count: int, now: datetime) -> LessonCompletion:
        completion = self.completed_lessons.get(lesson_id)
        if completion is None:
            completion = LessonCompletion(lesson_id=lesson_id, completed_at=now, quiz_score=correct_count)
            self.completed_lessons[lesson_id] = completion
        else:
            # a later pass overwrites the stored score even when it is lower
            completion.attempts += 1
            completion.quiz_score = correct_count
            completion.completed_at = now
            completion.passed = True
        return completion

    def record_chapter_test(self, chapter_id: int, score: int, correct_count: int,
                            passed: bool, now: datetime) -> ChapterTestAttempt:
        attempt = ChapterTestAttempt(chapter_id=chapter_id, attempted_at=now, score=score,
                                     correct_count=correct_count, passed=passed)
        self.chapter_test_attempts.append(attempt)
        cooldown = self.chapter_test_cooldowns.get(chapter_id)
        if cooldown is None:
            self.chapter_test_cooldowns[chapter_id] = Cooldown(last_attempt_at=now)
        else:
            cooldown.last_attempt_at = now
        return attempt

    def record_final_exam(self, score: int, correct_count: int, passed: bool, now: datetime) -> bool:
        """Append the attempt and refresh the cooldown.

        Returns True only on the transition into ``course_completed``; that is
        the single point where certificate issuance is triggered.
        """
        self.final_exam_attempts.append(
            FinalExamAttempt(attempted_at=now, score=score, correct_count=correct_count, passed=passed)
        )
        if self.final_exam_cooldown is None:
            self.final_exam_cooldown = Cooldown(last_attempt_at=now)
        else:
            self.final_exam_cooldown.last_attempt_at = now

        if not passed or self.course_completed:
            return False
        self.course_completed = True
        self.completed_at = now
        self.certificate_issued = True
        self.certificate_issued_at = now
        return True


@dataclass(frozen=True)
class Certificate:
    user_id: str
    course_id: int
    user_name: str
    user_email: str
    course_title: str
    completion_date: datetime
    certificate_number: str
    verification_code: str
    final_exam_score: int
    issued_at: datetime
    id: int | None = None
