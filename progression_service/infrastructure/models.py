from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base

# --- Catalog (read-only here; authored by the admin service)

lesson_quiz_questions = Table(
    "lesson_quiz_questions",
    Base.metadata,
    Column("lesson_id", ForeignKey("lessons.id", ondelete="CASCADE"), primary_key=True),
    Column("question_id", ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True),
)

chapter_test_questions = Table(
    "chapter_test_questions",
    Base.metadata,
    Column("chapter_id", ForeignKey("chapters.id", ondelete="CASCADE"), primary_key=True),
    Column("question_id", ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True),
)

final_exam_questions = Table(
    "final_exam_questions",
    Base.metadata,
    Column("course_id", ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
    Column("question_id", ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True),
)


class QuestionORM(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="quiz")
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    audio_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String(16), nullable=True)


class CourseORM(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    final_exam_passing_score: Mapped[int] = mapped_column(Integer, nullable=False, default=80)
    final_exam_cooldown_hours: Mapped[float] = mapped_column(Float, nullable=False, default=24)
    final_exam_time_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    chapters: Mapped[list["ChapterORM"]] = relationship(
        "ChapterORM",
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChapterORM.chapter_number",
    )
    exam_questions: Mapped[list[QuestionORM]] = relationship(
        secondary=final_exam_questions, order_by=QuestionORM.id
    )

    def __repr__(self) -> str:
        return f"CourseORM(id={self.id!r}, title={self.title!r})"


class ChapterORM(Base):
    __tablename__ = "chapters"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chapter_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    test_passing_score: Mapped[int] = mapped_column(Integer, nullable=False, default=70)
    test_cooldown_hours: Mapped[float] = mapped_column(Float, nullable=False, default=3)
    test_time_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    course: Mapped["CourseORM"] = relationship("CourseORM", back_populates="chapters")
    lessons: Mapped[list["LessonORM"]] = relationship(
        "LessonORM",
        back_populates="chapter",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="LessonORM.lesson_number",
    )
    test_questions: Mapped[list[QuestionORM]] = relationship(
        secondary=chapter_test_questions, order_by=QuestionORM.id
    )

    __table_args__ = (UniqueConstraint("course_id", "chapter_number", name="uq_course_chapter_number"),)

    def __repr__(self) -> str:
        return f"ChapterORM(id={self.id!r}, course_id={self.course_id!r}, number={self.chapter_number!r})"


class LessonORM(Base):
    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    chapter_id: Mapped[int] = mapped_column(
        ForeignKey("chapters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lesson_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content_type: Mapped[str] = mapped_column(String(32), nullable=False, default="text")
    audio_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    quiz_passing_score: Mapped[int] = mapped_column(Integer, nullable=False, default=80)
    quiz_unlimited_attempts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    chapter: Mapped["ChapterORM"] = relationship("ChapterORM", back_populates="lessons")
    quiz_questions: Mapped[list[QuestionORM]] = relationship(
        secondary=lesson_quiz_questions, order_by=QuestionORM.id
    )

    __table_args__ = (UniqueConstraint("chapter_id", "lesson_number", name="uq_chapter_lesson_number"),)

    def __repr__(self) -> str:
        return f"LessonORM(id={self.id!r}, chapter_id={self.chapter_id!r}, number={self.lesson_number!r})"


# --- Progress

class ProgressORM(Base):
    __tablename__ = "progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)  # JWT sub
    course_id: Mapped[int] = mapped_column(Integer, index=True)
    current_chapter_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_lesson_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    final_exam_last_attempt_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    course_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    certificate_issued: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    certificate_issued_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    completed_lessons: Mapped[list["LessonCompletionORM"]] = relationship(
        cascade="all, delete-orphan", order_by="LessonCompletionORM.id"
    )
    chapter_test_attempts: Mapped[list["ChapterTestAttemptORM"]] = relationship(
        cascade="all, delete-orphan", order_by="ChapterTestAttemptORM.id"
    )
    chapter_test_cooldowns: Mapped[list["ChapterTestCooldownORM"]] = relationship(
        cascade="all, delete-orphan", order_by="ChapterTestCooldownORM.id"
    )
    final_exam_attempts: Mapped[list["FinalExamAttemptORM"]] = relationship(
        cascade="all, delete-orphan", order_by="FinalExamAttemptORM.id"
    )

    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_user_course"),)
    __mapper_args__ = {"version_id_col": version}


class LessonCompletionORM(Base):
    __tablename__ = "lesson_completions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    progress_id: Mapped[int] = mapped_column(ForeignKey("progress.id", ondelete="CASCADE"), index=True)
    lesson_id: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    quiz_score: Mapped[int] = mapped_column(Integer, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    __table_args__ = (UniqueConstraint("progress_id", "lesson_id", name="uq_progress_lesson"),)


class ChapterTestAttemptORM(Base):
    __tablename__ = "chapter_test_attempts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    progress_id: Mapped[int] = mapped_column(ForeignKey("progress.id", ondelete="CASCADE"), index=True)
    chapter_id: Mapped[int] = mapped_column(Integer, nullable=False)
    attempted_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)


class ChapterTestCooldownORM(Base):
    __tablename__ = "chapter_test_cooldowns"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    progress_id: Mapped[int] = mapped_column(ForeignKey("progress.id", ondelete="CASCADE"), index=True)
    chapter_id: Mapped[int] = mapped_column(Integer, nullable=False)
    last_attempt_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    __table_args__ = (UniqueConstraint("progress_id", "chapter_id", name="uq_progress_chapter_cooldown"),)


class FinalExamAttemptORM(Base):
    __tablename__ = "final_exam_attempts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    progress_id: Mapped[int] = mapped_column(ForeignKey("progress.id", ondelete="CASCADE"), index=True)
    attempted_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)


# --- Certificates

class CertificateORM(Base):
    __tablename__ = "certificates"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    course_id: Mapped[int] = mapped_column(Integer, index=True)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)
    course_title: Mapped[str] = mapped_column(String(255), nullable=False)
    completion_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    certificate_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    verification_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    final_exam_score: Mapped[int] = mapped_column(Integer, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
