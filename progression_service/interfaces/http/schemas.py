from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class AnswerIn(BaseModel):
    question_id: int
    selected_answer: str | None = None

    @field_validator("selected_answer")
    @classmethod
    def not_blank(cls, value: str | None) -> str | None:
        # null means unanswered; a blank string is a malformed answer
        if value is not None and not value.strip():
            raise ValueError("selected_answer must not be blank")
        return value

class SubmissionIn(BaseModel):
    answers: list[AnswerIn] = Field(min_length=1)


class AccessOut(BaseModel):
    can_access: bool
    reason: str


class LessonOut(BaseModel):
    id: int
    chapter_id: int
    lesson_number: int
    title: str
    content: str
    content_type: str
    audio_url: str | None = None
    class Config: from_attributes = True


class PaperQuestionOut(BaseModel):
    id: int
    question_text: str
    options: list[str]
    type: str
    difficulty: str | None = None
    audio_url: str | None = None
    class Config: from_attributes = True

class PaperOut(BaseModel):
    kind: str
    owner_id: int
    title: str
    questions: list[PaperQuestionOut]
    total_questions: int
    passing_score: int
    time_limit: int | None = None
    unlimited_attempts: bool | None = None
    class Config: from_attributes = True


class QuestionResultOut(BaseModel):
    question_id: int
    question_text: str
    selected_answer: str
    correct_answer: str
    is_correct: bool
    explanation: str | None = None
    class Config: from_attributes = True

class CertificateOut(BaseModel):
    certificate_number: str
    verification_code: str
    course_id: int
    course_title: str
    user_name: str
    completion_date: datetime
    final_exam_score: int
    issued_at: datetime
    class Config: from_attributes = True

class SubmissionOut(BaseModel):
    score: int
    correct_count: int
    total_questions: int
    passed: bool
    passing_score: int
    results: list[QuestionResultOut]
    course_completed: bool | None = None
    certificate_issued: bool | None = None
    certificates: list[CertificateOut] = []


class ProgressSummaryOut(BaseModel):
    current_chapter: int
    current_lesson: int
    completed_lessons: int
    chapter_tests_passed: int
    final_exam_passed: bool
    course_completed: bool
    certificate_issued: bool
    class Config: from_attributes = True

class LessonProgressOut(BaseModel):
    lesson_id: int
    lesson_number: int
    title: str
    completed: bool
    quiz_score: int
    attempts: int
    completed_at: datetime | None = None
    class Config: from_attributes = True

class ChapterProgressOut(BaseModel):
    chapter_id: int
    chapter_number: int
    title: str
    total_lessons: int
    completed_lessons: int
    all_lessons_completed: bool
    test_taken: bool
    test_passed: bool
    test_best_score: int | None = None
    test_attempted_at: datetime | None = None
    lessons: list[LessonProgressOut]
    class Config: from_attributes = True

class FinalExamAttemptOut(BaseModel):
    score: int
    correct_count: int
    passed: bool
    attempted_at: datetime
    class Config: from_attributes = True

class NextActionOut(BaseModel):
    type: str
    message: str
    chapter_number: int | None = None
    lesson_number: int | None = None
    title: str | None = None
    class Config: from_attributes = True

class DetailedProgressOut(BaseModel):
    current_chapter: int
    current_lesson: int
    course_completed: bool
    certificate_issued: bool
    completed_at: datetime | None = None
    chapters: list[ChapterProgressOut]
    final_exam_attempts: list[FinalExamAttemptOut]
    final_exam_passed: bool
    final_exam_best_score: int
    next_action: NextActionOut | None = None
    class Config: from_attributes = True


class CertificateVerifyOut(BaseModel):
    valid: bool
    certificate: CertificateOut


class ChapterSummaryOut(BaseModel):
    id: int
    chapter_number: int
    title: str
    description: str | None = None
    class Config: from_attributes = True

class CourseOutlineOut(BaseModel):
    id: int
    title: str
    description: str | None = None
    total_chapters: int
    chapters: list[ChapterSummaryOut]
    class Config: from_attributes = True


class LessonSummaryOut(BaseModel):
    id: int
    lesson_number: int
    title: str
    content_type: str
    class Config: from_attributes = True

class ChapterTestInfoOut(BaseModel):
    total_questions: int
    passing_score: int
    time_limit: int
    cooldown_hours: float
    class Config: from_attributes = True

class ChapterOutlineOut(BaseModel):
    id: int
    course_id: int
    chapter_number: int
    title: str
    description: str | None = None
    total_lessons: int
    lessons: list[LessonSummaryOut]
    chapter_test: ChapterTestInfoOut
    class Config: from_attributes = True
