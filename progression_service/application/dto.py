from dataclasses import dataclass, field
from datetime import datetime

from ..domain.entities import Certificate, Question
from ..domain.grading import GradeResult


@dataclass
class GradedSubmission:
    grade: GradeResult
    course_completed: bool | None = None
    certificate_issued: bool | None = None
    certificates: list[Certificate] = field(default_factory=list)


@dataclass
class AssessmentPaper:
    """Questions handed to a learner: options shuffled, answers withheld."""
    kind: str
    owner_id: int
    title: str
    questions: list[Question]
    passing_score: int
    time_limit: int | None = None
    unlimited_attempts: bool | None = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)


@dataclass
class LessonProgressDTO:
    lesson_id: int
    lesson_number: int
    title: str
    completed: bool
    quiz_score: int
    attempts: int
    completed_at: datetime | None


@dataclass
class ChapterProgressDTO:
    chapter_id: int
    chapter_number: int
    title: str
    total_lessons: int
    completed_lessons: int
    all_lessons_completed: bool
    test_taken: bool
    test_passed: bool
    test_best_score: int | None
    test_attempted_at: datetime | None
    lessons: list[LessonProgressDTO]


@dataclass
class NextAction:
    type: str
    message: str
    chapter_number: int | None = None
    lesson_number: int | None = None
    title: str | None = None


@dataclass
class ProgressSummaryDTO:
    current_chapter: int
    current_lesson: int
    completed_lessons: int
    chapter_tests_passed: int
    final_exam_passed: bool
    course_completed: bool
    certificate_issued: bool


@dataclass
class DetailedProgressDTO:
    current_chapter: int
    current_lesson: int
    course_completed: bool
    certificate_issued: bool
    completed_at: datetime | None
    chapters: list[ChapterProgressDTO]
    final_exam_attempts: list
    final_exam_passed: bool
    final_exam_best_score: int
    next_action: NextAction | None


@dataclass
class ChapterSummaryDTO:
    id: int
    chapter_number: int
    title: str
    description: str | None


@dataclass
class CourseOutlineDTO:
    id: int
    title: str
    description: str | None
    chapters: list[ChapterSummaryDTO]

    @property
    def total_chapters(self) -> int:
        return len(self.chapters)


@dataclass
class LessonSummaryDTO:
    id: int
    lesson_number: int
    title: str
    content_type: str


@dataclass
class ChapterTestInfoDTO:
    total_questions: int
    passing_score: int
    time_limit: int
    cooldown_hours: float


@dataclass
class ChapterOutlineDTO:
    id: int
    course_id: int
    chapter_number: int
    title: str
    description: str | None
    lessons: list[LessonSummaryDTO]
    chapter_test: ChapterTestInfoDTO

    @property
    def total_lessons(self) -> int:
        return len(self.lessons)
