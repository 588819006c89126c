from typing import Sequence

from ..domain.entities import Certificate, Chapter, Course, Identity, Lesson, Progress, Question


class ICatalogReader:
    def get_course(self, course_id: int) -> Course: ...
    def get_chapter(self, chapter_id: int) -> Chapter: ...
    def get_lesson(self, lesson_id: int) -> Lesson: ...
    def find_chapter_by_number(self, course_id: int, chapter_number: int) -> Chapter | None: ...
    def list_lessons_of_chapter(self, chapter_id: int) -> list[Lesson]: ...
    def list_chapters_of_course(self, course_id: int) -> list[Chapter]: ...
    def get_questions(self, question_ids: Sequence[int]) -> list[Question]: ...


class IProgressStore:
    def get(self, user_id: str, course_id: int) -> Progress | None: ...
    def get_or_create(self, user_id: str, course_id: int) -> Progress: ...
    def save(self, progress: Progress) -> Progress: ...


class ICertificateIssuer:
    def issue(self, identity: Identity, course: Course, score: int) -> list[Certificate]: ...


class ICertificateMailer:
    def send_certificates(self, identity: Identity, certificates: Sequence[Certificate]) -> None: ...


class ICertificateStore:
    def list_for_user(self, user_id: str, course_id: int) -> list[Certificate]: ...
    def find_by_codes(self, certificate_number: str, verification_code: str) -> Certificate | None: ...
