from unittest.mock import MagicMock

import pytest

from progression_service.application.use_cases.access import AccessEvaluator
from progression_service.domain.decisions import Allowed, Denied
from progression_service.domain.entities import Identity, Role
from progression_service.domain.errors import NotFound, Unauthorized
from progression_service.infrastructure import models as m
from progression_service.infrastructure.repositories import SqlCatalogReader

from conftest import CourseFixture


def seed(store, identity, course_id, clock, lessons=(), chapter_results=(), cursor=None):
    """Write completion facts straight into the progress record."""
    progress = store.get_or_create(identity.user_id, course_id)
    for lesson_id in lessons:
        progress.record_lesson_pass(lesson_id, 2, clock())
    for chapter_id, passed in chapter_results:
        progress.record_chapter_test(chapter_id, 100 if passed else 0, 2 if passed else 0, passed, clock())
    if cursor:
        progress.current_chapter_number, progress.current_lesson_number = cursor
    return store.save(progress)


# --- identity

def test_anonymous_is_unauthorized_before_any_lookup():
    catalog, store = MagicMock(), MagicMock()
    access = AccessEvaluator(catalog, store)
    for check in (access.can_access_lesson, access.can_access_chapter_test, access.can_access_final_exam):
        with pytest.raises(Unauthorized):
            check(None, 1)
    assert catalog.method_calls == []
    assert store.method_calls == []


@pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPERVISOR])
def test_elevated_roles_bypass_without_reads(role):
    catalog, store = MagicMock(), MagicMock()
    access = AccessEvaluator(catalog, store)
    identity = Identity(user_id="staff", role=role)
    assert access.can_access_lesson(identity, 999) == Allowed("elevated access")
    assert access.can_access_chapter_test(identity, 999) == Allowed("elevated access")
    assert access.can_access_final_exam(identity, 999) == Allowed("elevated access")
    assert catalog.method_calls == []
    assert store.method_calls == []


# --- lessons

def test_first_lesson_is_open_without_progress(access, course, student, progress_store):
    decision = access.can_access_lesson(student, course.lesson(1, 1))
    assert decision == Allowed("first lesson")
    assert progress_store.get(student.user_id, course.course_id) is None


def test_missing_lesson_is_not_found(access, course, student):
    with pytest.raises(NotFound) as exc:
        access.can_access_lesson(student, 10_000)
    assert exc.value.message == "Lesson not found"


def test_no_progress_denies_later_lessons(access, course, student):
    decision = access.can_access_lesson(student, course.lesson(1, 2))
    assert decision == Denied("You must start from lesson 1")
    assert decision.can_access is False


def test_previous_lesson_must_be_passed(access, course, student, progress_store, clock):
    seed(progress_store, student, course.course_id, clock)
    decision = access.can_access_lesson(student, course.lesson(1, 2))
    assert decision == Denied("Complete lesson 1 first")

    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(1, 1)])
    assert access.can_access_lesson(student, course.lesson(1, 2)) == Allowed("previous lesson completed")


def test_previous_lesson_message_names_the_missing_lesson(db, student, progress_store, clock):
    course = CourseFixture(db, chapters=1, lessons=4, title="Long chapter")
    access = AccessEvaluator(SqlCatalogReader(db), progress_store)
    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(1, 1), course.lesson(1, 2)])
    assert access.can_access_lesson(student, course.lesson(1, 4)) == Denied("Complete lesson 3 first")


def test_first_lesson_of_next_chapter_needs_whole_previous_chapter(access, course, student, progress_store, clock):
    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(1, 1)])
    decision = access.can_access_lesson(student, course.lesson(2, 1))
    assert decision == Denied("Complete all lessons in the previous chapter first")

    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(1, 2)])
    assert access.can_access_lesson(student, course.lesson(2, 1)) == Allowed("previous chapter completed")


def test_completed_lesson_stays_open(access, course, student, progress_store, clock):
    """Re-access wins over the previous-lesson rule."""
    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(2, 2)])
    assert access.can_access_lesson(student, course.lesson(2, 2)) == Allowed("already completed")


def test_decisions_are_per_user(access, course, student, other_student, progress_store, clock):
    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(1, 1)])
    assert access.can_access_lesson(student, course.lesson(1, 2)).can_access
    assert not access.can_access_lesson(other_student, course.lesson(1, 2)).can_access


def test_gap_in_lesson_numbers_fails_open(db, student, progress_store, clock):

    row = m.CourseORM(title="Gappy")
    chapter = m.ChapterORM(chapter_number=1, title="Only")
    chapter.lessons = [m.LessonORM(lesson_number=1, title="one"), m.LessonORM(lesson_number=3, title="three")]
    row.chapters.append(chapter)
    db.add(row)
    db.commit()
    third = chapter.lessons[1].id

    seed(progress_store, student, row.id, clock)
    access = AccessEvaluator(SqlCatalogReader(db), progress_store)
    assert access.can_access_lesson(student, third) == Allowed("no previous lesson")


# --- chapter tests

def test_chapter_test_without_progress(access, course, student):
    assert access.can_access_chapter_test(student, course.chapter(1)) == Denied("Complete all chapter lessons first")


def test_chapter_test_missing_chapter(access, course, student):
    with pytest.raises(NotFound) as exc:
        access.can_access_chapter_test(student, 10_000)
    assert exc.value.message == "Chapter not found"


def test_chapter_test_partial_lessons_example(db, student, progress_store, clock):
    """Lessons 1-3, first two passed: lesson 3 opens, the test does not."""

    course = CourseFixture(db, chapters=1, lessons=3, title="Three lessons")
    access = AccessEvaluator(SqlCatalogReader(db), progress_store)
    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(1, 1), course.lesson(1, 2)])

    assert access.can_access_lesson(student, course.lesson(1, 3)) == Allowed("previous lesson completed")
    assert access.can_access_chapter_test(student, course.chapter(1)) == Denied("Complete all 3 lessons first")


def test_chapter_test_opens_when_all_lessons_passed(access, course, student, progress_store, clock):
    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(1, 1), course.lesson(1, 2)])
    assert access.can_access_chapter_test(student, course.chapter(1)) == Allowed("all lessons completed")


def test_chapter_test_cursor_ahead_is_always_open(access, course, student, progress_store, clock):
    seed(progress_store, student, course.course_id, clock, cursor=(2, 1))
    assert access.can_access_chapter_test(student, course.chapter(1)) == Allowed("chapter completed")


def test_chapter_test_cursor_behind_fails_closed(access, course, student, progress_store, clock):
    seed(progress_store, student, course.course_id, clock, lessons=[course.lesson(2, 1), course.lesson(2, 2)])
    assert access.can_access_chapter_test(student, course.chapter(2)) == Denied("Complete all 2 lessons first")


def test_chapter_without_lessons_is_vacuously_open(db, student, progress_store, clock):

    row = m.CourseORM(title="Empty chapter")
    row.chapters.append(m.ChapterORM(chapter_number=1, title="Nothing here"))
    db.add(row)
    db.commit()

    seed(progress_store, student, row.id, clock)
    access = AccessEvaluator(SqlCatalogReader(db), progress_store)
    assert access.can_access_chapter_test(student, row.chapters[0].id) == Allowed("all lessons completed")


# --- final exam

def test_final_exam_without_progress(access, course, student):
    assert access.can_access_final_exam(student, course.course_id) == Denied("Complete all chapters first")


def test_final_exam_missing_course(access, student):
    with pytest.raises(NotFound):
        access.can_access_final_exam(student, 10_000)


def test_final_exam_counts_each_chapter_once(db, student, progress_store, clock):

    course = CourseFixture(db, chapters=3, lessons=1, title="Three chapters")
    access = AccessEvaluator(SqlCatalogReader(db), progress_store)
    seed(progress_store, student, course.course_id, clock, chapter_results=[
        (course.chapter(1), True), (course.chapter(1), False), (course.chapter(2), True),
    ])
    decision = access.can_access_final_exam(student, course.course_id)
    assert decision == Denied("Pass all 3 chapter tests first; you've passed 2/3")


def test_final_exam_opens_when_every_chapter_passed(access, course, student, progress_store, clock):
    seed(progress_store, student, course.course_id, clock,
         chapter_results=[(course.chapter(1), True), (course.chapter(2), True)])
    assert access.can_access_final_exam(student, course.course_id) == Allowed("all requirements met")


def test_final_exam_course_without_chapters(db, student, progress_store, clock):

    row = m.CourseORM(title="Exam only")
    db.add(row)
    db.commit()
    seed(progress_store, student, row.id, clock)
    access = AccessEvaluator(SqlCatalogReader(db), progress_store)
    assert access.can_access_final_exam(student, row.id) == Allowed("all requirements met")
