import pytest

from progression_service.application.dto import ChapterOutlineDTO, CourseOutlineDTO
from progression_service.application.use_cases.catalog_outline import CatalogOutline
from progression_service.application.use_cases.deliver_assessment import COURSE_UNPUBLISHED
from progression_service.domain.decisions import Denied
from progression_service.domain.errors import NotFound, Unauthorized
from progression_service.infrastructure import models as m


@pytest.fixture
def outline(catalog):
    return CatalogOutline(catalog)


def test_course_outline_lists_chapters_in_order(outline, course, student):
    result = outline.course(student, course.course_id)
    assert isinstance(result, CourseOutlineDTO)
    assert result.total_chapters == 2
    assert [c.id for c in result.chapters] == [course.chapter(1), course.chapter(2)]


def test_chapter_outline_carries_test_settings(outline, course, student):
    result = outline.chapter(student, course.chapter(2))
    assert isinstance(result, ChapterOutlineDTO)
    assert result.course_id == course.course_id
    assert [l.id for l in result.lessons] == [course.lesson(2, 1), course.lesson(2, 2)]
    assert result.chapter_test.total_questions == 2
    assert result.chapter_test.passing_score == 70
    assert result.chapter_test.time_limit == 20
    assert result.chapter_test.cooldown_hours == 3


def test_unpublished_children_are_visible_to_elevated_roles(db, outline, course, student, supervisor):
    db.get(m.LessonORM, course.lesson(2, 1)).is_published = False
    db.commit()
    assert outline.chapter(student, course.chapter(2)).total_lessons == 1
    assert outline.chapter(supervisor, course.chapter(2)).total_lessons == 2


def test_unpublished_course_is_refused(db, outline, course, student, admin):
    db.get(m.CourseORM, course.course_id).is_published = False
    db.commit()
    assert outline.course(student, course.course_id) == Denied(COURSE_UNPUBLISHED)
    assert isinstance(outline.course(admin, course.course_id), CourseOutlineDTO)


def test_outline_requires_identity_and_known_ids(outline, course, student):
    with pytest.raises(Unauthorized):
        outline.course(None, course.course_id)
    with pytest.raises(NotFound):
        outline.course(student, 99999)
    with pytest.raises(NotFound):
        outline.chapter(student, 99999)
