from fastapi import APIRouter, Depends

from ....application.use_cases.catalog_outline import CatalogOutline
from ....domain.decisions import Denied
from ....domain.entities import Identity
from ..authz import require_student
from ..deps import get_outline
from ..responses import denied_response
from ..schemas import ChapterOutlineOut, CourseOutlineOut

router = APIRouter(prefix="/api/courses", tags=["catalog"])


@router.get("/chapters/{chapter_id}", response_model=ChapterOutlineOut)
def get_chapter(chapter_id: int,
                identity: Identity = Depends(require_student),
                outline: CatalogOutline = Depends(get_outline)):
    outcome = outline.chapter(identity, chapter_id)
    if isinstance(outcome, Denied):
        return denied_response(outcome)
    return ChapterOutlineOut.model_validate(outcome)


@router.get("/{course_id}", response_model=CourseOutlineOut)
def get_course(course_id: int,
               identity: Identity = Depends(require_student),
               outline: CatalogOutline = Depends(get_outline)):
    outcome = outline.course(identity, course_id)
    if isinstance(outcome, Denied):
        return denied_response(outcome)
    return CourseOutlineOut.model_validate(outcome)
