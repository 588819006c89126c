from fastapi import APIRouter, Depends

from ....application.use_cases.access import AccessEvaluator
from ....domain.decisions import Decision
from ....domain.entities import Identity
from ..authz import require_student
from ..deps import get_access_evaluator
from ..responses import denied_response
from ..schemas import AccessOut

router = APIRouter(prefix="/api/access", tags=["access"])


def _respond(decision: Decision):
    if decision.can_access:
        return AccessOut(can_access=True, reason=decision.reason)
    return denied_response(decision)


@router.get("/lesson/{lesson_id}", response_model=AccessOut)
def lesson_access(lesson_id: int,
                  identity: Identity = Depends(require_student),
                  access: AccessEvaluator = Depends(get_access_evaluator)):
    return _respond(access.can_access_lesson(identity, lesson_id))


@router.get("/chapter-test/{chapter_id}", response_model=AccessOut)
def chapter_test_access(chapter_id: int,
                        identity: Identity = Depends(require_student),
                        access: AccessEvaluator = Depends(get_access_evaluator)):
    return _respond(access.can_access_chapter_test(identity, chapter_id))


@router.get("/final-exam/{course_id}", response_model=AccessOut)
def final_exam_access(course_id: int,
                      identity: Identity = Depends(require_student),
                      access: AccessEvaluator = Depends(get_access_evaluator)):
    return _respond(access.can_access_final_exam(identity, course_id))
