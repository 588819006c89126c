from fastapi import APIRouter, Depends

from ....application.dto import GradedSubmission
from ....application.use_cases.deliver_assessment import AssessmentDelivery
from ....application.use_cases.record_attempt import AttemptRecorder
from ....domain.decisions import Denied
from ....domain.entities import Identity
from ....domain.grading import SubmittedAnswer
from ..authz import require_student
from ..deps import get_delivery, get_recorder
from ..responses import denied_response
from ..schemas import CertificateOut, LessonOut, PaperOut, QuestionResultOut, SubmissionIn, SubmissionOut

router = APIRouter(prefix="/api/courses", tags=["assessments"])


def _answers(payload: SubmissionIn) -> list[SubmittedAnswer]:
    return [SubmittedAnswer(question_id=a.question_id, selected_answer=a.selected_answer) for a in payload.answers]


def _graded(outcome: GradedSubmission | Denied):
    if isinstance(outcome, Denied):
        return denied_response(outcome)
    grade = outcome.grade
    return SubmissionOut(
        score=grade.score,
        correct_count=grade.correct_count,
        total_questions=grade.total_questions,
        passed=grade.passed,
        passing_score=grade.passing_score,
        results=[QuestionResultOut.model_validate(r) for r in grade.results],
        course_completed=outcome.course_completed,
        certificate_issued=outcome.certificate_issued,
        certificates=[CertificateOut.model_validate(c) for c in outcome.certificates],
    )


def _paper(outcome):
    if isinstance(outcome, Denied):
        return denied_response(outcome)
    return PaperOut.model_validate(outcome)


# --- lessons

@router.get("/lessons/{lesson_id}", response_model=LessonOut)
def get_lesson(lesson_id: int,
               identity: Identity = Depends(require_student),
               delivery: AssessmentDelivery = Depends(get_delivery)):
    outcome = delivery.lesson_content(identity, lesson_id)
    if isinstance(outcome, Denied):
        return denied_response(outcome)
    return LessonOut.model_validate(outcome)


@router.get("/lessons/{lesson_id}/quiz", response_model=PaperOut)
def get_lesson_quiz(lesson_id: int,
                    identity: Identity = Depends(require_student),
                    delivery: AssessmentDelivery = Depends(get_delivery)):
    return _paper(delivery.lesson_quiz(identity, lesson_id))


@router.post("/lessons/{lesson_id}/submit-quiz", response_model=SubmissionOut)
def submit_lesson_quiz(lesson_id: int, payload: SubmissionIn,
                       identity: Identity = Depends(require_student),
                       recorder: AttemptRecorder = Depends(get_recorder)):
    return _graded(recorder.submit_lesson_quiz(identity, lesson_id, _answers(payload)))


# --- chapter tests

@router.get("/chapters/{chapter_id}/test", response_model=PaperOut)
def get_chapter_test(chapter_id: int,
                     identity: Identity = Depends(require_student),
                     delivery: AssessmentDelivery = Depends(get_delivery)):
    return _paper(delivery.chapter_test(identity, chapter_id))


@router.post("/chapters/{chapter_id}/test/submit", response_model=SubmissionOut)
def submit_chapter_test(chapter_id: int, payload: SubmissionIn,
                        identity: Identity = Depends(require_student),
                        recorder: AttemptRecorder = Depends(get_recorder)):
    return _graded(recorder.submit_chapter_test(identity, chapter_id, _answers(payload)))


# --- final exam

@router.get("/{course_id}/exam", response_model=PaperOut)
def get_final_exam(course_id: int,
                   identity: Identity = Depends(require_student),
                   delivery: AssessmentDelivery = Depends(get_delivery)):
    return _paper(delivery.final_exam(identity, course_id))


@router.post("/{course_id}/submit-exam", response_model=SubmissionOut)
def submit_final_exam(course_id: int, payload: SubmissionIn,
                      identity: Identity = Depends(require_student),
                      recorder: AttemptRecorder = Depends(get_recorder)):
    return _graded(recorder.submit_final_exam(identity, course_id, _answers(payload)))
