from fastapi import APIRouter, Depends

from ....application.use_cases.certificates import CertificateQueries
from ....application.use_cases.progress_report import ProgressReporter
from ....domain.entities import Identity
from ..authz import require_student
from ..deps import get_certificate_queries, get_reporter
from ..schemas import CertificateOut, DetailedProgressOut, ProgressSummaryOut

router = APIRouter(prefix="/api/courses", tags=["progress"])


@router.get("/{course_id}/progress", response_model=ProgressSummaryOut)
def get_progress(course_id: int,
                 identity: Identity = Depends(require_student),
                 reporter: ProgressReporter = Depends(get_reporter)):
    return ProgressSummaryOut.model_validate(reporter.summary(identity, course_id))


@router.get("/{course_id}/detailed-progress", response_model=DetailedProgressOut)
def get_detailed_progress(course_id: int,
                          identity: Identity = Depends(require_student),
                          reporter: ProgressReporter = Depends(get_reporter)):
    return DetailedProgressOut.model_validate(reporter.detailed(identity, course_id))


@router.get("/{course_id}/certificates", response_model=list[CertificateOut])
def list_certificates(course_id: int,
                      identity: Identity = Depends(require_student),
                      queries: CertificateQueries = Depends(get_certificate_queries)):
    return [CertificateOut.model_validate(c) for c in queries.list_for_course(identity, course_id)]
