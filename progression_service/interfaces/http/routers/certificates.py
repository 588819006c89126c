from fastapi import APIRouter, Depends, Query

from ....application.use_cases.certificates import CertificateQueries
from ..deps import get_certificate_queries
from ..schemas import CertificateOut, CertificateVerifyOut

router = APIRouter(prefix="/api/certificates", tags=["certificates"])


@router.get("/verify", response_model=CertificateVerifyOut)
def verify_certificate(certificate_number: str = Query(..., min_length=1),
                       verification_code: str = Query(..., min_length=1),
                       queries: CertificateQueries = Depends(get_certificate_queries)):
    """Public endpoint, no token required."""
    certificate = queries.verify(certificate_number, verification_code)
    return CertificateVerifyOut(valid=True, certificate=CertificateOut.model_validate(certificate))
