import secrets
from typing import Callable, Sequence

import structlog

from ..application.ports import ICertificateIssuer, ICertificateMailer
from ..config import settings
from ..domain.clock import utcnow
from ..domain.entities import Certificate, Course, Identity
from .metrics import certificates_issued_total
from .repositories import CertificateRepository

logger = structlog.get_logger()

MAX_CODE_ATTEMPTS = 10


def generate_certificate_number(now, prefix: str | None = None) -> str:
    """MIC-2026-1A2B3C"""
    return f"{prefix or settings.CERTIFICATE_NUMBER_PREFIX}-{now.year}-{secrets.token_hex(3).upper()}"


def generate_verification_code() -> str:
    return secrets.token_hex(4).upper()


class LogCertificateMailer(ICertificateMailer):
    """Delivery stand-in: records what would be mailed."""

    def send_certificates(self, identity: Identity, certificates: Sequence[Certificate]) -> None:
        logger.info(
            "certificate_email_sent",
            user_id=identity.user_id,
            email=identity.email,
            certificate_numbers=[c.certificate_number for c in certificates],
        )


class CertificateIssuer(ICertificateIssuer):
    def __init__(
        self,
        certificates: CertificateRepository,
        mailer: ICertificateMailer | None = None,
        clock: Callable = utcnow,
        companion_titles: Sequence[str] | None = None,
    ):
        self.certificates = certificates
        self.mailer = mailer or LogCertificateMailer()
        self.clock = clock
        self.companion_titles = (
            list(companion_titles) if companion_titles is not None else settings.COMPANION_CERTIFICATE_TITLES
        )

    def _unique_codes(self, now) -> tuple[str, str]:
        for _ in range(MAX_CODE_ATTEMPTS):
            number, code = generate_certificate_number(now), generate_verification_code()
            if not self.certificates.codes_taken(number, code):
                return number, code
        raise RuntimeError("could not allocate a unique certificate number")

    def issue(self, identity: Identity, course: Course, score: int) -> list[Certificate]:
        """Mint the course certificate plus one per companion title, then mail them."""
        now = self.clock()
        issued = []
        for title in [course.title, *self.companion_titles]:
            number, code = self._unique_codes(now)
            issued.append(self.certificates.add(Certificate(
                user_id=identity.user_id,
                course_id=course.id,
                user_name=identity.name or "",
                user_email=identity.email or "",
                course_title=title,
                completion_date=now,
                certificate_number=number,
                verification_code=code,
                final_exam_score=score,
                issued_at=now,
            )))
            certificates_issued_total.inc()

        logger.info("certificates_issued", user_id=identity.user_id, course_id=course.id,
                    certificate_numbers=[c.certificate_number for c in issued])
        try:
            self.mailer.send_certificates(identity, issued)
        except Exception as exc:
            # progress and certificate rows are already committed
            logger.error("certificate_email_failed", user_id=identity.user_id, course_id=course.id, error=str(exc))
        return issued
