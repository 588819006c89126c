from ...domain.entities import Certificate, Identity
from ...domain.errors import NotFound, ValidationFailure
from ..ports import ICertificateStore
from .access import require_identity


class CertificateQueries:
    def __init__(self, store: ICertificateStore):
        self.store = store

    def list_for_course(self, identity: Identity | None, course_id: int) -> list[Certificate]:
        identity = require_identity(identity)
        certificates = self.store.list_for_user(identity.user_id, course_id)
        if not certificates:
            raise NotFound("certificates")
        return certificates

    def verify(self, certificate_number: str, verification_code: str) -> Certificate:
        """Public lookup; both codes must match the same record."""
        if not certificate_number or not verification_code:
            raise ValidationFailure("Certificate number and verification code are required")
        certificate = self.store.find_by_codes(certificate_number.strip(), verification_code.strip().upper())
        if certificate is None:
            raise NotFound("certificate")
        return certificate
