from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from ...application.use_cases.access import AccessEvaluator
from ...application.use_cases.catalog_outline import CatalogOutline
from ...application.use_cases.certificates import CertificateQueries
from ...application.use_cases.deliver_assessment import AssessmentDelivery
from ...application.use_cases.progress_report import ProgressReporter
from ...application.use_cases.record_attempt import AttemptRecorder
from ...domain.clock import utcnow
from ...infrastructure.certificates import CertificateIssuer, LogCertificateMailer
from ...infrastructure.db import get_db
from ...infrastructure.repositories import CertificateRepository, ProgressRepository, SqlCatalogReader


def get_clock() -> Callable:
    return utcnow


def get_catalog(db: Session = Depends(get_db)) -> SqlCatalogReader:
    return SqlCatalogReader(db)


def get_progress_store(db: Session = Depends(get_db), clock: Callable = Depends(get_clock)) -> ProgressRepository:
    return ProgressRepository(db, clock=clock)


def get_certificate_issuer(db: Session = Depends(get_db), clock: Callable = Depends(get_clock)) -> CertificateIssuer:
    return CertificateIssuer(CertificateRepository(db), mailer=LogCertificateMailer(), clock=clock)


def get_access_evaluator(catalog=Depends(get_catalog), progress=Depends(get_progress_store)) -> AccessEvaluator:
    return AccessEvaluator(catalog, progress)


def get_recorder(
    catalog=Depends(get_catalog),
    progress=Depends(get_progress_store),
    issuer=Depends(get_certificate_issuer),
    clock: Callable = Depends(get_clock),
) -> AttemptRecorder:
    return AttemptRecorder(catalog, progress, issuer, clock=clock)


def get_delivery(catalog=Depends(get_catalog), progress=Depends(get_progress_store),
                 clock: Callable = Depends(get_clock)) -> AssessmentDelivery:
    return AssessmentDelivery(catalog, progress, clock=clock)


def get_reporter(catalog=Depends(get_catalog), progress=Depends(get_progress_store)) -> ProgressReporter:
    return ProgressReporter(catalog, progress)


def get_certificate_queries(db: Session = Depends(get_db)) -> CertificateQueries:
    return CertificateQueries(CertificateRepository(db))


def get_outline(catalog=Depends(get_catalog)) -> CatalogOutline:
    return CatalogOutline(catalog)
