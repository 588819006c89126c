from fastapi import status
from fastapi.responses import JSONResponse

from ...domain.decisions import CooldownActive, Denied


def denied_response(decision: Denied) -> JSONResponse:
    body = {"can_access": False, "message": decision.message}
    if isinstance(decision, CooldownActive):
        body["remaining_minutes"] = decision.remaining_minutes
        body["can_retake_at"] = decision.retry_at.isoformat() if decision.retry_at else None
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=body)
