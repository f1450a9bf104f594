"""
Error responses for the HTTP boundary.

Taxonomy kinds map to status codes here and nowhere else. Bodies keep the
{"error": ..., "details": ...} shape; internal failures never expose their
details to the client.
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ledger.audit import AuditLogger
from ledger.errors import ErrorKind, LedgerError


logger = structlog.get_logger(__name__)
_audit_logger = AuditLogger()


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(error: LedgerError) -> JSONResponse:
    status_code = STATUS_BY_KIND[error.kind]
    body = error.to_dict()
    headers = None

    if error.kind == ErrorKind.INTERNAL:
        body["details"] = "Internal server error"
    elif error.kind == ErrorKind.UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def _ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    log = logger.error if exc.kind == ErrorKind.INTERNAL else logger.warning
    log(
        "request_failed",
        method=request.method,
        path=request.url.path,
        kind=exc.kind.value,
        error=str(exc),
    )
    if exc.kind == ErrorKind.INTERNAL:
        _audit_logger.log_operation_failed(
            operation=f"{request.method} {request.url.path}",
            error_code=exc.kind.value,
            error_message=str(exc),
        )
    return error_response(exc)


async def _request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    fields = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "tag": err.get("type", ""),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    logger.warning(
        "request_body_invalid",
        path=request.url.path,
        fields=[field["field"] for field in fields],
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": ErrorKind.VALIDATION.value,
            "details": "Invalid request body",
            "fields": fields,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, _ledger_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
