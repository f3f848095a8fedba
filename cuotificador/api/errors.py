"""Mapping of domain exceptions to HTTP responses"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from cuotificador.domain.exceptions import (
    DomainException,
    DuplicateConflict,
    ExternalProviderError,
    InvalidAmount,
    InvalidInstallmentCount,
    InvalidRate,
    NotConfigured,
    NotFound,
    PartialImportFailure,
    Unauthorized,
)

STATUS_CODES = {
    InvalidAmount: 422,
    InvalidInstallmentCount: 422,
    InvalidRate: 422,
    NotConfigured: 404,
    NotFound: 404,
    DuplicateConflict: 409,
    Unauthorized: 403,
}


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, ExternalProviderError):
        logging.error(f"Provider error: {exc}", extra={"request_id": request_id, "error_code": exc.code})
        return JSONResponse(
            status_code=503,
            content={"detail": "Payment provider unavailable", "code": exc.code, "message": exc.message},
        )

    if isinstance(exc, PartialImportFailure):
        logging.warning(f"Import rejected: {exc}", extra={"request_id": request_id})
        return JSONResponse(
            status_code=422,
            content={
                "detail": str(exc),
                "imported_count": exc.summary.imported_count,
                "error_count": exc.summary.error_count,
                "error_details": exc.summary.error_details,
            },
        )

    status_code = next((code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)), 400)
    if status_code == 403:
        logging.warning(f"Permission denied: {exc}", extra={"request_id": request_id})
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
