"""Map CredentialError subclasses to typed JSON responses.

Body shape: {"error": <kind>, "message": <reason>}.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import CredentialError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "validation": status.HTTP_400_BAD_REQUEST,
    "bad_request": status.HTTP_400_BAD_REQUEST,
    "conflict": status.HTTP_409_CONFLICT,
    "authorization": status.HTTP_403_FORBIDDEN,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def credential_error_handler(
    request: Request, exc: CredentialError
) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(
            "Operation failed kind=%s reason=%s path=%s",
            exc.kind,
            exc.reason,
            request.url.path,
        )
    else:
        logger.warning(
            "Operation rejected kind=%s reason=%s path=%s",
            exc.kind,
            exc.reason,
            request.url.path,
        )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind, "message": exc.reason},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CredentialError, credential_error_handler)
