from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

import logging

from social_messenger.core.exceptions import *

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[MessengerError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    DuplicateMemberError: status.HTTP_409_CONFLICT,
    DuplicateLoginError: status.HTTP_409_CONFLICT,
    MembershipConflictError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def messenger_error_handler(request: Request, exc: MessengerError) -> JSONResponse:
    status_code = STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Basic"}
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)

    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
        headers=headers
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(MessengerError, messenger_error_handler)
