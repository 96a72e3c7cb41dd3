from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from .errors import (
    SchedulingError, NotFound, InvalidInput, ConflictingState, PolicyViolation, StorageError,
)

ERROR_STATUS_CODES = [
    (NotFound, 404),
    (InvalidInput, 400),
    (ConflictingState, 409),
    (PolicyViolation, 422),
    (StorageError, 503),
]


def status_code_for(error: SchedulingError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


async def scheduling_error_handler(request: Request, exc: SchedulingError):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logging.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "error": exc.kind})


def create_app() -> FastAPI:
    app = FastAPI(title="Slot Booking API")

    app.add_exception_handler(SchedulingError, scheduling_error_handler)

    from .routes import router as main_router
    app.include_router(main_router)

    return app
