import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import BookingError

logger = logging.getLogger(__name__)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    logger.warning(
        "%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message, "record": exc.record},
    )
