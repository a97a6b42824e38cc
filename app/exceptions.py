from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class APIException(HTTPException):
    code = "error"

    def __init__(self, status_code: int, detail: str, code: str = None):
        super().__init__(status_code=status_code, detail=detail)
        if code:
            self.code = code


class NotFound(APIException):
    code = "not_found"

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class InvalidInput(APIException):
    code = "invalid_input"

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(status_code=422, detail=detail)


class SlotTaken(APIException):
    code = "slot_taken"

    def __init__(self, detail: str = "This time slot is already booked"):
        super().__init__(status_code=409, detail=detail)


class InvalidTransition(APIException):
    code = "invalid_transition"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(status_code=409, detail=f"Cannot change appointment status from {current} to {requested}")


class Unauthorized(APIException):
    code = "unauthorized"

    def __init__(self, detail: str = "Not allowed to modify this appointment"):
        super().__init__(status_code=403, detail=detail)


def create_error_response(error_message: str, code: str = "error", errors=None) -> dict:
    """Create a standardized error response"""
    body = {
        "success": False,
        "data": None,
        "error": error_message,
        "code": code,
    }
    if errors is not None:
        body["errors"] = errors
    return body


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException and the domain errors built on it"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", "authentication_required")
        )

    code = getattr(exc, "code", None)
    if code is None:
        code = "authentication_required" if exc.status_code == 401 else "error"
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content=create_error_response("Validation error", InvalidInput.code, jsonable_encoder(exc.errors())),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
