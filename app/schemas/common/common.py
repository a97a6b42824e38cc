# app/schemas/common/common.py
from pydantic import BaseModel
from typing import Any, List, Optional


class ErrorResponse(BaseModel):
    success: bool = False
    data: Optional[Any] = None
    error: str
    code: str
    errors: Optional[List[Any]] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# error statuses every router documents with the envelope above
ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 403, 404, 409, 422, 429)
}
