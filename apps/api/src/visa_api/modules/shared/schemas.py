"""
Response Envelope

Every successful response is wrapped as
{"success": true, "message": "...", "data": ...}.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None


def ok(data: T, message: str = "OK") -> ApiResponse[T]:
    return ApiResponse(success=True, message=message, data=data)
