from pydantic import BaseModel
from typing import Any, Optional


class APIResponse(BaseModel):
    """Envelope every successful endpoint returns"""
    success: bool = True
    message: str = ""
    data: Optional[Any] = None


def ok(message: str = "", data: Any = None) -> APIResponse:
    return APIResponse(success=True, message=message, data=data)
