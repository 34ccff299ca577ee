from pydantic import BaseModel, Field
from typing import Any, Literal, Optional
import uuid


def _rid():
    return uuid.uuid4().hex


class ApiResponse(BaseModel):
    """Envelope shared by every JSON endpoint: status, optional error and a request id."""
    status: Literal["ok", "error"] = "ok"
    error: Optional[str] = None
    request_id: str = Field(default_factory=_rid)


def error_body(message: Any, **extra) -> dict:
    body = ApiResponse(status="error", error=str(message)).model_dump()
    body.update(extra)
    return body
