from pydantic import BaseModel, Field
from typing import Optional

from canteen.schemas.response import ApiResponse


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class CanteenInfo(BaseModel):
    canteen_id: int
    canteen_name: str


class LoginResponse(ApiResponse):
    token: Optional[str] = None
    data: Optional[CanteenInfo] = None
