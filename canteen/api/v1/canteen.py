import logging
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from canteen.auth.admin_jwt import issue_admin_jwt
from canteen.schemas.canteen import CanteenInfo, LoginRequest, LoginResponse
from canteen.services.canteen_service import login_canteen

router = APIRouter()
log = logging.getLogger("canteen.api.canteen")

INVALID_CREDENTIALS = "Invalid username or password"


@router.post("/login", response_model=LoginResponse)
async def canteen_login_endpoint(request_data: LoginRequest, request: Request):
    """Exchanges operator credentials for an operator bearer token."""
    result = await login_canteen(request_data.username, request_data.password)
    if result is None:
        log.error(f"Failed canteen login for username {request_data.username}")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=LoginResponse(status="error", error=INVALID_CREDENTIALS).model_dump(),
        )

    canteen_id, canteen_name = result
    token = issue_admin_jwt(canteen_id, request.app.state.admin_jwt)
    log.debug(f"Canteen {canteen_id} logged in")
    return LoginResponse(token=token, data=CanteenInfo(canteen_id=canteen_id, canteen_name=canteen_name))
