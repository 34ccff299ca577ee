import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from canteen.auth.dependencies import require_user
from canteen.auth.principal import UserPrincipal
from canteen.core.clock import epoch_seconds
from canteen.core.errors import DomainError
from canteen.models.enums import TimeBand
from canteen.schemas.order import ConfirmHoldResponse, HoldOrderResponse, OrderRequest
from canteen.schemas.response import ApiResponse
from canteen.services.hold_service import confirm_hold, place_hold, release_hold

router = APIRouter()
log = logging.getLogger("canteen.api.holds")


def _error(model, status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model(status="error", error=message).model_dump())


@router.post("/hold", response_model=HoldOrderResponse)
async def hold_order_endpoint(request_data: OrderRequest, user: UserPrincipal = Depends(require_user)):
    """Reserves stock for the cart and returns the hold id with its expiry (epoch seconds)."""
    if not TimeBand.is_valid_wire(request_data.deliver_at):
        return _error(HoldOrderResponse, status.HTTP_400_BAD_REQUEST,
                      f"Invalid time band: {request_data.deliver_at}")
    try:
        hold_id, expires_at = await place_hold(user.user_id, request_data.item_ids, request_data.deliver_at)
    except DomainError as e:
        log.error(f"Failed to hold order for user {user.user_id} with items {request_data.item_ids}: {e}")
        return _error(HoldOrderResponse, status.HTTP_409_CONFLICT, e.message)

    log.debug(f"Created hold {hold_id} for user {user.user_id} with items {request_data.item_ids}")
    return HoldOrderResponse(hold_id=hold_id, expires_at=epoch_seconds(expires_at))


@router.post("/hold/{hold_id}/confirm", response_model=ConfirmHoldResponse)
async def confirm_hold_endpoint(hold_id: int, user: UserPrincipal = Depends(require_user)):
    """Confirms a held order after payment."""
    try:
        order_id = await confirm_hold(hold_id, user.user_id)
    except DomainError as e:
        log.error(f"Failed to confirm hold {hold_id} for user {user.user_id}: {e}")
        return _error(ConfirmHoldResponse, status.HTTP_409_CONFLICT, e.message)

    log.debug(f"Hold {hold_id} confirmed as order {order_id} for user {user.user_id}")
    return ConfirmHoldResponse(order_id=order_id)


@router.delete("/hold/{hold_id}", response_model=ApiResponse)
async def release_hold_endpoint(hold_id: int, user: UserPrincipal = Depends(require_user)):
    """Cancels a held order and releases its reserved stock."""
    try:
        await release_hold(hold_id, user.user_id)
    except DomainError as e:
        log.error(f"Failed to release hold {hold_id} for user {user.user_id}: {e}")
        return _error(ApiResponse, status.HTTP_409_CONFLICT, e.message)

    log.debug(f"Hold {hold_id} released by user {user.user_id}")
    return ApiResponse()
