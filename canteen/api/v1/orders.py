import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from canteen.auth.dependencies import get_principal, require_admin, require_user
from canteen.auth.principal import AdminPrincipal, Principal, UserPrincipal
from canteen.auth.qr_token import QrTokenError, generate_qr_token, render_qr_png, verify_qr_token
from canteen.core import config
from canteen.core.errors import BadRequestError, ForbiddenError, NotFoundError
from canteen.schemas.order import (
    MAX_ID, ActiveOrdersResponse, OrderDetailResponse, ScanQrRequest, TimedActiveItemCountResponse,
)
from canteen.schemas.response import ApiResponse, error_body
from canteen.services import order_service, user_service

router = APIRouter()
log = logging.getLogger("canteen.api.orders")


@router.get("", response_model=TimedActiveItemCountResponse)
async def list_orders_endpoint(admin: AdminPrincipal = Depends(require_admin)):
    """Aggregated counts of active ordered items per time band for the operator's canteen."""
    data = await order_service.list_by_canteen(admin.canteen_id)
    log.debug(f"Aggregated {sum(len(v) for v in data.values())} item(s) for canteen {admin.canteen_id}")
    return TimedActiveItemCountResponse(data=data)


@router.post("/scan", response_model=OrderDetailResponse)
async def scan_qr_endpoint(request_data: ScanQrRequest, admin: AdminPrincipal = Depends(require_admin)):
    """
    Verifies a pickup QR token and returns the order it points to.
    Scanning does not fulfil the order; PUT /orders/{id}/delivered does.
    """
    try:
        order_id, user_id = verify_qr_token(
            request_data.token, config.DELIVER_QR_HASH_SECRET, config.QR_TOKEN_MAX_AGE_SECS
        )
    except QrTokenError as e:
        log.error(f"Rejected QR token at canteen {admin.canteen_id}: {e.message}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(e.message))

    try:
        detail = await order_service.resolve_scan(order_id, user_id, admin.canteen_id)
    except BadRequestError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(e.message))
    except ForbiddenError as e:
        log.error(f"Canteen {admin.canteen_id} scanned QR for order {order_id} of another canteen")
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=error_body(e.message))

    log.debug(f"Canteen {admin.canteen_id} scanned QR for order {order_id}")
    return OrderDetailResponse(data=detail)


@router.get("/by_user", response_model=ActiveOrdersResponse)
async def list_orders_by_user_endpoint(
    user_id: Optional[int] = Query(None, ge=1, le=MAX_ID),
    rfid: Optional[str] = Query(None, min_length=1),
    principal: Principal = Depends(get_principal),
):
    """
    Active orders of one user, newest first.

    A user always gets their own orders and the query is ignored. An operator
    names the user by exactly one of user_id or rfid and sees only orders
    placed at their canteen.
    """
    if isinstance(principal, UserPrincipal):
        data = await order_service.list_active_orders(principal.user_id)
        log.debug(f"Retrieved {len(data)} active order(s) for user {principal.user_id}")
        return ActiveOrdersResponse(data=data)

    if user_id is not None and rfid is not None:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content=error_body("Cannot provide both user_id and rfid parameters", data=[]))
    if user_id is None and rfid is None:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                            content=error_body("Either user_id or rfid must be provided", data=[]))

    if rfid is not None:
        user_id = await user_service.find_user_id_by_rfid(rfid)
        if user_id is None:
            log.debug(f"No user carries rfid '{rfid}'")
            return ActiveOrdersResponse(data=[])

    data = await order_service.list_active_orders(user_id, canteen_id=principal.canteen_id)
    log.debug(f"Canteen {principal.canteen_id} retrieved {len(data)} active order(s) for user {user_id}")
    return ActiveOrdersResponse(data=data)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order_endpoint(order_id: int, admin: AdminPrincipal = Depends(require_admin)):
    """Order detail; a missing (or foreign) order is reported as status "error" with null data."""
    detail = await order_service.get_order_detail(order_id)
    if detail is None or detail.canteen_id != admin.canteen_id:
        return OrderDetailResponse(status="error", error="Order not found", data=None)
    return OrderDetailResponse(data=detail)


@router.get("/{order_id}/qr")
async def get_order_qr_endpoint(order_id: int, user: UserPrincipal = Depends(require_user)):
    """PNG QR code the owner presents at pickup."""
    order = await order_service.get_active_order(order_id)
    if order is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=error_body("Order not found"))
    if order.user_id != user.user_id:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=error_body("You do not own this order"))

    token = generate_qr_token(order.id, user.user_id, config.DELIVER_QR_HASH_SECRET)
    png = await run_in_threadpool(render_qr_png, token)
    return Response(content=png, media_type="image/png")


@router.put("/{order_id}/{action}", response_model=ApiResponse)
async def transition_order_endpoint(order_id: int, action: str, admin: AdminPrincipal = Depends(require_admin)):
    """Finalizes an active order as delivered or cancelled."""
    try:
        await order_service.transition(order_id, action, canteen_id=admin.canteen_id)
    except BadRequestError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(e.message))
    except ForbiddenError as e:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=error_body(e.message))
    except NotFoundError as e:
        log.error(f"Failed to mark order {order_id} as {action}: {e}")
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=error_body(e.message))

    log.debug(f"Order {order_id} marked {action} by canteen {admin.canteen_id}")
    return ApiResponse()
