import logging
from fastapi import APIRouter, Depends

from canteen.auth.dependencies import require_user
from canteen.auth.principal import UserPrincipal
from canteen.schemas.order import PastOrdersResponse
from canteen.services.order_service import list_past_orders

router = APIRouter()
log = logging.getLogger("canteen.api.users")


@router.get("/get_past_orders", response_model=PastOrdersResponse)
async def get_past_orders_endpoint(user: UserPrincipal = Depends(require_user)):
    """Finalized orders of the calling user, newest first."""
    data = await list_past_orders(user.user_id)
    log.debug(f"Retrieved {len(data)} past order(s) for user {user.user_id}")
    return PastOrdersResponse(data=data)
