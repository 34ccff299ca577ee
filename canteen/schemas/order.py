from pydantic import BaseModel, Field
from typing import Annotated, Dict, List, Optional

from canteen.schemas.response import ApiResponse

# Row ids are 32-bit integer columns
MAX_ID = 2**31 - 1
ItemId = Annotated[int, Field(ge=1, le=MAX_ID)]


class OrderRequest(BaseModel):
    """Body of POST /orders/hold. Duplicate ids are aggregated into quantities."""
    deliver_at: Optional[str] = None
    item_ids: List[ItemId] = Field(..., min_length=1)


class ScanQrRequest(BaseModel):
    token: str = Field(..., min_length=1)


class HoldOrderResponse(ApiResponse):
    hold_id: Optional[int] = None
    expires_at: Optional[int] = None  # epoch seconds


class ConfirmHoldResponse(ApiResponse):
    order_id: Optional[int] = None


class ActiveItemCount(BaseModel):
    item_id: int
    item_name: str
    num_ordered: int


class ItemContainer(BaseModel):
    """One line of an order as shown to users and operators."""
    item_id: int
    name: str
    quantity: int
    price: int  # frozen unit price
    is_veg: bool
    description: Optional[str] = None
    pic_link: Optional[str] = None
    pic_etag: Optional[str] = None


class OrderDetail(BaseModel):
    order_id: int
    canteen_id: int
    canteen_name: str
    user_id: int
    total_price: int
    deliver_at: str
    ordered_at: int  # epoch seconds
    items: List[ItemContainer]


class PastOrderDetail(BaseModel):
    order_id: int
    canteen_id: int
    canteen_name: str
    total_price: int
    deliver_at: str
    order_status: bool  # True = delivered, False = cancelled
    ordered_at: int
    finalized_at: int
    items: List[ItemContainer]


class TimedActiveItemCountResponse(ApiResponse):
    data: Dict[str, List[ActiveItemCount]] = Field(default_factory=dict)


class OrderDetailResponse(ApiResponse):
    data: Optional[OrderDetail] = None


class PastOrdersResponse(ApiResponse):
    data: List[PastOrderDetail] = Field(default_factory=list)


class ActiveOrdersResponse(ApiResponse):
    data: List[OrderDetail] = Field(default_factory=list)
