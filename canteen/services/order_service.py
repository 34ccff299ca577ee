from collections import defaultdict
from typing import Dict, List, Optional

from tortoise.transactions import in_transaction

from canteen.core import config
from canteen.core.clock import epoch_seconds, utcnow
from canteen.core.errors import BadRequestError, ForbiddenError, NotFoundError
from canteen.models.enums import band_label
from canteen.models.order import ActiveOrder, ActiveOrderItem, PastOrder, PastOrderItem
from canteen.schemas.order import ActiveItemCount, ItemContainer, OrderDetail, PastOrderDetail
from canteen.services import stock
from canteen.services.assets import AssetPresigner, enrich_pic, item_pic_key

DELIVERED = "delivered"
CANCELLED = "cancelled"
ACTIONS = (DELIVERED, CANCELLED)

ORDER_NOT_FOUND_OR_COMPLETED = "Order not found or already completed"
WRONG_CANTEEN = "QR is valid but does not belong to this shop's order"
FOREIGN_ORDER = "Order does not belong to this canteen"


def _item_container(line, presigner: Optional[AssetPresigner]) -> ItemContainer:
    item = line.item
    dto = ItemContainer(
        item_id=item.id,
        name=item.name,
        quantity=line.quantity,
        price=line.unit_price_frozen,
        is_veg=item.is_veg,
        description=item.description,
        pic_etag=item.pic_etag,
    )
    return enrich_pic(dto, item.has_pic, item_pic_key(item.id), presigner)


async def list_by_canteen(canteen_id: int) -> Dict[str, List[ActiveItemCount]]:
    """Quantity ordered per item across a canteen's active orders, grouped by time band."""
    lines = await ActiveOrderItem.filter(order__canteen_id=canteen_id).select_related("order", "item")

    counts: Dict[str, Dict[int, ActiveItemCount]] = defaultdict(dict)
    for line in lines:
        bucket = counts[band_label(line.order.deliver_at)]
        entry = bucket.get(line.item_id)
        if entry is None:
            bucket[line.item_id] = ActiveItemCount(
                item_id=line.item_id, item_name=line.item.name, num_ordered=line.quantity
            )
        else:
            entry.num_ordered += line.quantity

    return {
        label: [bucket[item_id] for item_id in sorted(bucket)]
        for label, bucket in counts.items()
    }


async def get_active_order(order_id: int) -> Optional[ActiveOrder]:
    return await ActiveOrder.get_or_none(id=order_id)


def _order_detail(order: ActiveOrder, items: List[ItemContainer]) -> OrderDetail:
    return OrderDetail(
        order_id=order.id,
        canteen_id=order.canteen_id,
        canteen_name=order.canteen.name,
        user_id=order.user_id,
        total_price=order.total_price,
        deliver_at=band_label(order.deliver_at),
        ordered_at=epoch_seconds(order.ordered_at),
        items=items,
    )


async def get_order_detail(order_id: int, presigner: Optional[AssetPresigner] = None) -> Optional[OrderDetail]:
    """Full view of an active order, or None once it is gone (never placed or finalized)."""
    order = await ActiveOrder.filter(id=order_id).select_related("canteen").first()
    if order is None:
        return None
    lines = await ActiveOrderItem.filter(order_id=order_id).select_related("item").order_by("item_id")
    return _order_detail(order, [_item_container(line, presigner) for line in lines])


async def list_active_orders(user_id: int, canteen_id: Optional[int] = None,
                             presigner: Optional[AssetPresigner] = None) -> List[OrderDetail]:
    """A user's orders still awaiting pickup, newest first, optionally limited to one canteen."""
    query = ActiveOrder.filter(user_id=user_id)
    if canteen_id is not None:
        query = query.filter(canteen_id=canteen_id)
    orders = await query.select_related("canteen").order_by("-ordered_at", "-id")
    if not orders:
        return []

    lines_by_order: Dict[int, List[ItemContainer]] = defaultdict(list)
    lines = await ActiveOrderItem.filter(order_id__in=[o.id for o in orders]).select_related("item").order_by("item_id")
    for line in lines:
        lines_by_order[line.order_id].append(_item_container(line, presigner))

    return [_order_detail(o, lines_by_order[o.id]) for o in orders]


async def transition(order_id: int, action: str, canteen_id: Optional[int] = None,
                     restore_stock: Optional[bool] = None) -> None:
    """
    Finalizes an active order as delivered or cancelled.

    The past order keeps the active order's id and frozen prices; the active
    rows are removed in the same transaction. When canteen_id is given the order
    must belong to it. Cancelling gives stock back only when
    RESTORE_STOCK_ON_CANCEL (or restore_stock) is set.
    """
    if restore_stock is None:
        restore_stock = config.RESTORE_STOCK_ON_CANCEL

    async with in_transaction() as conn:
        order = await ActiveOrder.filter(id=order_id).select_for_update().using_db(conn).first()
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if action not in ACTIONS:
            raise BadRequestError(f"Invalid action: {action}")
        if canteen_id is not None and order.canteen_id != canteen_id:
            raise ForbiddenError(FOREIGN_ORDER)

        delivered = action == DELIVERED
        lines = await ActiveOrderItem.filter(order_id=order.id).order_by("item_id").using_db(conn)

        await PastOrder.create(
            id=order.id,
            user_id=order.user_id,
            canteen_id=order.canteen_id,
            total_price=order.total_price,
            deliver_at=order.deliver_at,
            order_status=delivered,
            ordered_at=order.ordered_at,
            finalized_at=utcnow(),
            using_db=conn,
        )
        await PastOrderItem.bulk_create(
            [
                PastOrderItem(
                    order_id=order.id,
                    item_id=line.item_id,
                    quantity=line.quantity,
                    unit_price_frozen=line.unit_price_frozen,
                )
                for line in lines
            ],
            using_db=conn,
        )
        if not delivered and restore_stock:
            await stock.restore({line.item_id: line.quantity for line in lines}, conn)

        await ActiveOrderItem.filter(order_id=order.id).using_db(conn).delete()
        await ActiveOrder.filter(id=order.id).using_db(conn).delete()


async def resolve_scan(order_id: int, token_user_id: int, canteen_id: int,
                       presigner: Optional[AssetPresigner] = None) -> OrderDetail:
    """
    Looks up the order behind a verified pickup token for the scanning canteen.
    Read-only: fulfilment is a separate transition to "delivered".
    """
    detail = await get_order_detail(order_id, presigner)
    if detail is None or detail.user_id != token_user_id:
        raise BadRequestError(ORDER_NOT_FOUND_OR_COMPLETED)
    if detail.canteen_id != canteen_id:
        raise ForbiddenError(WRONG_CANTEEN)
    return detail


async def list_past_orders(user_id: int, presigner: Optional[AssetPresigner] = None) -> List[PastOrderDetail]:
    """A user's finalized orders, newest first."""
    orders = await PastOrder.filter(user_id=user_id).select_related("canteen").order_by("-ordered_at", "-id")
    if not orders:
        return []

    lines_by_order: Dict[int, List[ItemContainer]] = defaultdict(list)
    lines = await PastOrderItem.filter(order_id__in=[o.id for o in orders]).select_related("item").order_by("item_id")
    for line in lines:
        lines_by_order[line.order_id].append(_item_container(line, presigner))

    return [
        PastOrderDetail(
            order_id=o.id,
            canteen_id=o.canteen_id,
            canteen_name=o.canteen.name,
            total_price=o.total_price,
            deliver_at=band_label(o.deliver_at),
            order_status=o.order_status,
            ordered_at=epoch_seconds(o.ordered_at),
            finalized_at=epoch_seconds(o.finalized_at),
            items=lines_by_order[o.id],
        )
        for o in orders
    ]
