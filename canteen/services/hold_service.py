import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple, Union

from tortoise.transactions import in_transaction

from canteen.core import config
from canteen.core.clock import utcnow
from canteen.core.errors import NotFoundError, ValidationError
from canteen.models.enums import TimeBand
from canteen.models.hold import Hold, HoldItem
from canteen.models.order import ActiveOrder, ActiveOrderItem
from canteen.services import stock

log = logging.getLogger("canteen.holds")

MULTIPLE_CANTEENS = "Order contains items from multiple canteens; please order from one canteen at a time"
NOT_OWNER = "You do not own this hold"
EXPIRED_RELEASED = "Hold has expired; items have been released"


def _hold_not_found(hold_id: int) -> NotFoundError:
    return NotFoundError(f"Hold {hold_id} not found")


async def place_hold(
    user_id: int,
    item_ids: Iterable[int],
    time_band: Union[TimeBand, str, None] = None,
    ttl_secs: Optional[int] = None,
) -> Tuple[int, datetime]:
    """
    Reserves the requested items for a user and returns (hold_id, expires_at).

    Duplicate ids count as extra quantity. Items are locked ascending by id, the
    whole cart must come from one canteen, and prices are frozen on the hold
    lines. Finite stock is decremented immediately; the sweeper gives it back if
    the hold is never confirmed.
    """
    band = time_band if isinstance(time_band, TimeBand) else TimeBand.from_wire(time_band)
    requested = Counter(item_ids)
    if not requested:
        raise ValidationError("No items requested")
    ttl = config.ORDER_HOLD_TTL_SECS if ttl_secs is None else ttl_secs

    async with in_transaction() as conn:
        items = await stock.lock_items(requested.keys(), conn)
        found = {item.id for item in items}
        missing = sorted(i for i in requested if i not in found)
        if missing:
            raise NotFoundError(f"Menu item(s) not found: {', '.join(map(str, missing))}")

        canteen_ids = {item.canteen_id for item in items}
        if len(canteen_ids) > 1:
            raise ValidationError(MULTIPLE_CANTEENS)

        stock.check_available(items, requested)

        total_price = sum(item.price * requested[item.id] for item in items)
        expires_at = utcnow() + timedelta(seconds=ttl)
        hold = await Hold.create(
            user_id=user_id,
            canteen_id=canteen_ids.pop(),
            total_price=total_price,
            deliver_at=band,
            expires_at=expires_at,
            using_db=conn,
        )
        await HoldItem.bulk_create(
            [
                HoldItem(hold_id=hold.id, item_id=item.id, quantity=requested[item.id], unit_price=item.price)
                for item in items
            ],
            using_db=conn,
        )
        await stock.reserve(items, requested, conn)

    return hold.id, expires_at


async def _lock_hold(hold_id: int, conn) -> Optional[Hold]:
    return await Hold.filter(id=hold_id).select_for_update().using_db(conn).first()


async def _release_locked(hold: Hold, conn) -> None:
    """Restores stock for a locked hold and deletes it with its lines."""
    lines = await HoldItem.filter(hold_id=hold.id).using_db(conn)
    await stock.restore({line.item_id: line.quantity for line in lines}, conn)
    await HoldItem.filter(hold_id=hold.id).using_db(conn).delete()
    await Hold.filter(id=hold.id).using_db(conn).delete()


async def release_hold(hold_id: int, requester_user_id: int) -> None:
    async with in_transaction() as conn:
        hold = await _lock_hold(hold_id, conn)
        if hold is None:
            raise _hold_not_found(hold_id)
        if hold.user_id != requester_user_id:
            raise ValidationError(NOT_OWNER)
        await _release_locked(hold, conn)


async def confirm_hold(hold_id: int, requester_user_id: int) -> int:
    """
    Turns a live hold into an active order and returns the order id.

    A hold past its expiry is released in the same transaction, which commits
    before the ValidationError is raised.
    """
    expired = False
    async with in_transaction() as conn:
        hold = await _lock_hold(hold_id, conn)
        if hold is None:
            raise _hold_not_found(hold_id)
        if hold.user_id != requester_user_id:
            raise ValidationError(NOT_OWNER)

        if utcnow() > hold.expires_at:
            await _release_locked(hold, conn)
            expired = True
        else:
            lines = await HoldItem.filter(hold_id=hold.id).order_by("item_id").using_db(conn)
            order = await ActiveOrder.create(
                user_id=hold.user_id,
                canteen_id=hold.canteen_id,
                total_price=hold.total_price,
                deliver_at=hold.deliver_at,
                ordered_at=utcnow(),
                using_db=conn,
            )
            await ActiveOrderItem.bulk_create(
                [
                    ActiveOrderItem(
                        order_id=order.id,
                        item_id=line.item_id,
                        quantity=line.quantity,
                        unit_price_frozen=line.unit_price,
                    )
                    for line in lines
                ],
                using_db=conn,
            )
            await HoldItem.filter(hold_id=hold.id).using_db(conn).delete()
            await Hold.filter(id=hold.id).using_db(conn).delete()

    if expired:
        raise ValidationError(EXPIRED_RELEASED)
    return order.id


async def sweep_expired() -> int:
    """
    Releases every hold whose expires_at has passed, one transaction per hold.
    Returns how many were released; a hold that fails is logged and skipped.
    """
    now = utcnow()
    hold_ids = await Hold.filter(expires_at__lt=now).order_by("id").values_list("id", flat=True)
    released = 0
    for hold_id in hold_ids:
        try:
            async with in_transaction() as conn:
                hold = await _lock_hold(hold_id, conn)
                if hold is None or hold.expires_at >= now:
                    # Released or confirmed since the scan
                    continue
                await _release_locked(hold, conn)
            released += 1
        except Exception as e:
            log.error(f"Failed to release expired hold {hold_id}: {e}")
    return released
