"""
Stock controller: the only code that mutates MenuItem.stock / is_available.

Every function here runs inside the caller's transaction and locks the rows it
touches in ascending item id order, so two transactions sharing items always
acquire their locks in the same sequence.
"""
from typing import Dict, Iterable, List, Mapping

from canteen.core.errors import NotAvailableError
from canteen.models.canteen import MenuItem

UNLIMITED = -1

REASON_NOT_AVAILABLE = "Not available"
REASON_OUT_OF_STOCK = "Out of stock"


async def lock_items(item_ids: Iterable[int], conn) -> List[MenuItem]:
    """SELECT ... FOR UPDATE on the given items, ascending by id."""
    ids = sorted(set(item_ids))
    if not ids:
        return []
    return await (
        MenuItem.filter(id__in=ids)
        .order_by("id")
        .select_for_update()
        .using_db(conn)
    )


def check_available(items: List[MenuItem], requested: Mapping[int, int]) -> None:
    for item in items:
        if not item.is_available:
            raise NotAvailableError(item.id, item.name, REASON_NOT_AVAILABLE)
        if item.stock != UNLIMITED and item.stock < requested[item.id]:
            raise NotAvailableError(item.id, item.name, REASON_OUT_OF_STOCK)


async def reserve(items: List[MenuItem], requested: Mapping[int, int], conn) -> None:
    """Decrements finite stock for already-locked rows. Unlimited items are never touched."""
    for item in items:
        if item.stock == UNLIMITED:
            continue
        item.stock = max(item.stock - requested[item.id], 0)
        item.is_available = item.stock > 0 or item.stock == UNLIMITED
        await item.save(update_fields=["stock", "is_available"], using_db=conn)


async def restore(quantities: Dict[int, int], conn) -> None:
    """Gives reserved quantities back to finite-stock items and marks them available."""
    for item in await lock_items(quantities.keys(), conn):
        if item.stock == UNLIMITED:
            continue
        item.stock = item.stock + quantities[item.id]
        item.is_available = True
        await item.save(update_fields=["stock", "is_available"], using_db=conn)
