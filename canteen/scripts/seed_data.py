# scripts/seed_data.py
import asyncio
import os

from canteen.core.db import close_db, init_db
from canteen.models.canteen import Canteen, MenuItem
from canteen.services.canteen_service import get_password_hash

DEMO_USERNAME = os.getenv("SEED_CANTEEN_USERNAME", "demo-canteen")
DEMO_PASSWORD = os.getenv("SEED_CANTEEN_PASSWORD", "demo-password")


async def seed():
    # Create one canteen with operator credentials
    canteen, created = await Canteen.get_or_create(
        username=DEMO_USERNAME,
        defaults={
            "name": "Main Block Canteen",
            "location": "Main Block, Ground Floor",
            "password": get_password_hash(DEMO_PASSWORD),
        },
    )
    print("Canteen:", canteen.id, "(created)" if created else "(existing)")

    # Menu items: stock -1 means unlimited
    menu = [
        ("Veg Thali", True, 120, 40),
        ("Paneer Wrap", True, 90, 25),
        ("Chicken Biryani", False, 150, 30),
        ("Masala Chai", True, 20, -1),
    ]
    for name, is_veg, price, stock in menu:
        item, _ = await MenuItem.get_or_create(
            canteen=canteen,
            name=name,
            defaults={"is_veg": is_veg, "price": price, "stock": stock},
        )
        # Reset stock on re-run (idempotent)
        item.stock = stock
        item.is_available = stock != 0
        await item.save(update_fields=["stock", "is_available"])
        print("Menu item:", item.id, item.name)

    print("Seed complete. Operator login:", DEMO_USERNAME)


async def main():
    await init_db()
    await seed()
    await close_db()


if __name__ == "__main__":
    asyncio.run(main())
