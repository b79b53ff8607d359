"""Create a demo account with a couple of bills.

Usage: python -m scripts.seed_test_data
Run from the backend/ directory.
"""

import asyncio
from decimal import Decimal

from splitbill.core.database import session_scope
from splitbill.models.bill import BillVisibility
from splitbill.services.bill_service import create_bill, add_item, get_bill_item, update_bill, update_item
from splitbill.services.user_service import create_user, get_user_by_email

DEMO_USER = {"email": "dan@test.com", "password": "testpass123", "name": "Dan"}

DEMO_BILLS = [
    {
        "name": "Birthday Dinner",
        "reference": "DINNER2024",
        "visibility": BillVisibility.PUBLIC,
        "settings": {"service_charge": Decimal("10"), "tax_rate": Decimal("6"), "discount": Decimal("5")},
        "items": [
            ("Pizza", Decimal("25.50"), 2, "Alice, Bob"),
            ("Pasta", Decimal("18.90"), 1, "Charlie"),
            ("Iced Tea", Decimal("4.50"), 3, None),
        ],
    },
    {
        "name": "Groceries",
        "reference": None,
        "visibility": BillVisibility.PRIVATE,
        "settings": {},
        "items": [("Milk", Decimal("6.20"), 1, None)],
    },
]


async def main():
    async with session_scope() as db:
        user = await get_user_by_email(db, DEMO_USER["email"])
        if user:
            print(f"User already exists: {user.email}")
        else:
            user = await create_user(db, DEMO_USER["email"], DEMO_USER["password"], DEMO_USER["name"])
            print(f"Created user: {user.email}")

        for demo in DEMO_BILLS:
            try:
                bill = await create_bill(
                    db, user, demo["name"], visibility=demo["visibility"], reference=demo["reference"],
                )
            except ValueError as e:
                print(f"  Skipping {demo['name']}: {e}")
                continue
            if demo["settings"]:
                bill = await update_bill(db, bill, demo["settings"])

            for name, amount, quantity, assigned_to in demo["items"]:
                item = await add_item(db, bill, name, amount, quantity)
                if assigned_to:
                    item = await get_bill_item(db, bill.id, item.id)
                    await update_item(db, item, {"assigned_to": assigned_to})
            print(f"  Created bill {bill.name} ({bill.reference}) with {len(demo['items'])} items")
            if bill.share_token:
                print(f"    Share link: /shared/{bill.share_token}")

    print("\nDone! Sign in with:")
    print(f"  {DEMO_USER['email']} / {DEMO_USER['password']}")


if __name__ == "__main__":
    asyncio.run(main())
