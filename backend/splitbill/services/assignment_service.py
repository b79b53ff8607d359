from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from splitbill.models.bill import BillItem, ItemAssignment


def parse_assignees(assigned_to: str | None, quantity: int) -> list[str]:
    """
    Split a comma-joined assignee string into names.
    Names are trimmed, empties dropped, and the list truncated to the item quantity
    so an item never has more assignments than units.
    """
    if not assigned_to:
        return []
    names = [name.strip() for name in assigned_to.split(",")]
    names = [name for name in names if name]
    return names[:max(quantity, 0)]


async def replace_assignments(
    db: AsyncSession,
    item: BillItem,
    assigned_to: str | None,
) -> list[ItemAssignment]:
    """
    Replace all assignments for the item (delete-all, re-create).
    Each kept name owes one unit at the item's current amount.
    Updates item.assigned_to to the normalized summary (None when cleared).
    Does not commit.
    """
    await db.execute(delete(ItemAssignment).where(ItemAssignment.item_id == item.id))

    names = parse_assignees(assigned_to, item.quantity)
    new_assignments = [
        ItemAssignment(item_id=item.id, name=name, amount=item.amount, position=i)
        for i, name in enumerate(names)
    ]
    if new_assignments:
        db.add_all(new_assignments)

    item.assigned_to = ", ".join(names) if names else None
    return new_assignments
