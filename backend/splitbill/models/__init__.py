from splitbill.models.user import User
from splitbill.models.bill import Bill, BillItem, ItemAssignment, BillVisibility

__all__ = [
    "User",
    "Bill", "BillItem", "ItemAssignment", "BillVisibility",
]
