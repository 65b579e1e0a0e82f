from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from roomieboard.db.models import Bill, FullyOwedBy, SplitEvenly

ZERO = Decimal("0")


def calculate_bill_amount(bill: Bill, roommate_id: str) -> Decimal:
    """Signed position of ``roommate_id`` on a single bill.

    Positive means the roommate owes money, negative means they are owed
    money back, zero means they have no stake. Checks run in a fixed order:
    payer first, then the full debtor, then split membership.
    """
    split = bill.split

    if roommate_id == bill.paid_by:
        if isinstance(split, FullyOwedBy) and split.debtor != roommate_id:
            return -bill.total_amount
        if isinstance(split, SplitEvenly):
            payer_share = bill.total_amount / len(split.members)
            return -(bill.total_amount - payer_share)
        return ZERO

    if isinstance(split, FullyOwedBy) and split.debtor == roommate_id:
        return bill.total_amount

    if isinstance(split, SplitEvenly) and roommate_id in split.members:
        return bill.total_amount / len(split.members)

    return ZERO


def member_share(bill: Bill) -> Decimal:
    if isinstance(bill.split, SplitEvenly):
        return bill.total_amount / len(bill.split.members)
    return bill.total_amount


def unsettled(bills: Iterable[Bill]) -> list[Bill]:
    return [bill for bill in bills if not bill.is_settled]


def calculate_balance(bills: Iterable[Bill], roommate_id: str) -> Decimal:
    total = ZERO
    for bill in unsettled(bills):
        total += calculate_bill_amount(bill, roommate_id)
    return total


def calculate_balances(bills: Sequence[Bill], roommate_ids: Iterable[str]) -> dict[str, Decimal]:
    pending = unsettled(bills)
    return {roommate_id: calculate_balance(pending, roommate_id) for roommate_id in roommate_ids}


def describe_balance(amount: Decimal) -> tuple[str, Decimal]:
    # Display flips the sign: the label carries the direction.
    if amount >= 0:
        return "You Owe", abs(amount)
    return "You're Owed", abs(amount)
