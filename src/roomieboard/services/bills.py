from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from roomieboard.db.models import Bill, FullyOwedBy, SplitEvenly, SplitMode
from roomieboard.utils.ids import generate_id

SPLIT_MODE = "split"
FULL_MODE = "full"


def build_split(mode: str, payer_id: str, members: Iterable[str] = (), debtor: Optional[str] = None) -> SplitMode:
    if mode == SPLIT_MODE:
        others = {member for member in members if member != payer_id}
        if not others:
            raise ValueError("Pick at least one roommate to split with")
        return SplitEvenly(members=frozenset(others | {payer_id}))

    if mode == FULL_MODE:
        if not debtor:
            raise ValueError("Pick who owes the full amount")
        if debtor == payer_id:
            raise ValueError("You can't owe a bill to yourself")
        return FullyOwedBy(debtor=debtor)

    raise ValueError(f"Unknown split mode: {mode}")


def build_bill(
    *,
    description: str,
    total_amount: Decimal,
    paid_by: str,
    split: SplitMode,
    now: datetime,
    due_date: Optional[date] = None,
) -> Bill:
    """New, unsettled bill with a fresh id; the creation rules live here."""
    description = description.strip()
    if not description:
        raise ValueError("Description must not be empty")
    if total_amount <= 0:
        raise ValueError("Amount must be a positive number")

    return Bill(
        id=generate_id(),
        description=description,
        total_amount=total_amount,
        paid_by=paid_by,
        split=split,
        created_at=now,
        due_date=due_date,
    )
