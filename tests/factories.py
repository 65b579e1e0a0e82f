from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from roomieboard.db.models import Bill, FullyOwedBy, Roommate, SplitEvenly

NOW = datetime(2025, 12, 10, 12, 0, tzinfo=timezone.utc)


def make_roommate(roommate_id: str, name: str, tg_id: int = 0, username: str | None = None) -> Roommate:
    return Roommate(
        id=roommate_id,
        tg_id=tg_id,
        name=name,
        username=username,
        avatar="🦊",
        joined_at=NOW,
    )


def split_bill(amount: str, paid_by: str, members: list[str], **kwargs) -> Bill:
    return Bill(
        id=kwargs.pop("id", "b1"),
        description=kwargs.pop("description", "Groceries"),
        total_amount=Decimal(amount),
        paid_by=paid_by,
        split=SplitEvenly(members=frozenset(members)),
        created_at=NOW,
        **kwargs,
    )


def owed_bill(amount: str, paid_by: str, debtor: str, **kwargs) -> Bill:
    return Bill(
        id=kwargs.pop("id", "b2"),
        description=kwargs.pop("description", "Concert tickets"),
        total_amount=Decimal(amount),
        paid_by=paid_by,
        split=FullyOwedBy(debtor=debtor),
        created_at=NOW,
        **kwargs,
    )


def make_roommates() -> list[Roommate]:
    return [
        make_roommate("alice", "Alice", tg_id=1, username="alice"),
        make_roommate("bob", "Bob", tg_id=2, username="Bob_B"),
        make_roommate("carol", "Carol", tg_id=3, username="carol"),
    ]
