from datetime import date
from decimal import Decimal

import pytest

from factories import NOW
from roomieboard.db.models import FullyOwedBy, SplitEvenly
from roomieboard.services.bills import FULL_MODE, SPLIT_MODE, build_bill, build_split


def test_build_split_adds_payer():
    split = build_split(SPLIT_MODE, "alice", ["bob", "carol"])
    assert split == SplitEvenly(members=frozenset({"alice", "bob", "carol"}))


def test_build_split_needs_someone_else():
    with pytest.raises(ValueError):
        build_split(SPLIT_MODE, "alice", ["alice"])
    with pytest.raises(ValueError):
        build_split(SPLIT_MODE, "alice", [])


def test_build_full_split():
    assert build_split(FULL_MODE, "alice", debtor="bob") == FullyOwedBy(debtor="bob")


def test_build_full_split_rejects_payer_and_missing_debtor():
    with pytest.raises(ValueError):
        build_split(FULL_MODE, "alice", debtor="alice")
    with pytest.raises(ValueError):
        build_split(FULL_MODE, "alice")


def test_build_split_unknown_mode():
    with pytest.raises(ValueError):
        build_split("percent", "alice", ["bob"])


def test_build_bill():
    bill = build_bill(
        description="  Internet  ",
        total_amount=Decimal("45.00"),
        paid_by="alice",
        split=build_split(SPLIT_MODE, "alice", ["bob"]),
        now=NOW,
        due_date=date(2025, 12, 20),
    )
    assert bill.description == "Internet"
    assert bill.id
    assert not bill.is_settled
    assert bill.comments == []
    assert bill.created_at == NOW
    assert bill.due_date == date(2025, 12, 20)


@pytest.mark.parametrize("description, amount", [("   ", "10"), ("Rent", "0"), ("Rent", "-5")])
def test_build_bill_rejects_bad_input(description, amount):
    with pytest.raises(ValueError):
        build_bill(
            description=description,
            total_amount=Decimal(amount),
            paid_by="alice",
            split=FullyOwedBy(debtor="bob"),
            now=NOW,
        )


def test_build_bill_ids_are_unique():
    ids = {
        build_bill(description="x", total_amount=Decimal("1"), paid_by="a", split=FullyOwedBy(debtor="b"), now=NOW).id
        for _ in range(50)
    }
    assert len(ids) == 50
