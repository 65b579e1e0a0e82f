from decimal import Decimal

import pytest

from factories import NOW, owed_bill, split_bill
from roomieboard.db.models import Bill, FullyOwedBy, SplitEvenly


def test_split_bill_must_include_payer():
    with pytest.raises(ValueError):
        Bill(
            id="b1",
            description="Rent",
            total_amount=Decimal("1200"),
            paid_by="alice",
            split=SplitEvenly(members=frozenset({"bob", "carol"})),
            created_at=NOW,
        )


def test_empty_split_is_rejected():
    with pytest.raises(ValueError):
        split_bill("10", "alice", [])


def test_split_views():
    bill = split_bill("90", "alice", ["alice", "bob"])
    assert bill.split_between == frozenset({"alice", "bob"})
    assert bill.full_owed_by is None
    assert not bill.is_settled


def test_full_owed_views():
    bill = owed_bill("60", "alice", "carol")
    assert bill.full_owed_by == "carol"
    assert bill.split_between is None


def test_involves():
    split = split_bill("90", "alice", ["alice", "bob"])
    owed = owed_bill("60", "alice", "carol")
    assert split.involves("alice") and split.involves("bob")
    assert not split.involves("carol")
    assert owed.involves("carol")
    assert not owed.involves("bob")


def test_split_modes_are_values():
    assert SplitEvenly(members=frozenset({"a", "b"})) == SplitEvenly(members=frozenset({"b", "a"}))
    assert FullyOwedBy(debtor="a") != FullyOwedBy(debtor="b")
