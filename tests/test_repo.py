from contextlib import asynccontextmanager
from datetime import timedelta
from decimal import Decimal

import pytest

from factories import NOW, owed_bill, split_bill
from roomieboard.db.models import Comment, CommentTarget, FullyOwedBy, NotificationKind, SplitEvenly
from roomieboard.db.repo import RoomieBoardRepository


class DummyTransaction:
    def __init__(self, db: "DummyDB") -> None:
        self.db = db

    async def execute(self, query: str, *args: object) -> str:
        return await self.db.execute(query, *args)

    async def executemany(self, command: str, args) -> None:
        for item in args:
            self.db.executed.append((command, tuple(item)))


class DummyDB:
    def __init__(self, tables: dict[str, list[dict]] | None = None, conflict: bool = False) -> None:
        self.tables = tables or {}
        self.conflict = conflict
        self.executed: list[tuple[str, tuple]] = []

    async def fetch(self, query: str, *args: object) -> list[dict]:
        for table, rows in self.tables.items():
            if f"FROM {table}" in query:
                if "WHERE target = $1" in query:
                    rows = [r for r in rows if r["target"] == args[0]]
                if "target_id = $2" in query or "bill_id = $1" in query:
                    rows = [r for r in rows if r.get("target_id", r.get("bill_id")) == args[-1]]
                if "is_done = true" in query:
                    rows = [r for r in rows if r["is_done"] and r["completed_at"] <= args[0]]
                return rows
        return []

    async def fetchrow(self, query: str, *args: object) -> dict | None:
        rows = await self.fetch(query, *args)
        return next((r for r in rows if r["id"] == args[0]), None)

    async def execute(self, query: str, *args: object) -> str:
        self.executed.append((query, args))
        if query.lstrip().startswith("INSERT"):
            return "INSERT 0 0" if self.conflict else "INSERT 0 1"
        return "OK"

    @asynccontextmanager
    async def transaction(self):
        yield DummyTransaction(self)


def bill_row(bill_id: str, paid_by: str, full_owed_by: str | None = None, settled: bool = False) -> dict:
    return {
        "id": bill_id,
        "description": "Rent",
        "total_amount": Decimal("900"),
        "paid_by": paid_by,
        "full_owed_by": full_owed_by,
        "due_date": None,
        "is_settled": settled,
        "created_at": NOW,
    }


@pytest.mark.asyncio
async def test_get_bill_assembles_split_and_comments():
    db = DummyDB(
        {
            "bills": [bill_row("b1", "alice")],
            "bill_members": [
                {"bill_id": "b1", "roommate_id": "alice"},
                {"bill_id": "b1", "roommate_id": "bob"},
            ],
            "comments": [
                {"id": "c1", "target": "bill", "target_id": "b1", "author_id": "bob", "text": "paid", "created_at": NOW},
                {"id": "c2", "target": "chore", "target_id": "b1", "author_id": "bob", "text": "x", "created_at": NOW},
            ],
        }
    )
    bill = await RoomieBoardRepository(db).get_bill("b1")

    assert bill is not None
    assert bill.split == SplitEvenly(members=frozenset({"alice", "bob"}))
    assert [c.id for c in bill.comments] == ["c1"]


@pytest.mark.asyncio
async def test_list_bills_reads_full_owed_bills():
    db = DummyDB({"bills": [bill_row("b1", "alice", full_owed_by="carol")]})
    bills = await RoomieBoardRepository(db).list_bills()
    assert bills[0].split == FullyOwedBy(debtor="carol")
    assert bills[0].comments == []


@pytest.mark.asyncio
async def test_list_bills_can_skip_settled():
    db = DummyDB()
    queries: list[str] = []
    original = db.fetch

    async def spy(query: str, *args: object):
        queries.append(query)
        return await original(query, *args)

    db.fetch = spy
    await RoomieBoardRepository(db).list_bills(include_settled=False)
    assert "is_settled = false" in queries[0]


@pytest.mark.asyncio
async def test_create_split_bill_writes_members():
    db = DummyDB()
    bill = split_bill("90", "alice", ["alice", "bob", "carol"])
    await RoomieBoardRepository(db).create_bill(bill)

    members = [args for query, args in db.executed if "bill_members" in query]
    assert members == [("b1", "alice"), ("b1", "bob"), ("b1", "carol")]
    insert_args = db.executed[0][1]
    assert insert_args[4] is None


@pytest.mark.asyncio
async def test_create_owed_bill_has_no_members():
    db = DummyDB()
    await RoomieBoardRepository(db).create_bill(owed_bill("60", "alice", "carol"))
    assert len(db.executed) == 1
    assert db.executed[0][1][4] == "carol"


@pytest.mark.asyncio
async def test_delete_bill_removes_comments():
    db = DummyDB()
    await RoomieBoardRepository(db).delete_bill("b1")
    assert db.executed[0][1] == ("bill", "b1")
    assert "DELETE FROM bills" in db.executed[1][0]


@pytest.mark.asyncio
async def test_purge_completed_chores():
    db = DummyDB(
        {
            "chores": [
                {"id": "old", "is_done": True, "completed_at": NOW - timedelta(minutes=5)},
                {"id": "fresh", "is_done": True, "completed_at": NOW},
            ]
        }
    )
    purged = await RoomieBoardRepository(db).purge_completed_chores(NOW, timedelta(minutes=1))
    assert purged == ["old"]
    assert db.executed[-1][1] == (["old"],)


@pytest.mark.asyncio
async def test_add_comment_and_notification():
    db = DummyDB()
    repo = RoomieBoardRepository(db)
    await repo.add_comment(CommentTarget.KITCHEN, "k1", Comment(id="c1", author_id="bob", text="hi", created_at=NOW))
    notification = await repo.add_notification(NotificationKind.KITCHEN, "Bob commented", NOW)

    assert db.executed[0][1][:3] == ("c1", "kitchen", "k1")
    assert db.executed[1][1] == (notification.id, "Bob commented", "kitchen", NOW, False)


@pytest.mark.asyncio
async def test_create_bill_reports_insert():
    assert await RoomieBoardRepository(DummyDB()).create_bill(owed_bill("60", "alice", "carol")) is True


@pytest.mark.asyncio
async def test_create_bill_with_existing_id_leaves_members_alone():
    db = DummyDB(conflict=True)
    inserted = await RoomieBoardRepository(db).create_bill(split_bill("90", "alice", ["alice", "bob"]))

    assert inserted is False
    assert [query for query, _ in db.executed if "bill_members" in query] == []


@pytest.mark.asyncio
async def test_save_notification_reports_conflict():
    db = DummyDB(conflict=True)
    notification = await RoomieBoardRepository(db).add_notification(NotificationKind.BILL, "Alice added bill", NOW)
    assert await RoomieBoardRepository(db).save_notification(notification) is False
