import json
from datetime import date
from decimal import Decimal

import pytest

from factories import NOW, owed_bill, split_bill
from roomieboard.db.models import Chore, Comment, FullyOwedBy, KitchenItem, NoiseNote, SplitEvenly
from roomieboard.services.snapshot import (
    BoardSnapshot,
    SnapshotError,
    dump_snapshot,
    export_board,
    load_snapshot,
    restore_board,
)

LEGACY_EXPORT = {
    "bills": [
        {
            "id": "b1",
            "description": "Groceries",
            "totalAmount": 90,
            "paidBy": "alice",
            "splitBetween": ["bob", "carol"],
            "comments": [],
            "createdAt": "2025-12-01T10:00:00.000Z",
        },
        {
            "id": "b2",
            "description": "Tickets",
            "totalAmount": "60",
            "paidBy": "alice",
            "fullOwedBy": "carol",
            "isSettled": True,
            "createdAt": "2025-12-02T10:00:00.000Z",
        },
        {"id": "b3", "description": "Broken", "totalAmount": 10, "paidBy": "alice", "createdAt": "2025-12-02T10:00:00Z"},
        {
            "id": "b4",
            "description": "Free",
            "totalAmount": 0,
            "paidBy": "alice",
            "fullOwedBy": "bob",
            "createdAt": "2025-12-02T10:00:00Z",
        },
    ],
    "chores": [
        {
            "id": "c1",
            "description": "Trash",
            "dueDate": "2025-12-20",
            "assignedTo": "bob",
            "isDone": False,
            "comments": [{"id": "m1", "authorId": "alice", "text": "pls", "timestamp": "2025-12-03T08:00:00Z"}],
            "createdAt": "2025-12-01T10:00:00Z",
        }
    ],
    "kitchenItems": [
        {"id": "k1", "name": "Milk", "assignedTo": "carol", "createdAt": "2025-12-01T10:00:00Z", "createdBy": "alice"}
    ],
    "noiseNotes": [
        {"id": "n1", "description": "Party", "date": "2025-12-24", "createdAt": "2025-12-01T10:00:00Z"}
    ],
    "notifications": [
        {"id": "f1", "message": "Alice added bill", "timestamp": "2025-12-01T10:00:00Z", "type": "bill", "read": False}
    ],
}


def test_load_migrates_legacy_bills():
    snapshot = load_snapshot(json.dumps(LEGACY_EXPORT))

    assert [b.id for b in snapshot.bills] == ["b1", "b2"]
    groceries, tickets = snapshot.bills
    assert groceries.split == SplitEvenly(members=frozenset({"alice", "bob", "carol"}))
    assert groceries.is_settled is False
    assert groceries.total_amount == Decimal("90")
    assert tickets.split == FullyOwedBy(debtor="carol")
    assert tickets.is_settled is True


def test_load_migrates_single_assignee():
    snapshot = load_snapshot(json.dumps(LEGACY_EXPORT))
    assert snapshot.chores[0].assigned_to == ["bob"]
    assert snapshot.chores[0].due_date == date(2025, 12, 20)
    assert snapshot.chores[0].comments[0].author_id == "alice"
    assert snapshot.kitchen_items[0].assigned_to == ["carol"]
    assert snapshot.noise_notes[0].noted_on == date(2025, 12, 24)
    assert snapshot.notifications[0].message == "Alice added bill"


def test_split_between_wins_over_full_owed_by():
    data = {
        "bills": [
            {
                "id": "b1",
                "description": "Both",
                "totalAmount": "30",
                "paidBy": "alice",
                "splitBetween": ["alice", "bob"],
                "fullOwedBy": "bob",
                "createdAt": "2025-12-01T10:00:00Z",
            }
        ]
    }
    bill = load_snapshot(json.dumps(data)).bills[0]
    assert bill.split == SplitEvenly(members=frozenset({"alice", "bob"}))


@pytest.mark.parametrize("payload", ["not json", "[1, 2]", '{"chores": [{"id": "c1"}]}'])
def test_load_rejects_garbage(payload):
    with pytest.raises(SnapshotError):
        load_snapshot(payload)


def test_dump_then_load_keeps_exact_amounts():
    bill = split_bill("100.10", "alice", ["alice", "bob", "carol"], due_date=date(2025, 12, 31))
    bill.comments.append(Comment(id="m1", author_id="bob", text="ok", created_at=NOW))
    text = dump_snapshot(BoardSnapshot(bills=[bill, owed_bill("60", "bob", "alice")]))

    data = json.loads(text)
    assert data["bills"][0]["totalAmount"] == "100.10"
    assert data["bills"][0]["splitBetween"] == ["alice", "bob", "carol"]
    assert "fullOwedBy" not in data["bills"][0]
    assert data["bills"][1]["fullOwedBy"] == "alice"

    loaded = load_snapshot(text)
    assert loaded.bills[0] == bill
    assert loaded.bills[1].split == FullyOwedBy(debtor="alice")


class MemoryRepo:
    def __init__(self) -> None:
        self.bills: list = []
        self.chores: list = []
        self.kitchen_items: list = []
        self.noise_notes: list = []
        self.notifications: list = []
        self.comments: list = []

    async def list_bills(self, include_settled: bool = True):
        return list(self.bills)

    async def list_chores(self):
        return list(self.chores)

    async def list_kitchen_items(self):
        return list(self.kitchen_items)

    async def list_noise_notes(self):
        return list(self.noise_notes)

    async def list_notifications(self, limit=None):
        return list(self.notifications)

    @staticmethod
    def _insert(rows: list, record) -> bool:
        if any(r.id == record.id for r in rows):
            return False
        rows.append(record)
        return True

    async def create_bill(self, bill):
        return self._insert(self.bills, bill)

    async def create_chore(self, chore):
        return self._insert(self.chores, chore)

    async def create_kitchen_item(self, item):
        return self._insert(self.kitchen_items, item)

    async def create_noise_note(self, note):
        return self._insert(self.noise_notes, note)

    async def save_notification(self, notification):
        return self._insert(self.notifications, notification)

    async def add_comment(self, target, target_id, comment):
        self.comments.append((target, target_id, comment.id))


@pytest.mark.asyncio
async def test_restore_skips_unknown_roommates():
    snapshot = BoardSnapshot(
        bills=[split_bill("90", "alice", ["alice", "bob"], id="ok"), owed_bill("60", "alice", "zed", id="ghost")],
        chores=[Chore(id="c1", description="Trash", due_date=date(2025, 12, 20), assigned_to=["zed"], created_at=NOW)],
        kitchen_items=[
            KitchenItem(id="k1", name="Milk", assigned_to=["bob"], created_at=NOW, created_by="zed"),
        ],
        noise_notes=[NoiseNote(id="n1", description="Party", noted_on=date(2025, 12, 24), created_at=NOW)],
    )
    snapshot.bills[0].comments.extend(
        [
            Comment(id="m1", author_id="bob", text="ok", created_at=NOW),
            Comment(id="m2", author_id="zed", text="?", created_at=NOW),
        ]
    )
    repo = MemoryRepo()

    report = await restore_board(repo, snapshot, {"alice", "bob"})

    assert report.restored == 3
    assert report.skipped == 2
    assert report.existing == 0
    assert [b.id for b in repo.bills] == ["ok"]
    assert repo.kitchen_items[0].created_by is None
    assert [c[2] for c in repo.comments] == ["m1"]


@pytest.mark.asyncio
async def test_export_board_reads_every_collection():
    repo = MemoryRepo()
    repo.bills.append(split_bill("10", "alice", ["alice", "bob"]))
    repo.noise_notes.append(NoiseNote(id="n1", description="Drums", noted_on=date(2025, 12, 1), created_at=NOW))
    snapshot = await export_board(repo)
    assert len(snapshot.bills) == 1
    assert len(snapshot.noise_notes) == 1
    assert snapshot.chores == []


@pytest.mark.asyncio
async def test_importing_same_export_twice_restores_nothing_new():
    repo = MemoryRepo()
    roommate_ids = {"alice", "bob", "carol"}

    first = await restore_board(repo, load_snapshot(json.dumps(LEGACY_EXPORT)), roommate_ids)
    second = await restore_board(repo, load_snapshot(json.dumps(LEGACY_EXPORT)), roommate_ids)

    assert first.restored == 6
    assert second.restored == 0
    assert second.existing == 6
    assert [b.id for b in repo.bills] == ["b1", "b2"]


@pytest.mark.parametrize("missing", ["paidBy", "id", "createdAt"])
def test_bill_missing_required_field_is_skipped(missing):
    data = json.loads(json.dumps(LEGACY_EXPORT))
    del data["bills"][0][missing]

    snapshot = load_snapshot(json.dumps(data))

    assert [b.id for b in snapshot.bills] == ["b2"]
    assert [c.id for c in snapshot.chores] == ["c1"]


@pytest.mark.parametrize("raw", ["false", "true", 1, None])
def test_settled_flag_must_be_a_json_boolean(raw):
    data = json.loads(json.dumps(LEGACY_EXPORT))
    data["bills"][1]["isSettled"] = raw

    tickets = load_snapshot(json.dumps(data)).bills[1]

    assert tickets.is_settled is False
