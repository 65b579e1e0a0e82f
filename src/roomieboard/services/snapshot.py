"""
Board backup: the JSON document behind /export and /import.

The layout matches the ``roomie-board-data`` browser cache of the web
board: camelCase keys, one list per collection and no roommates, since the
roster always comes from the live database. Older
payloads are migrated on load:

* ``assignedTo`` stored as a single string becomes a one-element list;
* bills without ``isSettled`` are treated as unsettled;
* a split bill whose ``splitBetween`` omits the payer gets the payer added.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol

from roomieboard.db.models import (
    Bill,
    Chore,
    Comment,
    CommentTarget,
    FullyOwedBy,
    KitchenItem,
    NoiseNote,
    Notification,
    NotificationKind,
    SplitEvenly,
)
from roomieboard.logging import get_logger

SNAPSHOT_FILENAME = "roomie-board-data.json"

log = get_logger(__name__)


class SnapshotError(ValueError):
    pass


@dataclass(slots=True)
class BoardSnapshot:
    bills: list[Bill] = field(default_factory=list)
    chores: list[Chore] = field(default_factory=list)
    kitchen_items: list[KitchenItem] = field(default_factory=list)
    noise_notes: list[NoiseNote] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)


@dataclass(slots=True)
class RestoreReport:
    restored: int = 0
    skipped: int = 0
    existing: int = 0


class BoardRepository(Protocol):
    async def list_bills(self, include_settled: bool = True) -> list[Bill]: ...
    async def list_chores(self) -> list[Chore]: ...
    async def list_kitchen_items(self) -> list[KitchenItem]: ...
    async def list_noise_notes(self) -> list[NoiseNote]: ...
    async def list_notifications(self, limit: int | None = None) -> list[Notification]: ...
    async def create_bill(self, bill: Bill) -> bool: ...
    async def create_chore(self, chore: Chore) -> bool: ...
    async def create_kitchen_item(self, item: KitchenItem) -> bool: ...
    async def create_noise_note(self, note: NoiseNote) -> bool: ...
    async def save_notification(self, notification: Notification) -> bool: ...
    async def add_comment(self, target: CommentTarget, target_id: str, comment: Comment) -> None: ...


# dumping


def _iso(value: date | datetime | None) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _comments_to_json(comments: list[Comment]) -> list[dict[str, Any]]:
    return [
        {"id": c.id, "authorId": c.author_id, "text": c.text, "timestamp": _iso(c.created_at)}
        for c in comments
    ]


def _bill_to_json(bill: Bill) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": bill.id,
        "description": bill.description,
        "totalAmount": str(bill.total_amount),
        "paidBy": bill.paid_by,
        "comments": _comments_to_json(bill.comments),
        "createdAt": _iso(bill.created_at),
        "isSettled": bill.is_settled,
    }
    if bill.split_between is not None:
        data["splitBetween"] = sorted(bill.split_between)
    if bill.full_owed_by is not None:
        data["fullOwedBy"] = bill.full_owed_by
    if bill.due_date is not None:
        data["dueDate"] = _iso(bill.due_date)
    return data


def dump_snapshot(snapshot: BoardSnapshot) -> str:
    payload = {
        "bills": [_bill_to_json(b) for b in snapshot.bills],
        "chores": [
            {
                "id": c.id,
                "description": c.description,
                "dueDate": _iso(c.due_date),
                "assignedTo": list(c.assigned_to),
                "isDone": c.is_done,
                "completedAt": _iso(c.completed_at),
                "comments": _comments_to_json(c.comments),
                "createdAt": _iso(c.created_at),
            }
            for c in snapshot.chores
        ],
        "kitchenItems": [
            {
                "id": i.id,
                "name": i.name,
                "quantity": i.quantity,
                "assignedTo": list(i.assigned_to),
                "comments": _comments_to_json(i.comments),
                "createdAt": _iso(i.created_at),
                "createdBy": i.created_by,
            }
            for i in snapshot.kitchen_items
        ],
        "noiseNotes": [
            {
                "id": n.id,
                "description": n.description,
                "date": _iso(n.noted_on),
                "comments": _comments_to_json(n.comments),
                "createdAt": _iso(n.created_at),
                "createdBy": n.created_by,
            }
            for n in snapshot.noise_notes
        ],
        "notifications": [
            {
                "id": n.id,
                "message": n.message,
                "timestamp": _iso(n.created_at),
                "type": n.kind.value,
                "read": n.read,
            }
            for n in snapshot.notifications
        ],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


# loading


def _parse_datetime(value: Any) -> datetime:
    if not isinstance(value, str) or not value:
        raise SnapshotError(f"Invalid timestamp: {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if not isinstance(value, str):
        raise SnapshotError(f"Invalid date: {value!r}")
    return date.fromisoformat(value[:10])


def _require_date(value: Any) -> date:
    parsed = _parse_date(value)
    if parsed is None:
        raise SnapshotError("Missing date")
    return parsed


def _as_id_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    if isinstance(value, str) and value:
        return [value]
    return []


def _flag(value: Any) -> bool:
    # only a JSON true counts; "false", 1 and friends stay False
    return value is True


def _comments_from_json(items: Any) -> list[Comment]:
    return [
        Comment(
            id=str(c["id"]),
            author_id=str(c["authorId"]),
            text=str(c["text"]),
            created_at=_parse_datetime(c["timestamp"]),
        )
        for c in items or []
    ]


def _bill_from_json(data: dict[str, Any]) -> Bill:
    """One bill from the export; any defect is a SnapshotError so only this bill is dropped."""
    try:
        return _build_bill(data)
    except SnapshotError:
        raise
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        raise SnapshotError(f"Malformed bill: {exc!r}") from exc


def _build_bill(data: dict[str, Any]) -> Bill:
    paid_by = str(data["paidBy"])
    split_between = _as_id_list(data.get("splitBetween"))
    full_owed_by = data.get("fullOwedBy")

    if split_between:
        split: SplitEvenly | FullyOwedBy = SplitEvenly(members=frozenset(split_between) | {paid_by})
    elif full_owed_by:
        split = FullyOwedBy(debtor=str(full_owed_by))
    else:
        raise SnapshotError(f"Bill {data.get('id')} has no split")

    try:
        total_amount = Decimal(str(data["totalAmount"]))
    except InvalidOperation as exc:
        raise SnapshotError(f"Bill {data.get('id')} has an invalid amount") from exc
    if not total_amount.is_finite() or total_amount <= 0:
        raise SnapshotError(f"Bill {data.get('id')} has an invalid amount")

    return Bill(
        id=str(data["id"]),
        description=str(data["description"]),
        total_amount=total_amount,
        paid_by=paid_by,
        split=split,
        created_at=_parse_datetime(data["createdAt"]),
        due_date=_parse_date(data.get("dueDate")),
        is_settled=_flag(data.get("isSettled")),
        comments=_comments_from_json(data.get("comments")),
    )


def load_snapshot(text: str | bytes) -> BoardSnapshot:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotError("Not a board export") from exc
    if not isinstance(data, dict):
        raise SnapshotError("Not a board export")

    snapshot = BoardSnapshot()
    try:
        for raw in data.get("bills") or []:
            try:
                snapshot.bills.append(_bill_from_json(raw))
            except SnapshotError as exc:
                log.warning("snapshot.bill.skipped", reason=str(exc))

        for raw in data.get("chores") or []:
            snapshot.chores.append(
                Chore(
                    id=str(raw["id"]),
                    description=str(raw["description"]),
                    due_date=_require_date(raw["dueDate"]),
                    assigned_to=_as_id_list(raw.get("assignedTo")),
                    created_at=_parse_datetime(raw["createdAt"]),
                    is_done=_flag(raw.get("isDone")),
                    completed_at=_parse_datetime(raw["completedAt"]) if raw.get("completedAt") else None,
                    comments=_comments_from_json(raw.get("comments")),
                )
            )

        for raw in data.get("kitchenItems") or []:
            snapshot.kitchen_items.append(
                KitchenItem(
                    id=str(raw["id"]),
                    name=str(raw["name"]),
                    assigned_to=_as_id_list(raw.get("assignedTo")),
                    created_at=_parse_datetime(raw["createdAt"]),
                    quantity=raw.get("quantity") or None,
                    created_by=raw.get("createdBy") or None,
                    comments=_comments_from_json(raw.get("comments")),
                )
            )

        for raw in data.get("noiseNotes") or []:
            snapshot.noise_notes.append(
                NoiseNote(
                    id=str(raw["id"]),
                    description=str(raw["description"]),
                    noted_on=_require_date(raw["date"]),
                    created_at=_parse_datetime(raw["createdAt"]),
                    created_by=raw.get("createdBy") or None,
                    comments=_comments_from_json(raw.get("comments")),
                )
            )

        for raw in data.get("notifications") or []:
            snapshot.notifications.append(
                Notification(
                    id=str(raw["id"]),
                    message=str(raw["message"]),
                    kind=NotificationKind(raw["type"]),
                    created_at=_parse_datetime(raw["timestamp"]),
                    read=_flag(raw.get("read")),
                )
            )
    except SnapshotError:
        raise
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        raise SnapshotError(f"Malformed board export: {exc}") from exc

    return snapshot


# repository round trip


async def export_board(repo: BoardRepository) -> BoardSnapshot:
    return BoardSnapshot(
        bills=await repo.list_bills(),
        chores=await repo.list_chores(),
        kitchen_items=await repo.list_kitchen_items(),
        noise_notes=await repo.list_noise_notes(),
        notifications=await repo.list_notifications(),
    )


def _bill_roommates(bill: Bill) -> set[str]:
    if bill.split_between is not None:
        return {bill.paid_by, *bill.split_between}
    return {bill.paid_by, bill.full_owed_by or ""}


async def _restore_comments(
    repo: BoardRepository,
    target: CommentTarget,
    target_id: str,
    comments: list[Comment],
    known: set[str],
) -> None:
    for comment in comments:
        if comment.author_id in known:
            await repo.add_comment(target, target_id, comment)


async def restore_board(repo: BoardRepository, snapshot: BoardSnapshot, roommate_ids: set[str]) -> RestoreReport:
    """
    Insert records that reference only current roommates.

    Ids already on the board are left alone and counted as ``existing``,
    so importing the same file twice restores nothing the second time.
    Comments are re-added either way; they dedupe on their own ids.
    """
    report = RestoreReport()

    def count(inserted: bool) -> None:
        if inserted:
            report.restored += 1
        else:
            report.existing += 1

    for bill in snapshot.bills:
        if not _bill_roommates(bill) <= roommate_ids:
            report.skipped += 1
            continue
        count(await repo.create_bill(bill))
        await _restore_comments(repo, CommentTarget.BILL, bill.id, bill.comments, roommate_ids)

    for chore in snapshot.chores:
        if not chore.assigned_to or not set(chore.assigned_to) <= roommate_ids:
            report.skipped += 1
            continue
        count(await repo.create_chore(chore))
        await _restore_comments(repo, CommentTarget.CHORE, chore.id, chore.comments, roommate_ids)

    for item in snapshot.kitchen_items:
        if not set(item.assigned_to) <= roommate_ids:
            report.skipped += 1
            continue
        if item.created_by not in roommate_ids:
            item.created_by = None
        count(await repo.create_kitchen_item(item))
        await _restore_comments(repo, CommentTarget.KITCHEN, item.id, item.comments, roommate_ids)

    for note in snapshot.noise_notes:
        if note.created_by not in roommate_ids:
            note.created_by = None
        count(await repo.create_noise_note(note))
        await _restore_comments(repo, CommentTarget.NOISE, note.id, note.comments, roommate_ids)

    for notification in snapshot.notifications:
        count(await repo.save_notification(notification))

    log.info(
        "snapshot.restored",
        restored=report.restored,
        existing=report.existing,
        skipped=report.skipped,
    )
    return report
