from __future__ import annotations

from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Iterable, Mapping, Optional

import asyncpg

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
    Roommate,
    SplitEvenly,
)
from roomieboard.logging import get_logger, sql_logger
from roomieboard.utils.ids import generate_id

Row = Mapping[str, Any]


class Transaction:
    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def execute(self, query: str, *args: Any) -> str:
        sql_logger.info("sql.tx.execute", query=query, args=args)
        return await self._conn.execute(query, *args)

    async def executemany(self, command: str, args: Iterable[Iterable[Any]]) -> None:
        sql_logger.info("sql.tx.executemany", query=command)
        await self._conn.executemany(command, args)


class Database:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._pool: asyncpg.Pool | None = None
        self._log = get_logger(__name__)

    async def connect(self) -> None:
        if self._pool is None:
            # asyncpg expects a plain postgresql:// scheme
            dsn = self._dsn.replace("+asyncpg", "")
            self._pool = await asyncpg.create_pool(dsn)
            self._log.info("db.pool.created")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._log.info("db.pool.closed")

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        pool = await self._ensure_pool()
        sql_logger.info("sql.fetch", query=query, args=args)
        return await pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        pool = await self._ensure_pool()
        sql_logger.info("sql.fetchrow", query=query, args=args)
        return await pool.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        pool = await self._ensure_pool()
        sql_logger.info("sql.fetchval", query=query, args=args)
        return await pool.fetchval(query, *args)

    async def execute(self, query: str, *args: Any) -> str:
        pool = await self._ensure_pool()
        sql_logger.info("sql.execute", query=query, args=args)
        return await pool.execute(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        pool = await self._ensure_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield Transaction(conn)

    async def _ensure_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            await self.connect()
        assert self._pool
        return self._pool


def _comment_from_row(row: Row) -> Comment:
    return Comment(
        id=row["id"],
        author_id=row["author_id"],
        text=row["text"],
        created_at=row["created_at"],
    )


def _group(rows: Iterable[Row], key: str, value: str) -> dict[str, list[Any]]:
    grouped: dict[str, list[Any]] = defaultdict(list)
    for row in rows:
        grouped[row[key]].append(row[value])
    return grouped


def _inserted(status: str) -> bool:
    """``INSERT 0 1`` -> True; ``INSERT 0 0`` (an ON CONFLICT skip) -> False."""
    return status.split()[-1] == "1"


def _bill_from_row(row: Row, members: list[str], comments: list[Comment]) -> Bill:
    if row["full_owed_by"]:
        split = FullyOwedBy(debtor=row["full_owed_by"])
    else:
        split = SplitEvenly(members=frozenset(members))
    return Bill(
        id=row["id"],
        description=row["description"],
        total_amount=row["total_amount"],
        paid_by=row["paid_by"],
        split=split,
        created_at=row["created_at"],
        due_date=row["due_date"],
        is_settled=row["is_settled"],
        comments=comments,
    )


class RoomieBoardRepository:
    """Owns every collection on the board; handlers never keep their own copies."""

    def __init__(self, db: Database) -> None:
        self.db = db

    # roommates

    async def ensure_roommate(self, tg_id: int, name: str, username: Optional[str], avatar: str) -> tuple[Roommate, bool]:
        """Upsert by Telegram id; returns the roommate and whether it was just created."""
        row = await self.db.fetchrow(
            """
            INSERT INTO roommates (id, tg_id, name, username, avatar)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (tg_id) DO UPDATE
                SET name = EXCLUDED.name,
                    username = EXCLUDED.username
            RETURNING *, (xmax = 0) AS inserted
            """,
            generate_id(),
            tg_id,
            name,
            username,
            avatar,
        )
        assert row is not None
        return self._roommate(row), bool(row["inserted"])

    async def list_roommates(self) -> list[Roommate]:
        rows = await self.db.fetch("SELECT * FROM roommates ORDER BY joined_at")
        return [self._roommate(row) for row in rows]

    async def set_avatar(self, roommate_id: str, avatar: str) -> None:
        await self.db.execute("UPDATE roommates SET avatar = $1 WHERE id = $2", avatar, roommate_id)

    @staticmethod
    def _roommate(row: Row) -> Roommate:
        return Roommate(
            id=row["id"],
            tg_id=row["tg_id"],
            name=row["name"],
            username=row["username"],
            avatar=row["avatar"],
            joined_at=row["joined_at"],
        )

    # comments

    async def add_comment(self, target: CommentTarget, target_id: str, comment: Comment) -> None:
        await self.db.execute(
            """
            INSERT INTO comments (id, target, target_id, author_id, text, created_at)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (id) DO NOTHING
            """,
            comment.id,
            target.value,
            target_id,
            comment.author_id,
            comment.text,
            comment.created_at,
        )

    async def _comments(self, target: CommentTarget, target_id: str | None = None) -> dict[str, list[Comment]]:
        if target_id is None:
            rows = await self.db.fetch(
                "SELECT * FROM comments WHERE target = $1 ORDER BY created_at",
                target.value,
            )
        else:
            rows = await self.db.fetch(
                "SELECT * FROM comments WHERE target = $1 AND target_id = $2 ORDER BY created_at",
                target.value,
                target_id,
            )
        grouped: dict[str, list[Comment]] = defaultdict(list)
        for row in rows:
            grouped[row["target_id"]].append(_comment_from_row(row))
        return grouped

    # bills

    async def create_bill(self, bill: Bill) -> bool:
        async with self.db.transaction() as tx:
            status = await tx.execute(
                """
                INSERT INTO bills (id, description, total_amount, paid_by, full_owed_by, due_date, is_settled, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                ON CONFLICT (id) DO NOTHING
                """,
                bill.id,
                bill.description,
                bill.total_amount,
                bill.paid_by,
                bill.full_owed_by,
                bill.due_date,
                bill.is_settled,
                bill.created_at,
            )
            if _inserted(status) and bill.split_between is not None:
                await tx.executemany(
                    """
                    INSERT INTO bill_members (bill_id, roommate_id)
                    VALUES ($1, $2)
                    ON CONFLICT DO NOTHING
                    """,
                    ((bill.id, member) for member in sorted(bill.split_between)),
                )
        return _inserted(status)

    async def get_bill(self, bill_id: str) -> Bill | None:
        row = await self.db.fetchrow("SELECT * FROM bills WHERE id = $1", bill_id)
        if row is None:
            return None
        members = await self.db.fetch(
            "SELECT bill_id, roommate_id FROM bill_members WHERE bill_id = $1",
            bill_id,
        )
        comments = await self._comments(CommentTarget.BILL, bill_id)
        return _bill_from_row(row, [m["roommate_id"] for m in members], comments.get(bill_id, []))

    async def list_bills(self, include_settled: bool = True) -> list[Bill]:
        query = "SELECT * FROM bills"
        if not include_settled:
            query += " WHERE is_settled = false"
        rows = await self.db.fetch(query + " ORDER BY created_at DESC")
        members = _group(
            await self.db.fetch("SELECT bill_id, roommate_id FROM bill_members"),
            "bill_id",
            "roommate_id",
        )
        comments = await self._comments(CommentTarget.BILL)
        return [_bill_from_row(row, members.get(row["id"], []), comments.get(row["id"], [])) for row in rows]

    async def toggle_bill_settled(self, bill_id: str) -> Bill | None:
        await self.db.execute("UPDATE bills SET is_settled = NOT is_settled WHERE id = $1", bill_id)
        return await self.get_bill(bill_id)

    async def delete_bill(self, bill_id: str) -> None:
        async with self.db.transaction() as tx:
            await tx.execute(
                "DELETE FROM comments WHERE target = $1 AND target_id = $2",
                CommentTarget.BILL.value,
                bill_id,
            )
            await tx.execute("DELETE FROM bills WHERE id = $1", bill_id)

    # chores

    async def create_chore(self, chore: Chore) -> bool:
        async with self.db.transaction() as tx:
            status = await tx.execute(
                """
                INSERT INTO chores (id, description, due_date, is_done, completed_at, created_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (id) DO NOTHING
                """,
                chore.id,
                chore.description,
                chore.due_date,
                chore.is_done,
                chore.completed_at,
                chore.created_at,
            )
            if _inserted(status):
                await tx.executemany(
                    "INSERT INTO chore_assignees (chore_id, roommate_id) VALUES ($1, $2) ON CONFLICT DO NOTHING",
                    ((chore.id, roommate_id) for roommate_id in chore.assigned_to),
                )
        return _inserted(status)

    async def list_chores(self) -> list[Chore]:
        rows = await self.db.fetch("SELECT * FROM chores ORDER BY due_date, created_at")
        assignees = _group(
            await self.db.fetch("SELECT chore_id, roommate_id FROM chore_assignees"),
            "chore_id",
            "roommate_id",
        )
        comments = await self._comments(CommentTarget.CHORE)
        return [self._chore(row, assignees.get(row["id"], []), comments.get(row["id"], [])) for row in rows]

    async def get_chore(self, chore_id: str) -> Chore | None:
        row = await self.db.fetchrow("SELECT * FROM chores WHERE id = $1", chore_id)
        if row is None:
            return None
        assignees = await self.db.fetch("SELECT roommate_id FROM chore_assignees WHERE chore_id = $1", chore_id)
        comments = await self._comments(CommentTarget.CHORE, chore_id)
        return self._chore(row, [a["roommate_id"] for a in assignees], comments.get(chore_id, []))

    async def toggle_chore(self, chore_id: str, now: datetime) -> Chore | None:
        await self.db.execute(
            """
            UPDATE chores
            SET is_done = NOT is_done,
                completed_at = CASE WHEN is_done THEN NULL ELSE $2::timestamptz END
            WHERE id = $1
            """,
            chore_id,
            now,
        )
        return await self.get_chore(chore_id)

    async def purge_completed_chores(self, now: datetime, older_than: timedelta) -> list[str]:
        rows = await self.db.fetch(
            "SELECT id FROM chores WHERE is_done = true AND completed_at <= $1",
            now - older_than,
        )
        ids = [row["id"] for row in rows]
        if ids:
            async with self.db.transaction() as tx:
                await tx.execute(
                    "DELETE FROM comments WHERE target = $1 AND target_id = ANY($2::text[])",
                    CommentTarget.CHORE.value,
                    ids,
                )
                await tx.execute("DELETE FROM chores WHERE id = ANY($1::text[])", ids)
        return ids

    @staticmethod
    def _chore(row: Row, assigned_to: list[str], comments: list[Comment]) -> Chore:
        return Chore(
            id=row["id"],
            description=row["description"],
            due_date=row["due_date"],
            assigned_to=assigned_to,
            created_at=row["created_at"],
            is_done=row["is_done"],
            completed_at=row["completed_at"],
            comments=comments,
        )

    # kitchen

    async def create_kitchen_item(self, item: KitchenItem) -> bool:
        async with self.db.transaction() as tx:
            status = await tx.execute(
                """
                INSERT INTO kitchen_items (id, name, quantity, created_by, created_at)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (id) DO NOTHING
                """,
                item.id,
                item.name,
                item.quantity,
                item.created_by,
                item.created_at,
            )
            if _inserted(status):
                await tx.executemany(
                    "INSERT INTO kitchen_assignees (item_id, roommate_id) VALUES ($1, $2) ON CONFLICT DO NOTHING",
                    ((item.id, roommate_id) for roommate_id in item.assigned_to),
                )
        return _inserted(status)

    async def list_kitchen_items(self) -> list[KitchenItem]:
        rows = await self.db.fetch("SELECT * FROM kitchen_items ORDER BY created_at DESC")
        assignees = _group(
            await self.db.fetch("SELECT item_id, roommate_id FROM kitchen_assignees"),
            "item_id",
            "roommate_id",
        )
        comments = await self._comments(CommentTarget.KITCHEN)
        return [
            KitchenItem(
                id=row["id"],
                name=row["name"],
                assigned_to=assignees.get(row["id"], []),
                created_at=row["created_at"],
                quantity=row["quantity"],
                created_by=row["created_by"],
                comments=comments.get(row["id"], []),
            )
            for row in rows
        ]

    async def delete_kitchen_item(self, item_id: str) -> None:
        async with self.db.transaction() as tx:
            await tx.execute(
                "DELETE FROM comments WHERE target = $1 AND target_id = $2",
                CommentTarget.KITCHEN.value,
                item_id,
            )
            await tx.execute("DELETE FROM kitchen_items WHERE id = $1", item_id)

    # noise notes

    async def create_noise_note(self, note: NoiseNote) -> bool:
        status = await self.db.execute(
            """
            INSERT INTO noise_notes (id, description, noted_on, created_by, created_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO NOTHING
            """,
            note.id,
            note.description,
            note.noted_on,
            note.created_by,
            note.created_at,
        )
        return _inserted(status)

    async def list_noise_notes(self) -> list[NoiseNote]:
        rows = await self.db.fetch("SELECT * FROM noise_notes ORDER BY noted_on DESC, created_at DESC")
        comments = await self._comments(CommentTarget.NOISE)
        return [
            NoiseNote(
                id=row["id"],
                description=row["description"],
                noted_on=row["noted_on"],
                created_at=row["created_at"],
                created_by=row["created_by"],
                comments=comments.get(row["id"], []),
            )
            for row in rows
        ]

    async def delete_noise_note(self, note_id: str) -> None:
        async with self.db.transaction() as tx:
            await tx.execute(
                "DELETE FROM comments WHERE target = $1 AND target_id = $2",
                CommentTarget.NOISE.value,
                note_id,
            )
            await tx.execute("DELETE FROM noise_notes WHERE id = $1", note_id)

    # activity feed

    async def add_notification(self, kind: NotificationKind, message: str, now: datetime) -> Notification:
        notification = Notification(id=generate_id(), message=message, kind=kind, created_at=now)
        await self.save_notification(notification)
        return notification

    async def save_notification(self, notification: Notification) -> bool:
        status = await self.db.execute(
            """
            INSERT INTO notifications (id, message, kind, created_at, read)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO NOTHING
            """,
            notification.id,
            notification.message,
            notification.kind.value,
            notification.created_at,
            notification.read,
        )
        return _inserted(status)

    async def list_notifications(self, limit: int | None = None) -> list[Notification]:
        query = "SELECT * FROM notifications ORDER BY created_at DESC"
        rows = await (self.db.fetch(query + " LIMIT $1", limit) if limit else self.db.fetch(query))
        return [
            Notification(
                id=row["id"],
                message=row["message"],
                kind=NotificationKind(row["kind"]),
                created_at=row["created_at"],
                read=row["read"],
            )
            for row in rows
        ]

    async def clear_notifications(self) -> None:
        await self.db.execute("DELETE FROM notifications")
