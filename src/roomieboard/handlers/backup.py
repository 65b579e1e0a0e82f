from __future__ import annotations

from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.types import BufferedInputFile, Message

from roomieboard.db.repo import RoomieBoardRepository
from roomieboard.handlers.common import resolve_roommate
from roomieboard.logging import get_logger
from roomieboard.services.snapshot import (
    SNAPSHOT_FILENAME,
    SnapshotError,
    dump_snapshot,
    export_board,
    load_snapshot,
    restore_board,
)

backup_router = Router()

log = get_logger(__name__)

MAX_IMPORT_BYTES = 5 * 1024 * 1024


@backup_router.message(Command("export"))
async def cmd_export(message: Message, repo: RoomieBoardRepository) -> None:
    if not message.from_user:
        return
    roommate = await resolve_roommate(repo, message.from_user)
    snapshot = await export_board(repo)
    payload = dump_snapshot(snapshot).encode("utf-8")
    log.info("snapshot.exported", by=roommate.id, bills=len(snapshot.bills), size=len(payload))
    await message.answer_document(
        BufferedInputFile(payload, filename=SNAPSHOT_FILENAME),
        caption="📦 Board backup. Send it back with the caption /import to restore.",
    )


@backup_router.message(Command("import"))
async def cmd_import(message: Message, bot: Bot, repo: RoomieBoardRepository) -> None:
    if not message.from_user:
        return
    roommate = await resolve_roommate(repo, message.from_user)
    document = message.document
    if document is None:
        await message.answer(f"Attach a {SNAPSHOT_FILENAME} file and put /import in its caption.")
        return
    if document.file_size and document.file_size > MAX_IMPORT_BYTES:
        await message.answer("❌ That file is too large for a board backup.")
        return

    buffer = await bot.download(document)
    try:
        snapshot = load_snapshot(buffer.read())
    except SnapshotError as exc:
        log.warning("snapshot.rejected", by=roommate.id, reason=str(exc))
        await message.answer(f"❌ {exc}")
        return

    roommate_ids = {r.id for r in await repo.list_roommates()}
    report = await restore_board(repo, snapshot, roommate_ids)
    text = f"✅ Restored {report.restored} record(s)."
    if report.skipped:
        text += f"\n⚠️ Skipped {report.skipped} that mention people who aren't on the board."
    if report.existing:
        text += f"\nℹ️ {report.existing} were already on the board and were left as they are."
    await message.answer(text)
