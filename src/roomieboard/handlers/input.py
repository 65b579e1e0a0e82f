"""
Free text routing.

Plain messages are either the next answer of a running /addbill wizard or
a comment armed by a "Comment" button. This router has to be included
last so that commands always win.
"""

from __future__ import annotations

from html import escape
from typing import Optional

from aiogram import F, Router
from aiogram.types import CallbackQuery, Message

from roomieboard.db.models import Comment, CommentTarget, NotificationKind, Roommate
from roomieboard.db.repo import RoomieBoardRepository
from roomieboard.handlers.bills import handle_bill_input
from roomieboard.handlers.common import board_now, record, resolve_roommate
from roomieboard.logging import get_logger
from roomieboard.services import feed
from roomieboard.state import UserStateManager
from roomieboard.utils.ids import generate_id

input_router = Router()

log = get_logger(__name__)

SUBJECTS = {
    CommentTarget.BILL: "bill",
    CommentTarget.CHORE: "chore",
    CommentTarget.KITCHEN: "kitchen item",
    CommentTarget.NOISE: "noise note",
}

# feed notification kind per commented record
KINDS = {
    CommentTarget.BILL: NotificationKind.BILL,
    CommentTarget.CHORE: NotificationKind.CHORE,
    CommentTarget.KITCHEN: NotificationKind.KITCHEN,
    CommentTarget.NOISE: NotificationKind.NOISE,
}


async def comment_label(repo: RoomieBoardRepository, target: CommentTarget, target_id: str) -> Optional[str]:
    """Short name of the record a comment goes to, or None when it no longer exists."""
    if target is CommentTarget.BILL:
        bill = await repo.get_bill(target_id)
        return bill.description if bill else None
    if target is CommentTarget.CHORE:
        chore = await repo.get_chore(target_id)
        return chore.description if chore else None
    if target is CommentTarget.KITCHEN:
        item = next((i for i in await repo.list_kitchen_items() if i.id == target_id), None)
        return item.name if item else None
    note = next((n for n in await repo.list_noise_notes() if n.id == target_id), None)
    return feed.noise_label(note) if note else None


@input_router.callback_query(F.data.startswith("comment:"))
async def cb_comment(callback: CallbackQuery, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    await resolve_roommate(repo, callback.from_user)
    _, raw_target, target_id = callback.data.split(":", 2)
    try:
        target = CommentTarget(raw_target)
    except ValueError:
        await callback.answer("Unknown record.", show_alert=True)
        return
    label = await comment_label(repo, target, target_id)
    if label is None:
        await callback.answer("This record is gone.", show_alert=True)
        return
    ui_state.set_pending_comment(callback.from_user.id, target, target_id)
    if callback.message:
        await callback.message.answer(f"💬 Send your comment on the {SUBJECTS[target]} <b>{escape(label)}</b>.")
    await callback.answer()


async def save_comment(
    message: Message,
    repo: RoomieBoardRepository,
    author: Roommate,
    target: CommentTarget,
    target_id: str,
) -> None:
    text = (message.text or "").strip()
    if not text:
        await message.answer("Empty comment ignored.")
        return
    label = await comment_label(repo, target, target_id)
    if label is None:
        await message.answer("That record was removed in the meantime.")
        return

    comment = Comment(id=generate_id(), author_id=author.id, text=text, created_at=board_now())
    await repo.add_comment(target, target_id, comment)
    log.info("comment.created", target=target.value, target_id=target_id, by=author.id)
    roommates = await repo.list_roommates()
    await record(repo, KINDS[target], feed.commented(author.id, SUBJECTS[target], label, roommates))
    await message.answer("💬 Comment added.")


@input_router.message(F.text & ~F.text.startswith("/"))
async def on_text(message: Message, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    user = message.from_user
    if not user:
        return

    draft = ui_state.get_bill_draft(user.id)
    if draft is not None:
        await handle_bill_input(message, draft)
        return

    pending = ui_state.pop_pending_comment(user.id)
    if pending is not None:
        author = await resolve_roommate(repo, user)
        await save_comment(message, repo, author, *pending)
        return

    await message.answer("Not sure what to do with that. Try /help")
