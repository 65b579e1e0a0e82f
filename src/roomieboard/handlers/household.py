"""Chores, the kitchen list and noise notes."""

from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from roomieboard.db.models import Chore, KitchenItem, NoiseNote, NotificationKind, Roommate
from roomieboard.db.repo import RoomieBoardRepository
from roomieboard.handlers.common import board_now, record, resolve_roommate
from roomieboard.keyboards import chore_keyboard, kitchen_keyboard, noise_keyboard
from roomieboard.logging import get_logger
from roomieboard.services import feed
from roomieboard.services.cards import format_chore, format_kitchen_item, format_noise_note
from roomieboard.services.roster import match_usernames
from roomieboard.utils.ids import generate_id
from roomieboard.utils.parse import parse_due_date, parse_mentions, split_command

household_router = Router()

log = get_logger(__name__)

ADDCHORE_USAGE = "Usage: /addchore Take out the trash | 2025-12-20 | @bob @carol"
ADDITEM_USAGE = "Usage: /additem Milk | 2 l | @bob"
ADDNOISE_USAGE = "Usage: /addnoise 2025-12-20 | Party until 2am"


def resolve_assignees(raw: str, roommates: list[Roommate]) -> list[str]:
    usernames = parse_mentions(raw)
    if not usernames:
        raise ValueError("Mention at least one roommate, e.g. @bob")
    found, missing = match_usernames(usernames, roommates)
    if missing:
        raise ValueError("Not on the board: " + ", ".join(f"@{name}" for name in missing))
    return found


# chores


async def send_chores(message: Message, repo: RoomieBoardRepository) -> None:
    now = board_now()
    chores = [chore for chore in await repo.list_chores() if not chore.is_done]
    if not chores:
        await message.answer("🧹 No pending chores. Add one with /addchore")
        return
    roommates = await repo.list_roommates()
    for chore in chores:
        await message.answer(format_chore(chore, roommates, now=now), reply_markup=chore_keyboard(chore.id, chore.is_done))


@household_router.message(Command("chores"))
async def cmd_chores(message: Message, repo: RoomieBoardRepository) -> None:
    if not message.from_user:
        return
    await resolve_roommate(repo, message.from_user)
    await send_chores(message, repo)


@household_router.callback_query(F.data == "menu:chores")
async def cb_chores(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    await resolve_roommate(repo, callback.from_user)
    if callback.message:
        await send_chores(callback.message, repo)
    await callback.answer()


@household_router.message(Command("addchore"))
async def cmd_addchore(message: Message, repo: RoomieBoardRepository) -> None:
    if not message.from_user or not message.text:
        return
    author = await resolve_roommate(repo, message.from_user)
    parts = split_command(message.text, maxsplit=2)
    if len(parts) < 3 or not parts[0]:
        await message.answer(ADDCHORE_USAGE)
        return

    roommates = await repo.list_roommates()
    try:
        due_date = parse_due_date(parts[1])
        assigned_to = resolve_assignees(parts[2], roommates)
    except ValueError as exc:
        await message.answer(f"❌ {exc}\n{ADDCHORE_USAGE}")
        return

    chore = Chore(
        id=generate_id(),
        description=parts[0],
        due_date=due_date,
        assigned_to=assigned_to,
        created_at=board_now(),
    )
    await repo.create_chore(chore)
    log.info("chore.created", chore_id=chore.id, by=author.id)
    await record(repo, NotificationKind.CHORE, feed.chore_added(chore, roommates))
    await message.answer(
        "✅ Chore added\n\n" + format_chore(chore, roommates, now=board_now()),
        reply_markup=chore_keyboard(chore.id, chore.is_done),
    )


@household_router.callback_query(F.data.startswith("chore_toggle:"))
async def cb_chore_toggle(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    viewer = await resolve_roommate(repo, callback.from_user)
    chore = await repo.toggle_chore(callback.data.split(":", 1)[1], board_now())
    if chore is None:
        await callback.answer("This chore is gone.", show_alert=True)
        return
    log.info("chore.done" if chore.is_done else "chore.reopened", chore_id=chore.id, by=viewer.id)
    roommates = await repo.list_roommates()
    await record(repo, NotificationKind.CHORE, feed.chore_toggled(chore, roommates))
    if callback.message:
        await callback.message.edit_text(
            format_chore(chore, roommates, now=board_now()),
            reply_markup=chore_keyboard(chore.id, chore.is_done),
        )
    await callback.answer("Done!" if chore.is_done else "Reopened")


# kitchen


async def send_kitchen(message: Message, repo: RoomieBoardRepository) -> None:
    now = board_now()
    items = await repo.list_kitchen_items()
    if not items:
        await message.answer("🍳 The kitchen list is empty. Add something with /additem")
        return
    roommates = await repo.list_roommates()
    for item in items:
        await message.answer(format_kitchen_item(item, roommates, now=now), reply_markup=kitchen_keyboard(item.id))


@household_router.message(Command("kitchen"))
async def cmd_kitchen(message: Message, repo: RoomieBoardRepository) -> None:
    if not message.from_user:
        return
    await resolve_roommate(repo, message.from_user)
    await send_kitchen(message, repo)


@household_router.callback_query(F.data == "menu:kitchen")
async def cb_kitchen(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    await resolve_roommate(repo, callback.from_user)
    if callback.message:
        await send_kitchen(callback.message, repo)
    await callback.answer()


@household_router.message(Command("additem"))
async def cmd_additem(message: Message, repo: RoomieBoardRepository) -> None:
    if not message.from_user or not message.text:
        return
    author = await resolve_roommate(repo, message.from_user)
    parts = split_command(message.text, maxsplit=2)
    if len(parts) < 2 or not parts[0]:
        await message.answer(ADDITEM_USAGE)
        return

    # "/additem Milk | @bob" skips the quantity
    quantity, mentions = (parts[1], parts[2]) if len(parts) == 3 else ("", parts[1])
    roommates = await repo.list_roommates()
    try:
        assigned_to = resolve_assignees(mentions, roommates)
    except ValueError as exc:
        await message.answer(f"❌ {exc}\n{ADDITEM_USAGE}")
        return

    item = KitchenItem(
        id=generate_id(),
        name=parts[0],
        assigned_to=assigned_to,
        created_at=board_now(),
        quantity=quantity or None,
        created_by=author.id,
    )
    await repo.create_kitchen_item(item)
    log.info("kitchen.created", item_id=item.id, by=author.id)
    await record(repo, NotificationKind.KITCHEN, feed.kitchen_added(item, author, roommates))
    await message.answer(
        "✅ Added to the kitchen list\n\n" + format_kitchen_item(item, roommates, now=board_now()),
        reply_markup=kitchen_keyboard(item.id),
    )


@household_router.callback_query(F.data.startswith("kitchen_delete:"))
async def cb_kitchen_delete(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    viewer = await resolve_roommate(repo, callback.from_user)
    item_id = callback.data.split(":", 1)[1]
    item = next((i for i in await repo.list_kitchen_items() if i.id == item_id), None)
    if item is None:
        await callback.answer("Already removed.", show_alert=True)
        return
    await repo.delete_kitchen_item(item_id)
    log.info("kitchen.deleted", item_id=item_id, by=viewer.id)
    await record(repo, NotificationKind.KITCHEN, feed.kitchen_removed(item, await repo.list_roommates()))
    if callback.message:
        await callback.message.edit_text("🗑 Removed from the kitchen list.")
    await callback.answer("Removed")


# noise


async def send_noise(message: Message, repo: RoomieBoardRepository) -> None:
    now = board_now()
    notes = await repo.list_noise_notes()
    if not notes:
        await message.answer("🔊 No noise notes. Give a heads-up with /addnoise")
        return
    roommates = await repo.list_roommates()
    for note in notes:
        await message.answer(format_noise_note(note, roommates, now=now), reply_markup=noise_keyboard(note.id))


@household_router.message(Command("noise"))
async def cmd_noise(message: Message, repo: RoomieBoardRepository) -> None:
    if not message.from_user:
        return
    await resolve_roommate(repo, message.from_user)
    await send_noise(message, repo)


@household_router.callback_query(F.data == "menu:noise")
async def cb_noise(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    await resolve_roommate(repo, callback.from_user)
    if callback.message:
        await send_noise(callback.message, repo)
    await callback.answer()


@household_router.message(Command("addnoise"))
async def cmd_addnoise(message: Message, repo: RoomieBoardRepository) -> None:
    if not message.from_user or not message.text:
        return
    author = await resolve_roommate(repo, message.from_user)
    parts = split_command(message.text, maxsplit=1)
    if len(parts) < 2 or not parts[1]:
        await message.answer(ADDNOISE_USAGE)
        return
    try:
        noted_on = parse_due_date(parts[0])
    except ValueError as exc:
        await message.answer(f"❌ {exc}\n{ADDNOISE_USAGE}")
        return

    note = NoiseNote(
        id=generate_id(),
        description=parts[1],
        noted_on=noted_on,
        created_at=board_now(),
        created_by=author.id,
    )
    await repo.create_noise_note(note)
    log.info("noise.created", note_id=note.id, by=author.id)
    await record(repo, NotificationKind.NOISE, feed.noise_added(note, author))
    roommates = await repo.list_roommates()
    await message.answer(
        "✅ Noise note added\n\n" + format_noise_note(note, roommates, now=board_now()),
        reply_markup=noise_keyboard(note.id),
    )


@household_router.callback_query(F.data.startswith("noise_delete:"))
async def cb_noise_delete(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    viewer = await resolve_roommate(repo, callback.from_user)
    note_id = callback.data.split(":", 1)[1]
    note = next((n for n in await repo.list_noise_notes() if n.id == note_id), None)
    if note is None:
        await callback.answer("Already deleted.", show_alert=True)
        return
    await repo.delete_noise_note(note_id)
    log.info("noise.deleted", note_id=note_id, by=viewer.id)
    await record(repo, NotificationKind.NOISE, feed.noise_deleted(note, await repo.list_roommates()))
    if callback.message:
        await callback.message.edit_text("🗑 Noise note deleted.")
    await callback.answer("Deleted")
