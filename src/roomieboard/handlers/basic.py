from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command, CommandObject, CommandStart, ExceptionTypeFilter
from aiogram.types import CallbackQuery, ErrorEvent, Message

from roomieboard.config import get_settings
from roomieboard.db.repo import RoomieBoardRepository
from roomieboard.handlers.common import board_now, resolve_roommate
from roomieboard.keyboards import main_menu_keyboard
from roomieboard.logging import get_logger
from roomieboard.services.authz import AuthorizationError
from roomieboard.services.cards import format_home, format_roster
from roomieboard.services.roster import AVATAR_EMOJIS
from roomieboard.state import UserStateManager

basic_router = Router()

log = get_logger(__name__)

HELP_TEXT = (
    "🏠 <b>Roomie Board</b> keeps the flat in sync.\n\n"
    "<b>Bills</b>\n"
    "/addbill · add a shared bill\n"
    "/bills · pending bills\n"
    "/balance · what you owe or are owed\n\n"
    "<b>Chores</b>\n"
    "/addchore Trash | 2025-12-20 | @bob @carol\n"
    "/chores · pending chores\n\n"
    "<b>Kitchen</b>\n"
    "/additem Milk | 2 l | @bob\n"
    "/kitchen · shopping list\n\n"
    "<b>Noise</b>\n"
    "/addnoise 2025-12-20 | Party until 2am\n"
    "/noise · noise notes\n\n"
    "<b>Board</b>\n"
    "/home · overview and recent activity\n"
    "/roommates · who lives here\n"
    "/avatar 🦊 · change your avatar\n"
    "/clearfeed · clear recent activity\n"
    "/export · download a backup, /import · restore one"
)


async def build_home(repo: RoomieBoardRepository, roommate) -> str:
    settings = get_settings()
    return format_home(
        roommate,
        roommates=await repo.list_roommates(),
        chores=await repo.list_chores(),
        kitchen_items=await repo.list_kitchen_items(),
        bills=await repo.list_bills(include_settled=False),
        notifications=await repo.list_notifications(limit=5),
        currency=settings.currency,
        now=board_now(),
    )


@basic_router.message(CommandStart())
async def cmd_start(message: Message, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    user = message.from_user
    if not user:
        return
    ui_state.clear_user(user.id)
    roommate = await resolve_roommate(repo, user)
    await message.answer(
        f"{roommate.avatar} Hi, {roommate.name}!\n\n"
        "I'm <b>Roomie Board</b>: bills, chores, the kitchen list and noise notes for your flat.",
        reply_markup=main_menu_keyboard(),
    )


@basic_router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT, reply_markup=main_menu_keyboard())


@basic_router.message(Command("home"))
async def cmd_home(message: Message, repo: RoomieBoardRepository) -> None:
    user = message.from_user
    if not user:
        return
    roommate = await resolve_roommate(repo, user)
    await message.answer(await build_home(repo, roommate), reply_markup=main_menu_keyboard())


@basic_router.callback_query(F.data == "menu:home")
async def cb_home(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    roommate = await resolve_roommate(repo, callback.from_user)
    if callback.message:
        await callback.message.answer(await build_home(repo, roommate), reply_markup=main_menu_keyboard())
    await callback.answer()


@basic_router.message(Command("roommates"))
async def cmd_roommates(message: Message, repo: RoomieBoardRepository) -> None:
    user = message.from_user
    if not user:
        return
    roommate = await resolve_roommate(repo, user)
    await message.answer(format_roster(await repo.list_roommates(), roommate.id))


@basic_router.callback_query(F.data == "menu:roommates")
async def cb_roommates(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    roommate = await resolve_roommate(repo, callback.from_user)
    if callback.message:
        await callback.message.answer(format_roster(await repo.list_roommates(), roommate.id))
    await callback.answer()


@basic_router.message(Command("avatar"))
async def cmd_avatar(message: Message, command: CommandObject, repo: RoomieBoardRepository) -> None:
    user = message.from_user
    if not user:
        return
    roommate = await resolve_roommate(repo, user)
    choice = (command.args or "").strip()
    if choice not in AVATAR_EMOJIS:
        await message.answer("Pick one of: " + " ".join(AVATAR_EMOJIS))
        return
    await repo.set_avatar(roommate.id, choice)
    log.info("roommate.avatar", roommate_id=roommate.id, avatar=choice)
    await message.answer(f"Avatar updated: {choice}")


@basic_router.message(Command("clearfeed"))
async def cmd_clearfeed(message: Message, repo: RoomieBoardRepository) -> None:
    user = message.from_user
    if not user:
        return
    await resolve_roommate(repo, user)
    await repo.clear_notifications()
    await message.answer("Recent activity cleared.")


@basic_router.errors(ExceptionTypeFilter(AuthorizationError))
async def on_authorization_error(event: ErrorEvent) -> None:
    log.warning("authz.denied", reason=str(event.exception))
    update = event.update
    if update.callback_query:
        await update.callback_query.answer(str(event.exception), show_alert=True)
    elif update.message:
        await update.message.answer(f"⛔ {event.exception}")
