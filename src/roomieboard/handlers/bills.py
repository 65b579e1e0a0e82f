from __future__ import annotations

from html import escape

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from roomieboard.config import get_settings
from roomieboard.db.models import NotificationKind, Roommate
from roomieboard.db.repo import RoomieBoardRepository
from roomieboard.handlers.common import board_now, record, resolve_roommate
from roomieboard.keyboards import (
    bill_keyboard,
    cancel_keyboard,
    debtor_keyboard,
    members_keyboard,
    skip_due_date_keyboard,
    split_mode_keyboard,
)
from roomieboard.logging import get_logger
from roomieboard.services import feed
from roomieboard.services.authz import assert_bill_participant
from roomieboard.services.bills import SPLIT_MODE, build_bill, build_split
from roomieboard.services.cards import format_balance, format_bill_card, format_currency, format_date
from roomieboard.state import (
    STEP_AMOUNT,
    STEP_DEBTOR,
    STEP_DESCRIPTION,
    STEP_DUE_DATE,
    STEP_MEMBERS,
    STEP_MODE,
    BillDraft,
    UserStateManager,
)
from roomieboard.utils.parse import parse_amount, parse_due_date

bills_router = Router()

log = get_logger(__name__)


def _others(roommates: list[Roommate], payer_id: str) -> list[Roommate]:
    return [r for r in roommates if r.id != payer_id]


# wizard


async def start_bill_wizard(message: Message, user_id: int, ui_state: UserStateManager) -> None:
    ui_state.start_bill(user_id)
    await message.answer(
        "➕ <b>New bill</b>\n\n📝 <b>Step 1/4: Description</b>\n\nWhat was it for? e.g. <i>Electricity March</i>",
        reply_markup=cancel_keyboard(),
    )


@bills_router.message(Command("addbill"))
async def cmd_addbill(message: Message, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    user = message.from_user
    if not user:
        return
    await resolve_roommate(repo, user)
    await start_bill_wizard(message, user.id, ui_state)


@bills_router.callback_query(F.data == "menu:addbill")
async def cb_addbill(callback: CallbackQuery, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    await resolve_roommate(repo, callback.from_user)
    if callback.message:
        await start_bill_wizard(callback.message, callback.from_user.id, ui_state)
    await callback.answer()


async def handle_bill_input(message: Message, draft: BillDraft) -> None:
    """Text steps of the wizard; the remaining steps are buttons."""
    text = (message.text or "").strip()

    if draft.step == STEP_DESCRIPTION:
        if not text:
            await message.answer("❌ The description can't be empty.", reply_markup=cancel_keyboard())
            return
        draft.description = text
        draft.step = STEP_AMOUNT
        await message.answer(
            "💵 <b>Step 2/4: Amount</b>\n\nHow much was it? e.g. <code>84.50</code>",
            reply_markup=cancel_keyboard(),
        )
        return

    if draft.step == STEP_AMOUNT:
        try:
            draft.amount = parse_amount(text)
        except ValueError as exc:
            await message.answer(f"❌ {exc}. Try again:", reply_markup=cancel_keyboard())
            return
        draft.step = STEP_DUE_DATE
        await message.answer(
            "📅 <b>Step 3/4: Due date</b>\n\nWhen is it due? e.g. <code>2025-12-20</code> or <code>20.12.2025</code>",
            reply_markup=skip_due_date_keyboard(),
        )
        return

    if draft.step == STEP_DUE_DATE:
        try:
            draft.due_date = parse_due_date(text)
        except ValueError as exc:
            await message.answer(f"❌ {exc}. Try again:", reply_markup=skip_due_date_keyboard())
            return
        await ask_split_mode(message, draft)
        return

    await message.answer("Use the buttons above to finish the bill.")


async def ask_split_mode(message: Message, draft: BillDraft) -> None:
    draft.step = STEP_MODE
    await message.answer(
        "➗ <b>Step 4/4: Who owes what?</b>\n\nSplit it evenly, or one roommate owes you the full amount.",
        reply_markup=split_mode_keyboard(),
    )


@bills_router.callback_query(F.data == "bill_new:cancel")
async def cb_bill_cancel(callback: CallbackQuery, ui_state: UserStateManager) -> None:
    ui_state.clear_bill_draft(callback.from_user.id)
    if callback.message:
        await callback.message.edit_text("Bill discarded.")
    await callback.answer("Cancelled")


@bills_router.callback_query(F.data == "bill_new:skip_due")
async def cb_bill_skip_due(callback: CallbackQuery, ui_state: UserStateManager) -> None:
    draft = ui_state.get_bill_draft(callback.from_user.id)
    if not draft or draft.step != STEP_DUE_DATE or not callback.message:
        await callback.answer("Start a new bill with /addbill")
        return
    draft.due_date = None
    await ask_split_mode(callback.message, draft)
    await callback.answer()


@bills_router.callback_query(F.data.startswith("bill_new:mode:"))
async def cb_bill_mode(callback: CallbackQuery, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    draft = ui_state.get_bill_draft(callback.from_user.id)
    if not draft or draft.step != STEP_MODE or not callback.message:
        await callback.answer("Start a new bill with /addbill")
        return

    payer = await resolve_roommate(repo, callback.from_user)
    others = _others(await repo.list_roommates(), payer.id)
    if not others:
        await callback.answer("Nobody else is on the board yet. Ask your roommates to /start the bot.", show_alert=True)
        return

    mode = callback.data.rsplit(":", 1)[1]
    try:
        draft.choose_mode(mode)
    except ValueError:
        await callback.answer("Start a new bill with /addbill")
        return
    if mode == SPLIT_MODE:
        await callback.message.edit_text(
            "Who are you splitting with? You're included automatically.",
            reply_markup=members_keyboard(others, draft.members),
        )
    else:
        await callback.message.edit_text("Who owes the full amount?", reply_markup=debtor_keyboard(others))
    await callback.answer()


@bills_router.callback_query(F.data.startswith("bill_new:member:"))
async def cb_bill_member(callback: CallbackQuery, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    draft = ui_state.get_bill_draft(callback.from_user.id)
    if not draft or draft.step != STEP_MEMBERS or not callback.message:
        await callback.answer("Start a new bill with /addbill")
        return
    payer = await resolve_roommate(repo, callback.from_user)
    draft.toggle_member(callback.data.split(":", 2)[2])
    others = _others(await repo.list_roommates(), payer.id)
    await callback.message.edit_reply_markup(reply_markup=members_keyboard(others, draft.members))
    await callback.answer()


@bills_router.callback_query(F.data.startswith("bill_new:debtor:"))
async def cb_bill_debtor(callback: CallbackQuery, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    draft = ui_state.get_bill_draft(callback.from_user.id)
    if not draft or draft.step != STEP_DEBTOR or not callback.message:
        await callback.answer("Start a new bill with /addbill")
        return
    await save_bill(callback, repo, ui_state, draft, debtor=callback.data.split(":", 2)[2])


@bills_router.callback_query(F.data == "bill_new:save")
async def cb_bill_save(callback: CallbackQuery, repo: RoomieBoardRepository, ui_state: UserStateManager) -> None:
    draft = ui_state.get_bill_draft(callback.from_user.id)
    if not draft or draft.step != STEP_MEMBERS or not callback.message:
        await callback.answer("Start a new bill with /addbill")
        return
    await save_bill(callback, repo, ui_state, draft)


async def save_bill(
    callback: CallbackQuery,
    repo: RoomieBoardRepository,
    ui_state: UserStateManager,
    draft: BillDraft,
    debtor: str | None = None,
) -> None:
    settings = get_settings()
    payer = await resolve_roommate(repo, callback.from_user)
    if draft.amount is None:
        await callback.answer("Start a new bill with /addbill")
        return

    try:
        split = build_split(draft.mode, payer.id, draft.members, debtor)
        bill = build_bill(
            description=draft.description,
            total_amount=draft.amount,
            paid_by=payer.id,
            split=split,
            now=board_now(),
            due_date=draft.due_date,
        )
    except ValueError as exc:
        await callback.answer(str(exc), show_alert=True)
        return

    await repo.create_bill(bill)
    ui_state.clear_bill_draft(callback.from_user.id)
    log.info("bill.created", bill_id=bill.id, paid_by=payer.id, mode=draft.mode, amount=str(bill.total_amount))

    roommates = await repo.list_roommates()
    await record(repo, NotificationKind.BILL, feed.bill_added(bill, roommates, settings.currency))

    if callback.message:
        await callback.message.edit_text(
            "✅ Bill saved!\n\n"
            + format_bill_card(bill, roommates, payer.id, currency=settings.currency, now=board_now()),
            reply_markup=bill_keyboard(bill.id, bill.is_settled),
        )
    await callback.answer("Bill saved")


# listing


async def send_bills(message: Message, repo: RoomieBoardRepository, viewer: Roommate) -> None:
    settings = get_settings()
    now = board_now()
    bills = await repo.list_bills()
    pending = [bill for bill in bills if not bill.is_settled]
    settled = len(bills) - len(pending)

    if not bills:
        await message.answer("💸 No bills yet. Add your first one with /addbill to track shared expenses!")
        return

    await message.answer(
        format_balance(bills, viewer.id, currency=settings.currency) + f"\nSettled bills: {settled}"
    )
    roommates = await repo.list_roommates()
    for bill in pending:
        await message.answer(
            format_bill_card(bill, roommates, viewer.id, currency=settings.currency, now=now),
            reply_markup=bill_keyboard(bill.id, bill.is_settled),
        )


@bills_router.message(Command("bills"))
async def cmd_bills(message: Message, repo: RoomieBoardRepository) -> None:
    user = message.from_user
    if not user:
        return
    viewer = await resolve_roommate(repo, user)
    await send_bills(message, repo, viewer)


@bills_router.callback_query(F.data == "menu:bills")
async def cb_bills(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    viewer = await resolve_roommate(repo, callback.from_user)
    if callback.message:
        await send_bills(callback.message, repo, viewer)
    await callback.answer()


@bills_router.message(Command("balance"))
async def cmd_balance(message: Message, repo: RoomieBoardRepository) -> None:
    user = message.from_user
    if not user:
        return
    viewer = await resolve_roommate(repo, user)
    bills = await repo.list_bills(include_settled=False)
    await message.answer(format_balance(bills, viewer.id, currency=get_settings().currency))


# actions


@bills_router.callback_query(F.data.startswith("bill_settle:"))
async def cb_bill_settle(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    settings = get_settings()
    viewer = await resolve_roommate(repo, callback.from_user)
    bill_id = callback.data.split(":", 1)[1]
    if await repo.get_bill(bill_id) is None:
        await callback.answer("This bill is gone.", show_alert=True)
        return
    await assert_bill_participant(repo.db, viewer.id, bill_id)

    bill = await repo.toggle_bill_settled(bill_id)
    if bill is None:
        await callback.answer("This bill is gone.", show_alert=True)
        return
    log.info("bill.settled" if bill.is_settled else "bill.reopened", bill_id=bill.id, by=viewer.id)

    roommates = await repo.list_roommates()
    await record(repo, NotificationKind.BILL, feed.bill_settled(bill, roommates))
    if callback.message:
        await callback.message.edit_text(
            format_bill_card(bill, roommates, viewer.id, currency=settings.currency, now=board_now()),
            reply_markup=bill_keyboard(bill.id, bill.is_settled),
        )
    await callback.answer("Settled" if bill.is_settled else "Reopened")


@bills_router.callback_query(F.data.startswith("bill_delete:"))
async def cb_bill_delete(callback: CallbackQuery, repo: RoomieBoardRepository) -> None:
    settings = get_settings()
    viewer = await resolve_roommate(repo, callback.from_user)
    bill_id = callback.data.split(":", 1)[1]
    bill = await repo.get_bill(bill_id)
    if bill is None:
        await callback.answer("This bill is gone.", show_alert=True)
        return
    await assert_bill_participant(repo.db, viewer.id, bill_id)

    await repo.delete_bill(bill_id)
    log.info("bill.deleted", bill_id=bill_id, by=viewer.id)
    roommates = await repo.list_roommates()
    await record(repo, NotificationKind.BILL, feed.bill_deleted(bill, roommates))
    if callback.message:
        await callback.message.edit_text(
            f"🗑 Deleted bill: {escape(bill.description)} ({format_currency(bill.total_amount, settings.currency)}"
            + (f", due {format_date(bill.due_date)})" if bill.due_date else ")")
        )
    await callback.answer("Deleted")
