from __future__ import annotations

from typing import Iterable

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from roomieboard.db.models import CommentTarget, Roommate
from roomieboard.services.bills import FULL_MODE, SPLIT_MODE


def main_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="🏠 Home", callback_data="menu:home"),
                InlineKeyboardButton(text="👥 Roommates", callback_data="menu:roommates"),
            ],
            [
                InlineKeyboardButton(text="💸 Bills", callback_data="menu:bills"),
                InlineKeyboardButton(text="➕ Add bill", callback_data="menu:addbill"),
            ],
            [
                InlineKeyboardButton(text="🧹 Chores", callback_data="menu:chores"),
                InlineKeyboardButton(text="🍳 Kitchen", callback_data="menu:kitchen"),
                InlineKeyboardButton(text="🔊 Noise", callback_data="menu:noise"),
            ],
        ]
    )


def cancel_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[InlineKeyboardButton(text="❌ Cancel", callback_data="bill_new:cancel")]]
    )


def skip_due_date_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="⏩ No due date", callback_data="bill_new:skip_due")],
            [InlineKeyboardButton(text="❌ Cancel", callback_data="bill_new:cancel")],
        ]
    )


def split_mode_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="➗ Split evenly", callback_data=f"bill_new:mode:{SPLIT_MODE}")],
            [InlineKeyboardButton(text="👤 One person owes it all", callback_data=f"bill_new:mode:{FULL_MODE}")],
            [InlineKeyboardButton(text="❌ Cancel", callback_data="bill_new:cancel")],
        ]
    )


def members_keyboard(roommates: Iterable[Roommate], selected: set[str]) -> InlineKeyboardMarkup:
    rows = [
        [
            InlineKeyboardButton(
                text=f"{'✅' if r.id in selected else '▫️'} {r.avatar} {r.name}",
                callback_data=f"bill_new:member:{r.id}",
            )
        ]
        for r in roommates
    ]
    rows.append([InlineKeyboardButton(text="💾 Save bill", callback_data="bill_new:save")])
    rows.append([InlineKeyboardButton(text="❌ Cancel", callback_data="bill_new:cancel")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def debtor_keyboard(roommates: Iterable[Roommate]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(text=f"{r.avatar} {r.name}", callback_data=f"bill_new:debtor:{r.id}")]
        for r in roommates
    ]
    rows.append([InlineKeyboardButton(text="❌ Cancel", callback_data="bill_new:cancel")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def comment_button(target: CommentTarget, target_id: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text="💬 Comment", callback_data=f"comment:{target.value}:{target_id}")


def bill_keyboard(bill_id: str, is_settled: bool) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="↩️ Reopen" if is_settled else "✅ Settle",
                    callback_data=f"bill_settle:{bill_id}",
                ),
                InlineKeyboardButton(text="🗑 Delete", callback_data=f"bill_delete:{bill_id}"),
            ],
            [comment_button(CommentTarget.BILL, bill_id)],
        ]
    )


def chore_keyboard(chore_id: str, is_done: bool) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="↩️ Not done" if is_done else "☑️ Done",
                    callback_data=f"chore_toggle:{chore_id}",
                ),
                comment_button(CommentTarget.CHORE, chore_id),
            ]
        ]
    )


def kitchen_keyboard(item_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="🗑 Remove", callback_data=f"kitchen_delete:{item_id}"),
                comment_button(CommentTarget.KITCHEN, item_id),
            ]
        ]
    )


def noise_keyboard(note_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="🗑 Delete", callback_data=f"noise_delete:{note_id}"),
                comment_button(CommentTarget.NOISE, note_id),
            ]
        ]
    )
