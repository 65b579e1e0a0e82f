from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from html import escape
from typing import Optional, Sequence

from roomieboard.db.models import Bill, Chore, Comment, KitchenItem, NoiseNote, Notification, Roommate
from roomieboard.services.ledger import calculate_balance, calculate_bill_amount, describe_balance, member_share
from roomieboard.services.roster import names, roommate_avatar, roommate_name

CENT = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def format_currency(amount: Decimal, currency: str = "USD") -> str:
    rounded = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    body = f"{abs(rounded):,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{body} {currency.upper()}"


def format_date(value: date | datetime) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def is_overdue(due_date: date, today: date) -> bool:
    return due_date < today


def time_ago(timestamp: datetime, now: datetime) -> str:
    minutes = int((now - timestamp).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return format_date(timestamp)


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def format_comments(comments: Sequence[Comment], roommates: list[Roommate], now: datetime) -> list[str]:
    if not comments:
        return []
    lines = [f"💬 {plural(len(comments), 'comment')}"]
    for comment in comments:
        author = roommate_name(comment.author_id, roommates)
        avatar = roommate_avatar(comment.author_id, roommates)
        lines.append(f"  {avatar} {escape(author)} · {time_ago(comment.created_at, now)}: {escape(comment.text)}")
    return lines


def format_bill_card(
    bill: Bill,
    roommates: list[Roommate],
    viewer_id: Optional[str],
    *,
    currency: str,
    now: datetime,
) -> str:
    payer = roommate_name(bill.paid_by, roommates)
    header = f"<b>{escape(bill.description)}</b> · {format_currency(bill.total_amount, currency)}"
    if bill.is_settled:
        header += " ✅"

    paid_line = f"{roommate_avatar(bill.paid_by, roommates)} {escape(payer)} paid"
    if bill.due_date:
        paid_line += f" · Due {format_date(bill.due_date)}"
        if not bill.is_settled and is_overdue(bill.due_date, now.date()):
            paid_line += " ⚠️"

    lines = [header, paid_line]

    share = format_currency(member_share(bill), currency)
    if bill.split_between is not None:
        members = sorted(bill.split_between, key=lambda rid: roommate_name(rid, roommates))
        parts = [
            f"{roommate_avatar(rid, roommates)} {escape(roommate_name(rid, roommates))} {share}" for rid in members
        ]
        lines.append("Split between: " + ", ".join(parts))
    elif bill.full_owed_by is not None:
        debtor = bill.full_owed_by
        lines.append(
            f"Full amount owed by: {roommate_avatar(debtor, roommates)} "
            f"{escape(roommate_name(debtor, roommates))} {share}"
        )

    if viewer_id and bill.involves(viewer_id):
        label, value = describe_balance(calculate_bill_amount(bill, viewer_id))
        if value:
            lines.append(f"Your part: {label} {format_currency(value, currency)}")

    lines.extend(format_comments(bill.comments, roommates, now))
    return "\n".join(lines)


def format_balance(bills: Sequence[Bill], viewer_id: str, *, currency: str) -> str:
    pending = [bill for bill in bills if not bill.is_settled]
    label, value = describe_balance(calculate_balance(pending, viewer_id))
    return "\n".join(
        [
            f"💸 <b>{label}</b> {format_currency(value, currency)}",
            f"Pending bills: {len(pending)}",
        ]
    )


def format_chore(chore: Chore, roommates: list[Roommate], *, now: datetime) -> str:
    mark = "☑️" if chore.is_done else "▫️"
    line = f"{mark} <b>{escape(chore.description)}</b> · Due {format_date(chore.due_date)}"
    if not chore.is_done and is_overdue(chore.due_date, now.date()):
        line += " ⚠️ overdue"
    assignees = ", ".join(
        f"{roommate_avatar(rid, roommates)} {escape(roommate_name(rid, roommates))}" for rid in chore.assigned_to
    )
    lines = [line, f"Assigned to: {assignees}"]
    lines.extend(format_comments(chore.comments, roommates, now))
    return "\n".join(lines)


def format_kitchen_item(item: KitchenItem, roommates: list[Roommate], *, now: datetime) -> str:
    line = f"🧺 <b>{escape(item.name)}</b>"
    if item.quantity:
        line += f" ({escape(item.quantity)})"
    lines = [line, f"Assigned to: {escape(names(item.assigned_to, roommates))}"]
    if item.created_by:
        lines.append(f"Added by {escape(roommate_name(item.created_by, roommates))}")
    lines.extend(format_comments(item.comments, roommates, now))
    return "\n".join(lines)


def format_noise_note(note: NoiseNote, roommates: list[Roommate], *, now: datetime) -> str:
    lines = [f"🔊 <b>{format_date(note.noted_on)}</b>", escape(note.description)]
    if note.created_by:
        lines.append(f"By {escape(roommate_name(note.created_by, roommates))}")
    lines.extend(format_comments(note.comments, roommates, now))
    return "\n".join(lines)


def format_roster(roommates: Sequence[Roommate], viewer_id: Optional[str]) -> str:
    if not roommates:
        return "Nobody has joined the board yet."
    lines = [f"👥 <b>Roommates</b> ({len(roommates)})"]
    for roommate in roommates:
        line = f"{roommate.avatar} {escape(roommate.name)}"
        if roommate.username:
            line += f" @{escape(roommate.username)}"
        if roommate.id == viewer_id:
            line += " (you)"
        line += f" · joined {format_date(roommate.joined_at)}"
        lines.append(line)
    return "\n".join(lines)


def format_feed(notifications: Sequence[Notification], now: datetime) -> list[str]:
    return [f"• {escape(n.message)} <i>{time_ago(n.created_at, now)}</i>" for n in notifications]


def format_home(
    viewer: Roommate,
    *,
    roommates: Sequence[Roommate],
    chores: Sequence[Chore],
    kitchen_items: Sequence[KitchenItem],
    bills: Sequence[Bill],
    notifications: Sequence[Notification],
    currency: str,
    now: datetime,
) -> str:
    today = now.date()
    pending_chores = [chore for chore in chores if not chore.is_done]
    overdue = [chore for chore in pending_chores if is_overdue(chore.due_date, today)]
    label, value = describe_balance(calculate_balance(bills, viewer.id))

    lines = [f"👋 Welcome back, {escape(viewer.name)}!", "Managing your shared space, one task at a time."]
    if overdue:
        lines.append(f"⚠️ You have {plural(len(overdue), 'overdue task')}!")
    lines.extend(
        [
            "",
            f"👥 Roommates: {len(roommates)}",
            f"🧹 Chores: {len(pending_chores)}",
            f"🍳 Kitchen Items: {len(kitchen_items)}",
            f"💸 {label}: {format_currency(value, currency)}",
        ]
    )

    recent = list(notifications)[:5]
    lines.append("")
    lines.append("🔔 <b>Recent activity</b>")
    if recent:
        lines.extend(format_feed(recent, now))
    else:
        lines.append("No activity yet.")
    return "\n".join(lines)
