"""Wording of the activity feed entries."""

from __future__ import annotations

from roomieboard.db.models import Bill, Chore, KitchenItem, NoiseNote, Roommate
from roomieboard.services.cards import format_currency
from roomieboard.services.roster import names, roommate_name


def bill_added(bill: Bill, roommates: list[Roommate], currency: str) -> str:
    payer = roommate_name(bill.paid_by, roommates)
    amount = format_currency(bill.total_amount, currency)
    if bill.split_between is not None:
        return f"{payer} added bill: {bill.description} - {amount} split among {len(bill.split_between)} people"
    owed_by = roommate_name(bill.full_owed_by or "", roommates)
    return f"{payer} added bill: {bill.description} - {amount} owed by {owed_by}"


def bill_settled(bill: Bill, roommates: list[Roommate]) -> str:
    verb = "settled" if bill.is_settled else "reopened"
    return f"{roommate_name(bill.paid_by, roommates)} {verb} bill: {bill.description}"


def bill_deleted(bill: Bill, roommates: list[Roommate]) -> str:
    return f"{roommate_name(bill.paid_by, roommates)} deleted bill: {bill.description}"


def commented(author_id: str, subject: str, label: str, roommates: list[Roommate]) -> str:
    return f"{roommate_name(author_id, roommates)} commented on {subject}: {label}"


def chore_added(chore: Chore, roommates: list[Roommate]) -> str:
    return f"New chore assigned to {names(chore.assigned_to, roommates)}: {chore.description}"


def chore_toggled(chore: Chore, roommates: list[Roommate]) -> str:
    verb = "completed" if chore.is_done else "reopened"
    return f"{names(chore.assigned_to, roommates)} {verb} chore: {chore.description}"


def kitchen_added(item: KitchenItem, author: Roommate, roommates: list[Roommate]) -> str:
    return f"{author.name} added kitchen item: {item.name} (assigned to {names(item.assigned_to, roommates)})"


def kitchen_removed(item: KitchenItem, roommates: list[Roommate]) -> str:
    creator = roommate_name(item.created_by, roommates) if item.created_by else "Someone"
    return f"{creator} removed kitchen item: {item.name}"


def noise_added(note: NoiseNote, author: Roommate) -> str:
    return f"{author.name} added a Noise note: {note.description}"


def noise_deleted(note: NoiseNote, roommates: list[Roommate]) -> str:
    creator = roommate_name(note.created_by, roommates) if note.created_by else "Someone"
    return f"{creator} deleted a noise note"


def noise_label(note: NoiseNote) -> str:
    return f"{note.description[:50]}..."


def roommate_joined(roommate: Roommate) -> str:
    return f"{roommate.name} joined the board"
