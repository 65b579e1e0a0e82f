from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from html import escape

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from roomieboard.config import get_settings
from roomieboard.db.models import Bill, Chore, Roommate
from roomieboard.db.repo import RoomieBoardRepository
from roomieboard.handlers.common import board_now
from roomieboard.logging import get_logger
from roomieboard.services.cards import format_currency, format_date, is_overdue
from roomieboard.services.ledger import calculate_bill_amount


async def setup_scheduler(bot: Bot, repo: RoomieBoardRepository) -> AsyncIOScheduler:
    settings = get_settings()

    scheduler = AsyncIOScheduler(timezone=settings.tz)
    scheduler.add_job(
        _reminder_job,
        CronTrigger(hour=settings.reminder_hour, minute=0),
        kwargs={"bot": bot, "repo": repo},
    )
    scheduler.add_job(
        _purge_job,
        IntervalTrigger(minutes=1),
        kwargs={"repo": repo},
    )
    scheduler.start()
    return scheduler


def collect_reminders(
    chores: list[Chore],
    bills: list[Bill],
    roommates: list[Roommate],
    today: date,
    currency: str,
) -> dict[int, list[str]]:
    """Overdue lines per Telegram chat: assignees for chores, debtors for unsettled bills."""
    by_id = {r.id: r for r in roommates}
    lines: dict[int, list[str]] = defaultdict(list)

    for chore in chores:
        if chore.is_done or not is_overdue(chore.due_date, today):
            continue
        for roommate_id in chore.assigned_to:
            if roommate_id in by_id:
                lines[by_id[roommate_id].tg_id].append(
                    f"🧹 {escape(chore.description)} (due {format_date(chore.due_date)})"
                )

    for bill in bills:
        if bill.is_settled or bill.due_date is None or not is_overdue(bill.due_date, today):
            continue
        for roommate_id, roommate in by_id.items():
            amount = calculate_bill_amount(bill, roommate_id)
            if amount > 0:
                lines[roommate.tg_id].append(
                    f"💸 {escape(bill.description)}: you owe {format_currency(amount, currency)} "
                    f"(due {format_date(bill.due_date)})"
                )

    return dict(lines)


async def _reminder_job(bot: Bot, repo: RoomieBoardRepository) -> None:
    log = get_logger(__name__)
    settings = get_settings()
    reminders = collect_reminders(
        await repo.list_chores(),
        await repo.list_bills(include_settled=False),
        await repo.list_roommates(),
        board_now().date(),
        settings.currency,
    )
    for tg_id, lines in reminders.items():
        log.info("reminder.send", tg_id=tg_id, items=len(lines))
        try:
            await bot.send_message(tg_id, "⏰ <b>Overdue on the board</b>\n\n" + "\n".join(lines))
        except TelegramAPIError as exc:
            log.warning("reminder.failed", tg_id=tg_id, error=str(exc))


async def _purge_job(repo: RoomieBoardRepository) -> None:
    settings = get_settings()
    purged = await repo.purge_completed_chores(
        board_now(), timedelta(minutes=settings.chore_purge_after_minutes)
    )
    if purged:
        get_logger(__name__).info("chores.purged", count=len(purged))
