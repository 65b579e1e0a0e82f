from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from roomieboard.config import get_settings
from roomieboard.db.repo import Database, RoomieBoardRepository
from roomieboard.handlers import backup_router, basic_router, bills_router, household_router, input_router
from roomieboard.logging import configure_logging, get_logger
from roomieboard.scheduler import setup_scheduler
from roomieboard.state import UserStateManager


def build_dispatcher(repo: RoomieBoardRepository) -> Dispatcher:
    dp = Dispatcher(repo=repo, ui_state=UserStateManager())
    dp.include_router(basic_router)
    dp.include_router(bills_router)
    dp.include_router(household_router)
    dp.include_router(backup_router)
    # free text goes last so commands and wizard buttons win
    dp.include_router(input_router)
    return dp


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    db = Database(settings.database_url)
    await db.connect()
    repo = RoomieBoardRepository(db)
    dp = build_dispatcher(repo)

    scheduler = await setup_scheduler(bot, repo)

    log = get_logger(__name__)
    log.info("bot.start", tz=settings.tz, currency=settings.currency)
    try:
        await dp.start_polling(bot)
    finally:
        scheduler.shutdown(wait=False)
        await db.close()
        await bot.session.close()
        log.info("bot.stop")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
