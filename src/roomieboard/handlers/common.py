from __future__ import annotations

from datetime import datetime

from aiogram.types import User

from roomieboard.config import get_settings
from roomieboard.db.models import NotificationKind, Roommate
from roomieboard.db.repo import RoomieBoardRepository
from roomieboard.logging import get_logger
from roomieboard.services import feed
from roomieboard.services.roster import pick_avatar

log = get_logger(__name__)


def board_now() -> datetime:
    return datetime.now(get_settings().zoneinfo)


def display_name(user: User) -> str:
    return user.full_name or user.username or str(user.id)


async def resolve_roommate(repo: RoomieBoardRepository, user: User) -> Roommate:
    """Every Telegram user who talks to the bot is on the roster."""
    roommate, created = await repo.ensure_roommate(user.id, display_name(user), user.username, pick_avatar())
    if created:
        log.info("roommate.joined", roommate_id=roommate.id, tg_id=user.id)
        await repo.add_notification(NotificationKind.ROOMMATE, feed.roommate_joined(roommate), board_now())
    return roommate


async def record(repo: RoomieBoardRepository, kind: NotificationKind, message: str) -> None:
    await repo.add_notification(kind, message, board_now())
