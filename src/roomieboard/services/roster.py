from __future__ import annotations

import secrets
from typing import Iterable, Optional

from roomieboard.db.models import Roommate

AVATAR_EMOJIS = [
    "🐱", "🐶", "🦊", "🐻", "🐼", "🐨", "🐯", "🦁", "🐸", "🐷",
    "🐵", "🦔", "🐰", "🐹", "🐭", "🐺", "🦝", "🦓", "🦄", "🐴",
]

DEFAULT_AVATAR = "👤"


def pick_avatar() -> str:
    return secrets.choice(AVATAR_EMOJIS)


def find_roommate(roommate_id: str, roommates: Iterable[Roommate]) -> Optional[Roommate]:
    for roommate in roommates:
        if roommate.id == roommate_id:
            return roommate
    return None


def _looks_like_uuid(value: str) -> bool:
    return len(value) == 36 and "-" in value


def roommate_name(roommate_id: str, roommates: Iterable[Roommate]) -> str:
    roommate = find_roommate(roommate_id, roommates)
    if roommate:
        return roommate.name
    # Ids carried over from an older board export may not be on the roster yet.
    if roommate_id and _looks_like_uuid(roommate_id):
        return "Roommate"
    return "Unknown"


def roommate_avatar(roommate_id: str, roommates: Iterable[Roommate]) -> str:
    roommate = find_roommate(roommate_id, roommates)
    if roommate and roommate.avatar:
        return roommate.avatar
    return DEFAULT_AVATAR


def names(roommate_ids: Iterable[str], roommates: list[Roommate]) -> str:
    return ", ".join(roommate_name(rid, roommates) for rid in roommate_ids)


def match_usernames(usernames: Iterable[str], roommates: Iterable[Roommate]) -> tuple[list[str], list[str]]:
    """Resolve ``@username`` mentions to roommate ids; returns ``(ids, unknown)``."""
    by_username = {r.username.lower(): r.id for r in roommates if r.username}
    found: list[str] = []
    missing: list[str] = []
    for username in usernames:
        roommate_id = by_username.get(username.lower())
        if roommate_id is None:
            missing.append(username)
        elif roommate_id not in found:
            found.append(roommate_id)
    return found, missing
