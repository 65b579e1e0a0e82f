from __future__ import annotations

from typing import Protocol


class Repository(Protocol):
    async def fetchval(self, query: str, *args: object) -> object: ...


class AuthorizationError(PermissionError):
    pass


async def is_bill_participant(repo: Repository, roommate_id: str, bill_id: str) -> bool:
    found = await repo.fetchval(
        """
        SELECT 1
        FROM bills b
        LEFT JOIN bill_members m ON m.bill_id = b.id AND m.roommate_id = $2
        WHERE b.id = $1
          AND (b.paid_by = $2 OR b.full_owed_by = $2 OR m.roommate_id IS NOT NULL)
        LIMIT 1
        """,
        bill_id,
        roommate_id,
    )
    return found is not None


async def assert_bill_participant(repo: Repository, roommate_id: str, bill_id: str) -> None:
    if not await is_bill_participant(repo, roommate_id, bill_id):
        raise AuthorizationError("Only people on this bill can change it.")
