import pytest

from roomieboard.services.authz import AuthorizationError, assert_bill_participant, is_bill_participant


class StubRepo:
    def __init__(self, participants: dict[str, set[str]]) -> None:
        self.participants = participants

    async def fetchval(self, query: str, *args: object) -> object:
        bill_id, roommate_id = args
        return 1 if roommate_id in self.participants.get(bill_id, set()) else None


@pytest.mark.asyncio
async def test_is_bill_participant():
    repo = StubRepo({"b1": {"alice", "bob"}})
    assert await is_bill_participant(repo, "bob", "b1") is True
    assert await is_bill_participant(repo, "carol", "b1") is False
    assert await is_bill_participant(repo, "bob", "missing") is False


@pytest.mark.asyncio
async def test_assert_bill_participant():
    repo = StubRepo({"b1": {"alice", "bob"}})
    await assert_bill_participant(repo, "alice", "b1")


@pytest.mark.asyncio
async def test_assert_bill_participant_denied():
    repo = StubRepo({"b1": {"alice"}})
    with pytest.raises(AuthorizationError, match="Only people on this bill"):
        await assert_bill_participant(repo, "carol", "b1")


def test_authorization_error_is_permission_error():
    assert issubclass(AuthorizationError, PermissionError)
