from types import SimpleNamespace

import pytest

from factories import make_roommates
from roomieboard.config import get_settings
from roomieboard.handlers.bills import cb_bill_mode, cb_bill_settle
from roomieboard.state import STEP_MODE, UserStateManager


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "123:test")
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/roomieboard")
    monkeypatch.setenv("TZ", "UTC")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeMessage:
    def __init__(self) -> None:
        self.edits: list[str] = []

    async def edit_text(self, text: str, **kwargs) -> None:
        self.edits.append(text)

    async def answer(self, text: str, **kwargs) -> None:
        self.edits.append(text)


class FakeCallback:
    def __init__(self, data: str) -> None:
        self.data = data
        self.from_user = SimpleNamespace(id=1, full_name="Alice", username="alice")
        self.message = FakeMessage()
        self.answers: list[tuple[str | None, bool]] = []

    async def answer(self, text: str | None = None, show_alert: bool = False) -> None:
        self.answers.append((text, show_alert))


class FakeDB:
    def __init__(self) -> None:
        self.queries: list[str] = []

    async def fetchval(self, query: str, *args: object) -> object:
        self.queries.append(query)
        return None


class FakeRepo:
    def __init__(self) -> None:
        self.db = FakeDB()
        self.roommates = make_roommates()[:2]
        self.toggled: list[str] = []

    async def ensure_roommate(self, tg_id, name, username, avatar):
        return self.roommates[0], False

    async def list_roommates(self):
        return list(self.roommates)

    async def get_bill(self, bill_id):
        return None

    async def toggle_bill_settled(self, bill_id):
        self.toggled.append(bill_id)
        return None


@pytest.mark.asyncio
async def test_settle_deleted_bill_says_it_is_gone():
    callback = FakeCallback("bill_settle:b1")
    repo = FakeRepo()

    await cb_bill_settle(callback, repo)

    assert callback.answers == [("This bill is gone.", True)]
    assert repo.db.queries == []
    assert repo.toggled == []


@pytest.mark.asyncio
async def test_unknown_split_mode_restarts_wizard():
    ui_state = UserStateManager()
    draft = ui_state.start_bill(1)
    draft.step = STEP_MODE
    callback = FakeCallback("bill_new:mode:percent")

    await cb_bill_mode(callback, FakeRepo(), ui_state)

    assert callback.answers == [("Start a new bill with /addbill", False)]
    assert draft.step == STEP_MODE
    assert callback.message.edits == []
