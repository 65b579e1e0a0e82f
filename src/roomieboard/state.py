"""Per-user conversation state: the bill wizard draft and armed comments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from roomieboard.db.models import CommentTarget
from roomieboard.services.bills import FULL_MODE, SPLIT_MODE

STEP_DESCRIPTION = "description"
STEP_AMOUNT = "amount"
STEP_DUE_DATE = "due_date"
STEP_MODE = "mode"
STEP_MEMBERS = "members"
STEP_DEBTOR = "debtor"


@dataclass(slots=True)
class BillDraft:
    step: str = STEP_DESCRIPTION
    description: str = ""
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    mode: str = SPLIT_MODE
    members: set[str] = field(default_factory=set)

    def toggle_member(self, roommate_id: str) -> None:
        if roommate_id in self.members:
            self.members.discard(roommate_id)
        else:
            self.members.add(roommate_id)

    def choose_mode(self, mode: str) -> None:
        if mode not in {SPLIT_MODE, FULL_MODE}:
            raise ValueError(f"Unknown split mode: {mode}")
        self.mode = mode
        self.members.clear()
        self.step = STEP_MEMBERS if mode == SPLIT_MODE else STEP_DEBTOR


class UserStateManager:
    def __init__(self) -> None:
        self._bill_drafts: dict[int, BillDraft] = {}
        self._pending_comment: dict[int, tuple[CommentTarget, str]] = {}

    def start_bill(self, user_id: int) -> BillDraft:
        self._pending_comment.pop(user_id, None)
        draft = BillDraft()
        self._bill_drafts[user_id] = draft
        return draft

    def get_bill_draft(self, user_id: int) -> Optional[BillDraft]:
        return self._bill_drafts.get(user_id)

    def clear_bill_draft(self, user_id: int) -> None:
        self._bill_drafts.pop(user_id, None)

    def set_pending_comment(self, user_id: int, target: CommentTarget, target_id: str) -> None:
        self._bill_drafts.pop(user_id, None)
        self._pending_comment[user_id] = (target, target_id)

    def pop_pending_comment(self, user_id: int) -> Optional[Tuple[CommentTarget, str]]:
        return self._pending_comment.pop(user_id, None)

    def clear_user(self, user_id: int) -> None:
        self._bill_drafts.pop(user_id, None)
        self._pending_comment.pop(user_id, None)
