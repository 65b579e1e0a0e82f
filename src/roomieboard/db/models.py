from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class NotificationKind(str, Enum):
    CHORE = "chore"
    KITCHEN = "kitchen"
    BILL = "bill"
    NOISE = "noise"
    ROOMMATE = "roommate"


class CommentTarget(str, Enum):
    BILL = "bill"
    CHORE = "chore"
    KITCHEN = "kitchen"
    NOISE = "noise"


@dataclass(slots=True)
class Roommate:
    id: str
    tg_id: int
    name: str
    username: Optional[str]
    avatar: str
    joined_at: datetime


@dataclass(slots=True)
class Comment:
    id: str
    author_id: str
    text: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class SplitEvenly:
    """Total is divided equally among ``members``, the payer included."""

    members: frozenset[str]


@dataclass(frozen=True, slots=True)
class FullyOwedBy:
    """A single roommate owes the whole amount to the payer."""

    debtor: str


SplitMode = Union[SplitEvenly, FullyOwedBy]


@dataclass(slots=True)
class Bill:
    id: str
    description: str
    total_amount: Decimal
    paid_by: str
    split: SplitMode
    created_at: datetime
    due_date: Optional[date] = None
    is_settled: bool = False
    comments: list[Comment] = field(default_factory=list)

    def __post_init__(self) -> None:
        if isinstance(self.split, SplitEvenly) and self.paid_by not in self.split.members:
            raise ValueError("split bills must include the payer")

    @property
    def split_between(self) -> Optional[frozenset[str]]:
        if isinstance(self.split, SplitEvenly):
            return self.split.members
        return None

    @property
    def full_owed_by(self) -> Optional[str]:
        if isinstance(self.split, FullyOwedBy):
            return self.split.debtor
        return None

    def involves(self, roommate_id: str) -> bool:
        if roommate_id == self.paid_by:
            return True
        if isinstance(self.split, FullyOwedBy):
            return self.split.debtor == roommate_id
        return roommate_id in self.split.members


@dataclass(slots=True)
class Chore:
    id: str
    description: str
    due_date: date
    assigned_to: list[str]
    created_at: datetime
    is_done: bool = False
    completed_at: Optional[datetime] = None
    comments: list[Comment] = field(default_factory=list)


@dataclass(slots=True)
class KitchenItem:
    id: str
    name: str
    assigned_to: list[str]
    created_at: datetime
    quantity: Optional[str] = None
    created_by: Optional[str] = None
    comments: list[Comment] = field(default_factory=list)


@dataclass(slots=True)
class NoiseNote:
    id: str
    description: str
    noted_on: date
    created_at: datetime
    created_by: Optional[str] = None
    comments: list[Comment] = field(default_factory=list)


@dataclass(slots=True)
class Notification:
    id: str
    message: str
    kind: NotificationKind
    created_at: datetime
    read: bool = False
