import pytest

from roomieboard.db.models import CommentTarget
from roomieboard.services.bills import FULL_MODE, SPLIT_MODE
from roomieboard.state import STEP_DEBTOR, STEP_DESCRIPTION, STEP_MEMBERS, UserStateManager


def test_bill_draft_lifecycle():
    manager = UserStateManager()
    draft = manager.start_bill(1)
    assert draft.step == STEP_DESCRIPTION
    assert manager.get_bill_draft(1) is draft
    assert manager.get_bill_draft(2) is None

    manager.clear_bill_draft(1)
    assert manager.get_bill_draft(1) is None


def test_choose_mode_moves_to_the_right_step():
    draft = UserStateManager().start_bill(1)
    draft.toggle_member("bob")
    draft.choose_mode(FULL_MODE)
    assert draft.step == STEP_DEBTOR
    assert draft.members == set()

    draft.choose_mode(SPLIT_MODE)
    assert draft.step == STEP_MEMBERS

    with pytest.raises(ValueError):
        draft.choose_mode("percent")


def test_toggle_member():
    draft = UserStateManager().start_bill(1)
    draft.toggle_member("bob")
    draft.toggle_member("carol")
    draft.toggle_member("bob")
    assert draft.members == {"carol"}


def test_pending_comment_replaces_draft():
    manager = UserStateManager()
    manager.start_bill(1)
    manager.set_pending_comment(1, CommentTarget.CHORE, "c1")
    assert manager.get_bill_draft(1) is None
    assert manager.pop_pending_comment(1) == (CommentTarget.CHORE, "c1")
    assert manager.pop_pending_comment(1) is None


def test_starting_a_bill_drops_pending_comment():
    manager = UserStateManager()
    manager.set_pending_comment(1, CommentTarget.BILL, "b1")
    manager.start_bill(1)
    assert manager.pop_pending_comment(1) is None


def test_clear_user():
    manager = UserStateManager()
    manager.start_bill(1)
    manager.set_pending_comment(2, CommentTarget.NOISE, "n1")
    manager.clear_user(1)
    manager.clear_user(2)
    assert manager.get_bill_draft(1) is None
    assert manager.pop_pending_comment(2) is None
