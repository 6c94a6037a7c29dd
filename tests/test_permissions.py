import pytest

from taskboard.boards import BoardService
from taskboard.errors import ForbiddenError, NotFoundError
from taskboard.permissions import Action, Role, check_permission, enforce, resolve_role, role_allows

EXPECTED = {
    Role.OWNER: {"view", "edit", "delete", "manage_members", "invite_members"},
    Role.MODERATOR: {"view", "edit"},
    Role.VISITOR: {"view"},
    None: set(),
}


@pytest.mark.parametrize("role", list(EXPECTED))
@pytest.mark.parametrize("action", [a.value for a in Action])
def test_role_allows_matches_table(role, action):
    assert role_allows(role, action) is (action in EXPECTED[role])


@pytest.mark.parametrize("action", ["archive", "", None, 42, ["view"]])
def test_unknown_action_fails_closed(action):
    assert role_allows(Role.OWNER, action) is False


def test_resolve_role(session, team):
    board_id = team.board.id
    assert resolve_role(session, team.owner.id, board_id) is Role.OWNER
    assert resolve_role(session, team.moderator.id, board_id) is Role.MODERATOR
    assert resolve_role(session, team.visitor.id, board_id) is Role.VISITOR
    assert resolve_role(session, team.outsider.id, board_id) is None


def test_resolve_role_missing_board(session, make_user):
    user = make_user("alice")
    with pytest.raises(NotFoundError):
        resolve_role(session, user.id, "no-such-board")


def test_check_permission(session, team):
    board_id = team.board.id
    assert check_permission(session, team.moderator.id, board_id, Action.EDIT)
    assert not check_permission(session, team.moderator.id, board_id, Action.DELETE)
    assert not check_permission(session, team.visitor.id, board_id, "edit")
    assert not check_permission(session, team.outsider.id, board_id, "view")
    assert not check_permission(session, team.owner.id, board_id, "transfer")


def test_enforce_returns_role_or_raises(session, team):
    assert enforce(session, Action.VIEW, team.visitor.id, team.board.id) is Role.VISITOR
    with pytest.raises(ForbiddenError):
        enforce(session, Action.EDIT, team.visitor.id, team.board.id)


def test_role_change_applies_on_next_check(session, team, notifier):
    board_id = team.board.id
    assert not check_permission(session, team.visitor.id, board_id, Action.EDIT)
    BoardService(session, notifier).update_member_role(board_id, team.visitor.id, "moderator", team.owner.id)
    assert check_permission(session, team.visitor.id, board_id, Action.EDIT)
