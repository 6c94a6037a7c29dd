import pytest

from taskboard.boards import BoardService
from taskboard.cards import CardService
from taskboard.db import Card
from taskboard.errors import BadRequestError, ForbiddenError, NotFoundError
from taskboard.lists import ListService


@pytest.fixture
def lists(session):
    return ListService(session)


def test_moderator_creates_lists_visitor_cannot(lists, team):
    created = lists.create_list(team.board.id, team.moderator.id, "Todo")
    assert (created.title, created.position, created.board_id) == ("Todo", 0, team.board.id)
    with pytest.raises(ForbiddenError):
        lists.create_list(team.board.id, team.visitor.id, "Nope")


@pytest.mark.parametrize("title", ["", "  "])
def test_create_list_rejects_blank_title(lists, team, title):
    with pytest.raises(BadRequestError):
        lists.create_list(team.board.id, team.owner.id, title)
    assert lists.get_lists(team.board.id, team.owner.id) == []


def test_create_list_on_missing_board(lists, team):
    with pytest.raises(NotFoundError):
        lists.create_list("missing", team.owner.id, "Todo")


def test_get_lists_ascending(lists, team):
    lists.create_list(team.board.id, team.owner.id, "Done", position=2)
    lists.create_list(team.board.id, team.owner.id, "Todo", position=0)
    lists.create_list(team.board.id, team.owner.id, "Doing", position=1)
    titles = [l.title for l in lists.get_lists(team.board.id, team.visitor.id)]
    assert titles == ["Todo", "Doing", "Done"]
    with pytest.raises(ForbiddenError):
        lists.get_lists(team.board.id, team.outsider.id)


def test_get_list_loads_cards_and_assignees(session, lists, team, notifier):
    todo = lists.create_list(team.board.id, team.owner.id, "Todo")
    cards = CardService(session, notifier)
    second = cards.create_card(todo.id, team.owner.id, "second", position=1)
    first = cards.create_card(todo.id, team.owner.id, "first", position=0)
    cards.assign_user(second.id, team.moderator.id, team.owner.id)

    board_list, loaded = lists.get_list(todo.id, team.visitor.id)
    assert board_list.id == todo.id
    assert [c.id for c in loaded] == [first.id, second.id]
    assert [u.username for u in loaded[1].assigned_users] == ["bob"]


def test_update_list_partial(lists, team):
    todo = lists.create_list(team.board.id, team.owner.id, "Todo")
    updated = lists.update_list(todo.id, team.moderator.id, {"position": 5})
    assert (updated.title, updated.position) == ("Todo", 5)
    updated = lists.update_list(todo.id, team.moderator.id, {"title": "Backlog"})
    assert (updated.title, updated.position) == ("Backlog", 5)


def test_update_list_validation_and_permissions(lists, team):
    todo = lists.create_list(team.board.id, team.owner.id, "Todo")
    with pytest.raises(BadRequestError):
        lists.update_list(todo.id, team.owner.id, {"position": -3})
    with pytest.raises(BadRequestError):
        lists.update_list(todo.id, team.owner.id, {"title": ""})
    with pytest.raises(ForbiddenError):
        lists.update_list(todo.id, team.visitor.id, {"title": "x"})
    with pytest.raises(NotFoundError):
        lists.update_list("missing", team.owner.id, {"title": "x"})


def test_delete_list_cascades_cards(session, lists, team, notifier):
    todo = lists.create_list(team.board.id, team.owner.id, "Todo")
    CardService(session, notifier).create_card(todo.id, team.owner.id, "card")
    with pytest.raises(ForbiddenError):
        lists.delete_list(todo.id, team.visitor.id)
    lists.delete_list(todo.id, team.moderator.id)
    assert session.query(Card).count() == 0
    with pytest.raises(NotFoundError):
        lists.get_list(todo.id, team.owner.id)


def test_board_deletion_removes_lists(session, lists, team, notifier):
    todo = lists.create_list(team.board.id, team.owner.id, "Todo")
    BoardService(session, notifier).delete_board(team.board.id, team.owner.id)
    with pytest.raises(NotFoundError):
        lists.get_list(todo.id, team.owner.id)
