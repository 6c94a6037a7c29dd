import pytest

from taskboard.cards import CardService
from taskboard.errors import NotFoundError
from taskboard.lists import ListService
from taskboard.resolver import ResourceRef, resolve_board_id


@pytest.fixture
def card(session, team, notifier):
    board_list = ListService(session).create_list(team.board.id, team.owner.id, "Todo")
    return CardService(session, notifier).create_card(board_list.id, team.owner.id, "Fix bug")


def test_board_id_is_used_directly(session):
    assert resolve_board_id(session, ResourceRef(board_id="b-1", list_id="ignored")) == "b-1"


def test_list_id_walks_to_board(session, team, card):
    assert resolve_board_id(session, ResourceRef(list_id=card.list_id)) == team.board.id


def test_card_id_walks_through_list(session, team, card):
    assert resolve_board_id(session, ResourceRef(card_id=card.id)) == team.board.id


def test_list_takes_precedence_over_card(session, team, card):
    ref = ResourceRef(list_id=card.list_id, card_id="whatever")
    assert resolve_board_id(session, ref) == team.board.id


@pytest.mark.parametrize(
    "ref",
    [ResourceRef(), ResourceRef(list_id="missing"), ResourceRef(card_id="missing")],
)
def test_unresolvable_chain_is_not_found(session, ref):
    with pytest.raises(NotFoundError):
        resolve_board_id(session, ref)
