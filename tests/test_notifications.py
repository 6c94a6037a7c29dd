from datetime import datetime, timedelta, timezone

import pytest

from taskboard.boards import BoardService
from taskboard.db import Notification
from taskboard.errors import ForbiddenError, NotFoundError
from taskboard.notifications import NotificationService, NotificationType


@pytest.fixture
def service(session):
    return NotificationService(session)


@pytest.fixture
def users(make_user):
    return make_user("alice"), make_user("bob")


def test_notify_stores_unread(service, users):
    alice, _ = users
    note = service.notify(alice.id, NotificationType.ROLE_CHANGE, "promoted", board_id="b1")
    assert (note.type, note.is_read, note.related_board_id, note.related_card_id) == (
        "role_change",
        False,
        "b1",
        None,
    )


def test_notify_rejects_unknown_type(service, users):
    with pytest.raises(ValueError):
        service.notify(users[0].id, "mention", "hi")


def test_list_newest_first_and_paged(session, service, users):
    alice, bob = users
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(5):
        note = service.notify(alice.id, NotificationType.CARD_ASSIGNMENT, f"n{i}")
        note.created_at = base + timedelta(minutes=i)
    service.notify(bob.id, NotificationType.CARD_ASSIGNMENT, "not alice's")
    session.commit()

    first, total = service.list_for_user(alice.id, page=1, limit=2)
    assert total == 5
    assert [n.message for n in first] == ["n4", "n3"]
    last, _ = service.list_for_user(alice.id, page=3, limit=2)
    assert [n.message for n in last] == ["n0"]


def test_unread_count_and_mark_read(service, users):
    alice, bob = users
    first = service.notify(alice.id, NotificationType.BOARD_INVITATION, "a")
    service.notify(alice.id, NotificationType.BOARD_INVITATION, "b")
    assert service.unread_count(alice.id) == 2
    assert service.mark_read(first.id, alice.id).is_read is True
    assert service.unread_count(alice.id) == 1
    assert service.unread_count(bob.id) == 0


def test_mark_read_checks_owner(service, users):
    alice, bob = users
    note = service.notify(alice.id, NotificationType.BOARD_INVITATION, "a")
    with pytest.raises(ForbiddenError):
        service.mark_read(note.id, bob.id)
    with pytest.raises(NotFoundError):
        service.mark_read("missing", alice.id)


def test_mark_all_read_only_touches_caller(service, users):
    alice, bob = users
    service.notify(alice.id, NotificationType.BOARD_INVITATION, "a")
    service.notify(alice.id, NotificationType.ROLE_CHANGE, "b")
    service.notify(bob.id, NotificationType.ROLE_CHANGE, "c")
    service.mark_all_read(alice.id)
    assert service.unread_count(alice.id) == 0
    assert service.unread_count(bob.id) == 1


def test_delete(session, service, users):
    alice, bob = users
    note = service.notify(alice.id, NotificationType.BOARD_INVITATION, "a")
    with pytest.raises(ForbiddenError):
        service.delete(note.id, bob.id)
    service.delete(note.id, alice.id)
    assert session.get(Notification, note.id) is None


def test_board_service_defaults_to_stored_notifications(session, make_user):
    owner, guest = make_user("owner"), make_user("guest")
    boards = BoardService(session)
    board = boards.create_board(owner.id, "Roadmap")
    boards.invite_member(board.id, "guest", "visitor", owner.id)
    [note], total = NotificationService(session).list_for_user(guest.id)
    assert total == 1
    assert note.type == "board_invitation"
    assert note.related_board_id == board.id
    assert "Roadmap" in note.message
