"""Shared fixtures: in-memory database, API client and user helpers."""

import os
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# read once by get_settings(); the cheapest cost bcrypt accepts
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from taskboard.boards import BoardService
from taskboard.db import Base, get_session
from taskboard.main import app
from taskboard.users import UserService


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, user_id, type, message, board_id=None, card_id=None):
        self.sent.append(
            {"user_id": user_id, "type": type, "message": message, "board_id": board_id, "card_id": card_id}
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def client(session):
    def override():
        yield session

    app.dependency_overrides[get_session] = override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_user(session):
    def _make(username):
        return UserService(session).create_user(username, f"{username}@example.com", "password123")

    return _make


@pytest.fixture
def auth():
    def _auth(user):
        user_id = user if isinstance(user, str) else user.id
        return {"Authorization": f"Bearer {user_id}"}

    return _auth


@pytest.fixture
def team(session, make_user, notifier):
    """A board owned by alice with bob as moderator, carol as visitor and
    dave as an outsider."""
    owner = make_user("alice")
    moderator = make_user("bob")
    visitor = make_user("carol")
    outsider = make_user("dave")
    boards = BoardService(session, notifier)
    board = boards.create_board(owner.id, "Sprint")
    boards.invite_member(board.id, "bob", "moderator", owner.id)
    boards.invite_member(board.id, "carol", "visitor", owner.id)
    notifier.sent.clear()
    return SimpleNamespace(
        owner=owner,
        moderator=moderator,
        visitor=visitor,
        outsider=outsider,
        board=board,
    )
