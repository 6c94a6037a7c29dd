from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session, selectinload

from . import ordering
from .db import BoardList, Card
from .errors import NotFoundError
from .permissions import Action, enforce
from .resolver import ResourceRef, resolve_board_id
from .utils import require_title

logger = logging.getLogger(__name__)


class ListService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create_list(self, board_id: str, user_id: str, title: str, position: Optional[int] = None) -> BoardList:
        enforce(self.session, Action.EDIT, user_id, board_id)
        board_list = BoardList(
            board_id=board_id,
            title=require_title(title),
            position=ordering.place(self.session, BoardList, board_id, position),
        )
        self.session.add(board_list)
        self.session.commit()
        return board_list

    def get_lists(self, board_id: str, user_id: str) -> list[BoardList]:
        enforce(self.session, Action.VIEW, user_id, board_id)
        return ordering.siblings(self.session, BoardList, board_id)

    def get_list(self, list_id: str, user_id: str) -> tuple[BoardList, list[Card]]:
        """The list plus its cards, ascending by position, assignees loaded."""
        board_id = resolve_board_id(self.session, ResourceRef(list_id=list_id))
        enforce(self.session, Action.VIEW, user_id, board_id)
        cards = ordering.siblings(self.session, Card, list_id, selectinload(Card.assigned_users))
        return self._list(list_id), cards

    def update_list(self, list_id: str, user_id: str, changes: Mapping[str, Any]) -> BoardList:
        board_id = resolve_board_id(self.session, ResourceRef(list_id=list_id))
        enforce(self.session, Action.EDIT, user_id, board_id)
        board_list = self._list(list_id)
        title = require_title(changes.get("title", board_list.title))
        position = changes.get("position")
        if position is not None:
            position = ordering.check_position(position)

        board_list.title = title
        if position is not None:
            board_list.position = position
        self.session.commit()
        return board_list

    def delete_list(self, list_id: str, user_id: str) -> None:
        board_id = resolve_board_id(self.session, ResourceRef(list_id=list_id))
        enforce(self.session, Action.EDIT, user_id, board_id)
        self.session.delete(self._list(list_id))
        self.session.commit()
        logger.info("user %s deleted list %s from board %s", user_id, list_id, board_id)

    def _list(self, list_id: str) -> BoardList:
        board_list = self.session.get(BoardList, list_id)
        if board_list is None:
            raise NotFoundError(f"List with ID {list_id} not found")
        return board_list
