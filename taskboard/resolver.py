from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import BoardList, Card
from .errors import NotFoundError


@dataclass(frozen=True)
class ResourceRef:
    """Identifiers a request names; the first one present wins."""

    board_id: Optional[str] = None
    list_id: Optional[str] = None
    card_id: Optional[str] = None


class BoardLocator(Protocol):
    def governing_board(self, session: Session, resource_id: str) -> str: ...


class BoardIdLocator:
    def governing_board(self, session: Session, resource_id: str) -> str:
        return resource_id


class ListLocator:
    def governing_board(self, session: Session, resource_id: str) -> str:
        board_id = session.scalar(select(BoardList.board_id).where(BoardList.id == resource_id))
        if board_id is None:
            raise NotFoundError(f"List with ID {resource_id} not found")
        return board_id


class CardLocator:
    def governing_board(self, session: Session, resource_id: str) -> str:
        board_id = session.scalar(
            select(BoardList.board_id)
            .join(Card, Card.list_id == BoardList.id)
            .where(Card.id == resource_id)
        )
        if board_id is None:
            raise NotFoundError(f"Card with ID {resource_id} not found")
        return board_id


LOCATORS: tuple[tuple[str, BoardLocator], ...] = (
    ("board_id", BoardIdLocator()),
    ("list_id", ListLocator()),
    ("card_id", CardLocator()),
)


def resolve_board_id(session: Session, ref: ResourceRef) -> str:
    for field, locator in LOCATORS:
        resource_id = getattr(ref, field)
        if resource_id:
            return locator.governing_board(session, resource_id)
    raise NotFoundError("Resource not found")
