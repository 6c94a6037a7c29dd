"""Integer positions for lists within a board and cards within a list.

Positions are zero-based. Appends take ``max + 1`` in the scope, so a scope
filled only by appends stays dense (0..n-1). Explicit positions are stored as
given; siblings are not renumbered around them, and two rows may share a
position after concurrent moves. Reads therefore break ties on
``created_at`` and ``id``.
"""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .db import Board, BoardList, Card
from .errors import BadRequestError

# ordered model -> (scope column, parent model)
SCOPES: dict[type, tuple[Any, type]] = {
    BoardList: (BoardList.board_id, Board),
    Card: (Card.list_id, BoardList),
}


def _scope(model: type) -> tuple[Any, type]:
    try:
        return SCOPES[model]
    except KeyError:
        raise TypeError(f"{model.__name__} has no position scope") from None


def check_position(position: Any) -> int:
    if isinstance(position, bool) or not isinstance(position, int) or position < 0:
        raise BadRequestError("position must be a non-negative integer", {"position": position})
    return position


def lock_scope(session: Session, model: type, scope_id: str) -> None:
    """Take a row lock on the parent so concurrent appends queue up.

    SQLite has no ``FOR UPDATE``; there the statement is a plain read.
    """
    _, parent = _scope(model)
    session.execute(select(parent.id).where(parent.id == scope_id).with_for_update())


def next_position(session: Session, model: type, scope_id: str) -> int:
    column, _ = _scope(model)
    current = session.scalar(select(func.max(model.position)).where(column == scope_id))
    return (current if current is not None else -1) + 1


def place(session: Session, model: type, scope_id: str, position: Optional[int] = None) -> int:
    """Position for a row entering ``scope_id``: the caller's, else an append."""
    if position is not None:
        return check_position(position)
    lock_scope(session, model, scope_id)
    return next_position(session, model, scope_id)


def siblings(session: Session, model: type, scope_id: str, *options) -> list:
    column, _ = _scope(model)
    stmt = (
        select(model)
        .where(column == scope_id)
        .order_by(model.position, model.created_at, model.id)
    )
    if options:
        stmt = stmt.options(*options)
    return list(session.scalars(stmt))
