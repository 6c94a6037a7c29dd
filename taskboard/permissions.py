"""Board roles and the actions they grant.

A user's role on a board is derived, never stored for the owner: the board
creator is ``owner`` by virtue of ``Board.owner_id``; everyone else gets the
role on their membership row, or no role at all. Lists, cards and comments
inherit the role of their governing board (see :mod:`taskboard.resolver`).
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import Board, BoardMembership
from .errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    OWNER = "owner"
    MODERATOR = "moderator"
    VISITOR = "visitor"


# Roles a membership row may carry.
MEMBER_ROLES = frozenset({Role.MODERATOR, Role.VISITOR})


class Action(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE_MEMBERS = "manage_members"
    INVITE_MEMBERS = "invite_members"


GRANTS: dict[Role, frozenset[Action]] = {
    Role.OWNER: frozenset(Action),
    Role.MODERATOR: frozenset({Action.VIEW, Action.EDIT}),
    Role.VISITOR: frozenset({Action.VIEW}),
}


def role_allows(role: Optional[Role], action) -> bool:
    """Pure lookup in :data:`GRANTS`. Unknown actions and missing roles deny."""
    if role is None:
        return False
    try:
        action = Action(action)
    except (ValueError, TypeError):
        return False
    return action in GRANTS.get(role, frozenset())


def resolve_role(session: Session, user_id: str, board_id: str) -> Optional[Role]:
    board = session.get(Board, board_id)
    if board is None:
        raise NotFoundError(f"Board with ID {board_id} not found")
    if board.owner_id == user_id:
        return Role.OWNER
    membership = session.scalar(
        select(BoardMembership).where(
            BoardMembership.board_id == board_id,
            BoardMembership.user_id == user_id,
        )
    )
    return Role(membership.role) if membership else None


def check_permission(session: Session, user_id: str, board_id: str, action) -> bool:
    return role_allows(resolve_role(session, user_id, board_id), action)


def enforce(
    session: Session,
    action: Action,
    user_id: str,
    board_id: str,
    message: str = "You do not have permission to perform this action",
) -> Role:
    """Return the caller's role or raise :class:`ForbiddenError`.

    Every call re-reads the board and membership rows so a role change is
    visible on the very next request.
    """
    role = resolve_role(session, user_id, board_id)
    if not role_allows(role, action):
        logger.info("denied %s on board %s for user %s (role=%s)", action, board_id, user_id, role)
        raise ForbiddenError(message)
    logger.debug("granted %s on board %s for user %s (role=%s)", action, board_id, user_id, role.value)
    return role
