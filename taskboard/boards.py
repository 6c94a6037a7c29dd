from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .db import Board, BoardMembership
from .errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from .notifications import NotificationService, NotificationType, Notifier
from .permissions import MEMBER_ROLES, Action, Role, enforce, resolve_role
from .users import UserService
from .utils import require_title

logger = logging.getLogger(__name__)

BOARD_FIELDS = ("title", "description")


def member_role(value: Any) -> Role:
    try:
        role = Role(value)
    except ValueError:
        raise BadRequestError(f"Invalid role: {value!r}", {"role": value}) from None
    if role not in MEMBER_ROLES:
        raise BadRequestError("Role must be moderator or visitor", {"role": value})
    return role


def member_count(board: Board) -> int:
    """Membership rows plus the owner, who never has a row."""
    return len(board.memberships) + 1


class BoardService:
    def __init__(self, session: Session, notifier: Optional[Notifier] = None) -> None:
        self.session = session
        self.notifier = notifier or NotificationService(session)

    # === Boards ===
    def create_board(self, owner_id: str, title: str, description: Optional[str] = None) -> Board:
        board = Board(
            title=require_title(title),
            description=description.strip() if description else None,
            owner_id=owner_id,
        )
        self.session.add(board)
        self.session.commit()
        logger.info("user %s created board %s", owner_id, board.id)
        return board

    def list_boards_for_user(self, user_id: str) -> list[tuple[Board, Role]]:
        """Owned boards (newest first) followed by boards shared with the user."""
        owned = self.session.scalars(
            select(Board)
            .where(Board.owner_id == user_id)
            .options(selectinload(Board.memberships))
            .order_by(Board.created_at.desc())
        )
        shared = self.session.execute(
            select(Board, BoardMembership.role)
            .join(BoardMembership, BoardMembership.board_id == Board.id)
            .where(BoardMembership.user_id == user_id, Board.owner_id != user_id)
            .options(selectinload(Board.memberships))
            .order_by(Board.updated_at.desc())
        )
        result = [(board, Role.OWNER) for board in owned]
        result.extend((board, Role(role)) for board, role in shared)
        return result

    def get_board(self, board_id: str, user_id: str) -> tuple[Board, Role]:
        role = enforce(self.session, Action.VIEW, user_id, board_id, "You do not have access to this board")
        return self._board(board_id), role

    def update_board(self, board_id: str, user_id: str, changes: Mapping[str, Any]) -> Board:
        board = self._board(board_id)
        if board.owner_id != user_id:
            raise ForbiddenError("You do not have permission to update this board")
        values: dict[str, Any] = {}
        for field in BOARD_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field == "title":
                value = require_title(value)
            elif value is not None:
                value = value.strip() or None
            values[field] = value
        for field, value in values.items():
            setattr(board, field, value)
        self.session.commit()
        return board

    def delete_board(self, board_id: str, user_id: str) -> None:
        enforce(self.session, Action.DELETE, user_id, board_id, "You do not have permission to delete this board")
        board = self._board(board_id)
        self.session.delete(board)
        self.session.commit()
        logger.info("user %s deleted board %s", user_id, board_id)

    # === Members ===
    def invite_member(self, board_id: str, username: str, role: Any, inviter_id: str) -> BoardMembership:
        enforce(self.session, Action.INVITE_MEMBERS, inviter_id, board_id, "Only the board owner can invite members")
        role = member_role(role)
        user = UserService(self.session).find_by_username(username)
        if user is None:
            raise NotFoundError(f"User with username {username} not found")
        if resolve_role(self.session, user.id, board_id) is not None:
            raise ConflictError("User is already a member of this board")
        membership = BoardMembership(board_id=board_id, user_id=user.id, role=role.value)
        self.session.add(membership)
        self.session.commit()
        board = self._board(board_id)
        logger.info("user %s invited %s to board %s as %s", inviter_id, user.id, board_id, role.value)
        self.notifier.notify(
            user.id,
            NotificationType.BOARD_INVITATION,
            f'You have been invited to board "{board.title}" as {role.value}',
            board_id=board_id,
        )
        return membership

    def get_members(self, board_id: str, user_id: str) -> list[BoardMembership]:
        enforce(self.session, Action.VIEW, user_id, board_id, "You do not have access to this board")
        return list(
            self.session.scalars(
                select(BoardMembership)
                .where(BoardMembership.board_id == board_id)
                .options(selectinload(BoardMembership.user))
                .order_by(BoardMembership.created_at, BoardMembership.id)
            )
        )

    def update_member_role(self, board_id: str, member_user_id: str, role: Any, requester_id: str) -> BoardMembership:
        board = self._board(board_id)
        if member_user_id == board.owner_id:
            raise BadRequestError("The board owner's role cannot be changed")
        enforce(self.session, Action.MANAGE_MEMBERS, requester_id, board_id, "Only the board owner can change roles")
        role = member_role(role)
        membership = self._membership(board_id, member_user_id)
        previous = membership.role
        membership.role = role.value
        self.session.commit()
        logger.info("board %s: user %s role %s -> %s", board_id, member_user_id, previous, role.value)
        if previous != role.value:
            self.notifier.notify(
                member_user_id,
                NotificationType.ROLE_CHANGE,
                f'Your role on board "{board.title}" is now {role.value}',
                board_id=board_id,
            )
        return membership

    def remove_member(self, board_id: str, member_user_id: str, requester_id: str) -> None:
        board = self._board(board_id)
        # before the permission check: nobody, the owner included, may do this
        if member_user_id == board.owner_id:
            raise BadRequestError("Cannot remove the board owner from members")
        enforce(self.session, Action.MANAGE_MEMBERS, requester_id, board_id, "Only the board owner can remove members")
        membership = self._membership(board_id, member_user_id)
        self.session.delete(membership)
        self.session.commit()
        logger.info("user %s removed %s from board %s", requester_id, member_user_id, board_id)

    # === Helpers ===
    def _board(self, board_id: str) -> Board:
        board = self.session.get(Board, board_id)
        if board is None:
            raise NotFoundError(f"Board with ID {board_id} not found")
        return board

    def _membership(self, board_id: str, user_id: str) -> BoardMembership:
        membership = self.session.scalar(
            select(BoardMembership).where(
                BoardMembership.board_id == board_id,
                BoardMembership.user_id == user_id,
            )
        )
        if membership is None:
            raise NotFoundError("Board member not found")
        return membership
