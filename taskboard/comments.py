from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .db import Comment
from .errors import BadRequestError, ForbiddenError, NotFoundError
from .permissions import Action, check_permission, enforce
from .resolver import ResourceRef, resolve_board_id
from .utils import as_utc

logger = logging.getLogger(__name__)

# absorbs the gap between the two column defaults on insert
EDIT_TOLERANCE = timedelta(seconds=1)


def is_edited(created_at: datetime, updated_at: datetime) -> bool:
    return as_utc(updated_at) - as_utc(created_at) > EDIT_TOLERANCE


def _content(content: str) -> str:
    if content is None or not content.strip():
        raise BadRequestError("content must not be empty")
    return content


class CommentService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create_comment(self, card_id: str, author_id: str, content: str) -> Comment:
        # TODO: decide whether visitors may comment; today this takes edit like any card change
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.EDIT, author_id, board_id)
        comment = Comment(card_id=card_id, author_id=author_id, content=_content(content))
        self.session.add(comment)
        self.session.commit()
        return comment

    def get_comments(self, card_id: str, user_id: str) -> list[Comment]:
        """Newest first."""
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.VIEW, user_id, board_id)
        return list(
            self.session.scalars(
                select(Comment)
                .where(Comment.card_id == card_id)
                .options(selectinload(Comment.author))
                .order_by(Comment.created_at.desc(), Comment.id.desc())
            )
        )

    def update_comment(self, card_id: str, comment_id: str, user_id: str, content: str) -> Comment:
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.VIEW, user_id, board_id)
        comment = self._comment(card_id, comment_id)
        if comment.author_id != user_id:
            raise ForbiddenError("You can only edit your own comments")
        comment.content = _content(content)
        self.session.commit()
        return comment

    def delete_comment(self, card_id: str, comment_id: str, user_id: str) -> None:
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.VIEW, user_id, board_id)
        comment = self._comment(card_id, comment_id)
        if comment.author_id != user_id and not check_permission(self.session, user_id, board_id, Action.EDIT):
            raise ForbiddenError(
                "You can only delete your own comments unless you are a moderator or owner"
            )
        self.session.delete(comment)
        self.session.commit()
        logger.info("user %s deleted comment %s on card %s", user_id, comment_id, card_id)

    def _comment(self, card_id: str, comment_id: str) -> Comment:
        comment = self.session.get(Comment, comment_id)
        if comment is None or comment.card_id != card_id:
            raise NotFoundError(f"Comment with ID {comment_id} not found")
        return comment
