from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .db import Notification
from .errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    BOARD_INVITATION = "board_invitation"
    CARD_ASSIGNMENT = "card_assignment"
    ROLE_CHANGE = "role_change"


class Notifier(Protocol):
    def notify(
        self,
        user_id: str,
        type: NotificationType,
        message: str,
        board_id: Optional[str] = None,
        card_id: Optional[str] = None,
    ) -> None: ...


class NotificationService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def notify(
        self,
        user_id: str,
        type: NotificationType,
        message: str,
        board_id: Optional[str] = None,
        card_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=NotificationType(type).value,
            message=message,
            related_board_id=board_id,
            related_card_id=card_id,
            is_read=False,
        )
        self.session.add(notification)
        self.session.commit()
        logger.debug("queued %s notification for user %s", notification.type, user_id)
        return notification

    def list_for_user(self, user_id: str, page: int = 1, limit: int = 20) -> tuple[list[Notification], int]:
        page = max(page, 1)
        total = self.session.scalar(
            select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
        )
        items = self.session.scalars(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(items), total or 0

    def unread_count(self, user_id: str) -> int:
        return self.session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        ) or 0

    def mark_read(self, notification_id: str, user_id: str) -> Notification:
        notification = self._owned(notification_id, user_id, "modify")
        notification.is_read = True
        self.session.commit()
        return notification

    def mark_all_read(self, user_id: str) -> None:
        self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        self.session.commit()

    def delete(self, notification_id: str, user_id: str) -> None:
        notification = self._owned(notification_id, user_id, "delete")
        self.session.delete(notification)
        self.session.commit()

    def _owned(self, notification_id: str, user_id: str, verb: str) -> Notification:
        notification = self.session.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(f"Notification with ID {notification_id} not found")
        if notification.user_id != user_id:
            raise ForbiddenError(f"You can only {verb} your own notifications")
        return notification
