from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy.orm import Session, selectinload

from . import ordering
from .db import Card, User
from .errors import BadRequestError, NotFoundError
from .notifications import NotificationService, NotificationType, Notifier
from .permissions import Action, enforce, resolve_role
from .resolver import ResourceRef, resolve_board_id
from .utils import normalize_tags, parse_due_date, require_title

logger = logging.getLogger(__name__)


class CardService:
    def __init__(self, session: Session, notifier: Optional[Notifier] = None) -> None:
        self.session = session
        self.notifier = notifier or NotificationService(session)

    def create_card(
        self,
        list_id: str,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        due_date: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        position: Optional[int] = None,
    ) -> Card:
        board_id = resolve_board_id(self.session, ResourceRef(list_id=list_id))
        enforce(self.session, Action.EDIT, user_id, board_id)
        card = Card(
            list_id=list_id,
            title=require_title(title),
            description=description,
            due_date=parse_due_date(due_date),
            tags=normalize_tags(tags),
            position=ordering.place(self.session, Card, list_id, position),
        )
        self.session.add(card)
        self.session.commit()
        return card

    def get_cards(self, list_id: str, user_id: str) -> list[Card]:
        board_id = resolve_board_id(self.session, ResourceRef(list_id=list_id))
        enforce(self.session, Action.VIEW, user_id, board_id)
        return ordering.siblings(self.session, Card, list_id, selectinload(Card.assigned_users))

    def get_card(self, card_id: str, user_id: str) -> Card:
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.VIEW, user_id, board_id)
        return self._card(card_id)

    def update_card(self, card_id: str, user_id: str, changes: Mapping[str, Any]) -> Card:
        """Partial update. A new ``list_id`` moves the card, which needs
        ``edit`` on the destination board as well.
        """
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.EDIT, user_id, board_id)
        card = self._card(card_id)

        # validate everything before touching the row
        values: dict[str, Any] = {}
        if "title" in changes:
            values["title"] = require_title(changes["title"])
        if "description" in changes:
            values["description"] = changes["description"]
        if "due_date" in changes:
            values["due_date"] = parse_due_date(changes["due_date"])
        if "tags" in changes:
            values["tags"] = normalize_tags(changes["tags"])

        position = changes.get("position")
        target_list = changes.get("list_id")
        if target_list is not None and target_list != card.list_id:
            target_board = resolve_board_id(self.session, ResourceRef(list_id=target_list))
            enforce(self.session, Action.EDIT, user_id, target_board)
            values["position"] = ordering.place(self.session, Card, target_list, position)
            values["list_id"] = target_list
            logger.info("card %s moved from list %s to %s", card_id, card.list_id, target_list)
        elif position is not None:
            values["position"] = ordering.check_position(position)

        for field, value in values.items():
            setattr(card, field, value)
        self.session.commit()
        return card

    def delete_card(self, card_id: str, user_id: str) -> None:
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.EDIT, user_id, board_id)
        self.session.delete(self._card(card_id))
        self.session.commit()

    # === Assignments ===
    def assign_user(self, card_id: str, assignee_id: str, assigner_id: str) -> Card:
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.EDIT, assigner_id, board_id)
        card = self._card(card_id)
        assignee = self.session.get(User, assignee_id)
        if assignee is None:
            raise NotFoundError(f"User with ID {assignee_id} not found")
        # membership is checked here only; later removal keeps the assignment
        if resolve_role(self.session, assignee_id, board_id) is None:
            raise BadRequestError("User must be a board member to be assigned to a card")
        if any(user.id == assignee_id for user in card.assigned_users):
            raise BadRequestError("User is already assigned to this card")
        card.assigned_users.append(assignee)
        self.session.commit()
        logger.info("user %s assigned %s to card %s", assigner_id, assignee_id, card_id)
        if assignee_id != assigner_id:
            self.notifier.notify(
                assignee_id,
                NotificationType.CARD_ASSIGNMENT,
                f'You have been assigned to card "{card.title}"',
                board_id=board_id,
                card_id=card_id,
            )
        return card

    def unassign_user(self, card_id: str, assignee_id: str, requester_id: str) -> Card:
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.EDIT, requester_id, board_id)
        card = self._card(card_id)
        remaining = [user for user in card.assigned_users if user.id != assignee_id]
        if len(remaining) == len(card.assigned_users):
            raise BadRequestError("User is not assigned to this card")
        card.assigned_users = remaining
        self.session.commit()
        logger.info("user %s unassigned %s from card %s", requester_id, assignee_id, card_id)
        return card

    def get_assignments(self, card_id: str, user_id: str) -> list[User]:
        board_id = resolve_board_id(self.session, ResourceRef(card_id=card_id))
        enforce(self.session, Action.VIEW, user_id, board_id)
        return list(self._card(card_id).assigned_users)

    def _card(self, card_id: str) -> Card:
        card = self.session.get(Card, card_id)
        if card is None:
            raise NotFoundError(f"Card with ID {card_id} not found")
        return card
