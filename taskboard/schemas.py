from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MemberRole = Literal["moderator", "visitor"]


class ErrorBody(BaseModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    requestId: str


class ErrorEnvelope(BaseModel):
    error: ErrorBody


class Health(BaseModel):
    status: str = "ok"


class Version(BaseModel):
    version: str = "1.0.0"


# === Users ===


class UserIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl", max_length=500)


class UserSummary(BaseModel):
    id: str
    username: str
    email: str


class UserOut(UserSummary):
    avatarUrl: Optional[str]
    createdAt: datetime


class LoginIn(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str


class LoginOut(BaseModel):
    accessToken: str
    user: UserOut


# === Boards ===


class BoardIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class BoardPatch(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class BoardOut(BaseModel):
    id: str
    title: str
    description: Optional[str]
    ownerId: str
    createdAt: datetime
    updatedAt: datetime


class BoardWithRoleOut(BoardOut):
    userRole: str
    memberCount: int


class MemberIn(BaseModel):
    username: str = Field(min_length=1)
    role: MemberRole = "visitor"


class MemberPatch(BaseModel):
    role: MemberRole


class MemberOut(BaseModel):
    id: str
    boardId: str
    userId: str
    role: str
    createdAt: datetime
    user: UserOut


# === Lists ===


class ListIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    position: Optional[int] = Field(default=None, ge=0)


class ListPatch(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    position: Optional[int] = Field(default=None, ge=0)


class ListOut(BaseModel):
    id: str
    title: str
    position: int
    boardId: str
    createdAt: datetime
    updatedAt: datetime


# === Cards ===


class CardIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    tags: Optional[list[str]] = None
    position: Optional[int] = Field(default=None, ge=0)


class CardPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    tags: Optional[list[str]] = None
    position: Optional[int] = Field(default=None, ge=0)
    list_id: Optional[str] = Field(default=None, alias="listId")


class CardOut(BaseModel):
    id: str
    title: str
    description: Optional[str]
    dueDate: Optional[datetime]
    tags: list[str]
    position: int
    listId: str
    assignedUsers: list[UserSummary]
    createdAt: datetime
    updatedAt: datetime


class ListWithCardsOut(ListOut):
    cards: list[CardOut]


class AssignmentIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)


# === Comments ===


class CommentIn(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class CommentOut(BaseModel):
    id: str
    content: str
    cardId: str
    authorId: str
    author: UserOut
    createdAt: datetime
    updatedAt: datetime
    isEdited: bool


# === Notifications ===


class NotificationOut(BaseModel):
    id: str
    userId: str
    type: str
    message: str
    relatedBoardId: Optional[str]
    relatedCardId: Optional[str]
    isRead: bool
    createdAt: datetime


class NotificationsPage(BaseModel):
    notifications: list[NotificationOut]
    total: int


class UnreadCount(BaseModel):
    count: int
