from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import get_current_user
from .boards import BoardService, member_count
from .cards import CardService
from .comments import CommentService, is_edited
from .config import configure_logging, get_settings
from .db import Board, BoardList, BoardMembership, Card, Comment, Notification, User, get_session, init_db
from .errors import ServiceError
from .lists import ListService
from .notifications import NotificationService
from .permissions import Role
from .schemas import (
    AssignmentIn,
    BoardIn,
    BoardOut,
    BoardPatch,
    BoardWithRoleOut,
    CardIn,
    CardOut,
    CardPatch,
    CommentIn,
    CommentOut,
    ErrorBody,
    ErrorEnvelope,
    Health,
    ListIn,
    ListOut,
    ListPatch,
    ListWithCardsOut,
    LoginIn,
    LoginOut,
    MemberIn,
    MemberOut,
    MemberPatch,
    NotificationOut,
    NotificationsPage,
    UnreadCount,
    UserIn,
    UserOut,
    UserSummary,
    Version,
)
from .users import UserService
from .utils import as_utc, new_uuid

VERSION = "1.0.0"

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Taskboard API", version=VERSION, lifespan=lifespan)


# === Errors ===

HTTP_CODES = {401: "unauthorized", 403: "forbidden", 404: "not_found", 405: "method_not_allowed"}


def error_response(status_code: int, code: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    body = ErrorEnvelope(
        error=ErrorBody(code=code, message=message, details=details or {}, requestId=new_uuid())
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "bad_request", "validation_error", {"errors": jsonable_encoder(exc.errors())})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_CODES.get(exc.status_code, "error")
    return error_response(exc.status_code, code, str(exc.detail))


# === Helpers ===


def user_summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, username=user.username, email=user.email)


def user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        email=user.email,
        avatarUrl=user.avatar_url,
        createdAt=as_utc(user.created_at),
    )


def board_out(board: Board) -> BoardOut:
    return BoardOut(
        id=board.id,
        title=board.title,
        description=board.description,
        ownerId=board.owner_id,
        createdAt=as_utc(board.created_at),
        updatedAt=as_utc(board.updated_at),
    )


def board_with_role_out(board: Board, role: Role) -> BoardWithRoleOut:
    return BoardWithRoleOut(
        **board_out(board).model_dump(),
        userRole=role.value,
        memberCount=member_count(board),
    )


def member_out(membership: BoardMembership) -> MemberOut:
    return MemberOut(
        id=membership.id,
        boardId=membership.board_id,
        userId=membership.user_id,
        role=membership.role,
        createdAt=as_utc(membership.created_at),
        user=user_out(membership.user),
    )


def list_out(board_list: BoardList) -> ListOut:
    return ListOut(
        id=board_list.id,
        title=board_list.title,
        position=board_list.position,
        boardId=board_list.board_id,
        createdAt=as_utc(board_list.created_at),
        updatedAt=as_utc(board_list.updated_at),
    )


def card_out(card: Card) -> CardOut:
    return CardOut(
        id=card.id,
        title=card.title,
        description=card.description,
        dueDate=as_utc(card.due_date) if card.due_date else None,
        tags=list(card.tags or []),
        position=card.position,
        listId=card.list_id,
        assignedUsers=[user_summary(u) for u in card.assigned_users],
        createdAt=as_utc(card.created_at),
        updatedAt=as_utc(card.updated_at),
    )


def comment_out(comment: Comment) -> CommentOut:
    return CommentOut(
        id=comment.id,
        content=comment.content,
        cardId=comment.card_id,
        authorId=comment.author_id,
        author=user_out(comment.author),
        createdAt=as_utc(comment.created_at),
        updatedAt=as_utc(comment.updated_at),
        isEdited=is_edited(comment.created_at, comment.updated_at),
    )


def notification_out(notification: Notification) -> NotificationOut:
    return NotificationOut(
        id=notification.id,
        userId=notification.user_id,
        type=notification.type,
        message=notification.message,
        relatedBoardId=notification.related_board_id,
        relatedCardId=notification.related_card_id,
        isRead=notification.is_read,
        createdAt=as_utc(notification.created_at),
    )


def users(session: Session = Depends(get_session)) -> UserService:
    return UserService(session)


def boards(session: Session = Depends(get_session)) -> BoardService:
    return BoardService(session)


def lists(session: Session = Depends(get_session)) -> ListService:
    return ListService(session)


def cards(session: Session = Depends(get_session)) -> CardService:
    return CardService(session)


def comments(session: Session = Depends(get_session)) -> CommentService:
    return CommentService(session)


def notifications(session: Session = Depends(get_session)) -> NotificationService:
    return NotificationService(session)


# === Health & metadata ===


@app.get("/v1/health", response_model=Health)
def health() -> Health:
    return Health()


@app.get("/v1/version", response_model=Version)
def version() -> Version:
    return Version(version=VERSION)


# === Users ===


@app.post("/v1/users", response_model=UserOut, status_code=201)
def register(payload: UserIn, service: UserService = Depends(users)):
    user = service.create_user(payload.username, payload.email, payload.password, payload.avatar_url)
    return user_out(user)


@app.post("/v1/users/login", response_model=LoginOut)
def login(payload: LoginIn, service: UserService = Depends(users)):
    """The access token is the user id; `get_current_user` accepts it as a bearer token."""
    user = service.authenticate(payload.email, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="invalid_credentials")
    return LoginOut(accessToken=user.id, user=user_out(user))


@app.get("/v1/users/me", response_model=UserOut)
def me(user: str = Depends(get_current_user), service: UserService = Depends(users)):
    return user_out(service.get_user(user))


# === Board endpoints ===


@app.post("/v1/boards", response_model=BoardWithRoleOut, status_code=201)
def create_board(payload: BoardIn, user: str = Depends(get_current_user), service: BoardService = Depends(boards)):
    board = service.create_board(user, payload.title, payload.description)
    return board_with_role_out(board, Role.OWNER)


@app.get("/v1/boards", response_model=list[BoardWithRoleOut])
def list_boards(user: str = Depends(get_current_user), service: BoardService = Depends(boards)):
    return [board_with_role_out(board, role) for board, role in service.list_boards_for_user(user)]


@app.get("/v1/boards/{board_id}", response_model=BoardWithRoleOut)
def get_board(board_id: str, user: str = Depends(get_current_user), service: BoardService = Depends(boards)):
    board, role = service.get_board(board_id, user)
    return board_with_role_out(board, role)


@app.patch("/v1/boards/{board_id}", response_model=BoardWithRoleOut)
def update_board(
    board_id: str,
    payload: BoardPatch,
    user: str = Depends(get_current_user),
    service: BoardService = Depends(boards),
):
    board = service.update_board(board_id, user, payload.model_dump(exclude_unset=True))
    return board_with_role_out(board, Role.OWNER)


@app.delete("/v1/boards/{board_id}", status_code=204)
def delete_board(board_id: str, user: str = Depends(get_current_user), service: BoardService = Depends(boards)):
    service.delete_board(board_id, user)
    return Response(status_code=204)


@app.post("/v1/boards/{board_id}/members", response_model=MemberOut, status_code=201)
def invite_member(
    board_id: str,
    payload: MemberIn,
    user: str = Depends(get_current_user),
    service: BoardService = Depends(boards),
):
    return member_out(service.invite_member(board_id, payload.username, payload.role, user))


@app.get("/v1/boards/{board_id}/members", response_model=list[MemberOut])
def get_members(board_id: str, user: str = Depends(get_current_user), service: BoardService = Depends(boards)):
    return [member_out(m) for m in service.get_members(board_id, user)]


@app.patch("/v1/boards/{board_id}/members/{member_id}", response_model=MemberOut)
def update_member_role(
    board_id: str,
    member_id: str,
    payload: MemberPatch,
    user: str = Depends(get_current_user),
    service: BoardService = Depends(boards),
):
    return member_out(service.update_member_role(board_id, member_id, payload.role, user))


@app.delete("/v1/boards/{board_id}/members/{member_id}", status_code=204)
def remove_member(
    board_id: str,
    member_id: str,
    user: str = Depends(get_current_user),
    service: BoardService = Depends(boards),
):
    service.remove_member(board_id, member_id, user)
    return Response(status_code=204)


# === List endpoints ===


@app.post("/v1/boards/{board_id}/lists", response_model=ListOut, status_code=201)
def create_list(
    board_id: str,
    payload: ListIn,
    user: str = Depends(get_current_user),
    service: ListService = Depends(lists),
):
    return list_out(service.create_list(board_id, user, payload.title, payload.position))


@app.get("/v1/boards/{board_id}/lists", response_model=list[ListOut])
def get_lists(board_id: str, user: str = Depends(get_current_user), service: ListService = Depends(lists)):
    return [list_out(board_list) for board_list in service.get_lists(board_id, user)]


@app.get("/v1/lists/{list_id}", response_model=ListWithCardsOut)
def get_list(list_id: str, user: str = Depends(get_current_user), service: ListService = Depends(lists)):
    board_list, list_cards = service.get_list(list_id, user)
    return ListWithCardsOut(**list_out(board_list).model_dump(), cards=[card_out(c) for c in list_cards])


@app.patch("/v1/lists/{list_id}", response_model=ListOut)
def update_list(
    list_id: str,
    payload: ListPatch,
    user: str = Depends(get_current_user),
    service: ListService = Depends(lists),
):
    return list_out(service.update_list(list_id, user, payload.model_dump(exclude_unset=True)))


@app.delete("/v1/lists/{list_id}", status_code=204)
def delete_list(list_id: str, user: str = Depends(get_current_user), service: ListService = Depends(lists)):
    service.delete_list(list_id, user)
    return Response(status_code=204)


# === Card endpoints ===


@app.post("/v1/lists/{list_id}/cards", response_model=CardOut, status_code=201)
def create_card(
    list_id: str,
    payload: CardIn,
    user: str = Depends(get_current_user),
    service: CardService = Depends(cards),
):
    card = service.create_card(
        list_id,
        user,
        payload.title,
        payload.description,
        payload.due_date,
        payload.tags,
        payload.position,
    )
    return card_out(card)


@app.get("/v1/lists/{list_id}/cards", response_model=list[CardOut])
def get_cards(list_id: str, user: str = Depends(get_current_user), service: CardService = Depends(cards)):
    return [card_out(c) for c in service.get_cards(list_id, user)]


@app.get("/v1/cards/{card_id}", response_model=CardOut)
def get_card(card_id: str, user: str = Depends(get_current_user), service: CardService = Depends(cards)):
    return card_out(service.get_card(card_id, user))


@app.patch("/v1/cards/{card_id}", response_model=CardOut)
def update_card(
    card_id: str,
    payload: CardPatch,
    user: str = Depends(get_current_user),
    service: CardService = Depends(cards),
):
    return card_out(service.update_card(card_id, user, payload.model_dump(exclude_unset=True)))


@app.delete("/v1/cards/{card_id}", status_code=204)
def delete_card(card_id: str, user: str = Depends(get_current_user), service: CardService = Depends(cards)):
    service.delete_card(card_id, user)
    return Response(status_code=204)


@app.get("/v1/cards/{card_id}/assignees", response_model=list[UserSummary])
def get_assignees(card_id: str, user: str = Depends(get_current_user), service: CardService = Depends(cards)):
    return [user_summary(u) for u in service.get_assignments(card_id, user)]


@app.post("/v1/cards/{card_id}/assignees", response_model=CardOut, status_code=201)
def assign_user(
    card_id: str,
    payload: AssignmentIn,
    user: str = Depends(get_current_user),
    service: CardService = Depends(cards),
):
    return card_out(service.assign_user(card_id, payload.user_id, user))


@app.delete("/v1/cards/{card_id}/assignees/{assignee_id}", response_model=CardOut)
def unassign_user(
    card_id: str,
    assignee_id: str,
    user: str = Depends(get_current_user),
    service: CardService = Depends(cards),
):
    return card_out(service.unassign_user(card_id, assignee_id, user))


# === Comment endpoints ===


@app.post("/v1/cards/{card_id}/comments", response_model=CommentOut, status_code=201)
def create_comment(
    card_id: str,
    payload: CommentIn,
    user: str = Depends(get_current_user),
    service: CommentService = Depends(comments),
):
    return comment_out(service.create_comment(card_id, user, payload.content))


@app.get("/v1/cards/{card_id}/comments", response_model=list[CommentOut])
def get_comments(card_id: str, user: str = Depends(get_current_user), service: CommentService = Depends(comments)):
    return [comment_out(c) for c in service.get_comments(card_id, user)]


@app.patch("/v1/cards/{card_id}/comments/{comment_id}", response_model=CommentOut)
def update_comment(
    card_id: str,
    comment_id: str,
    payload: CommentIn,
    user: str = Depends(get_current_user),
    service: CommentService = Depends(comments),
):
    return comment_out(service.update_comment(card_id, comment_id, user, payload.content))


@app.delete("/v1/cards/{card_id}/comments/{comment_id}", status_code=204)
def delete_comment(
    card_id: str,
    comment_id: str,
    user: str = Depends(get_current_user),
    service: CommentService = Depends(comments),
):
    service.delete_comment(card_id, comment_id, user)
    return Response(status_code=204)


# === Notification endpoints ===


@app.get("/v1/notifications", response_model=NotificationsPage)
def get_notifications(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    user: str = Depends(get_current_user),
    service: NotificationService = Depends(notifications),
):
    items, total = service.list_for_user(user, page, limit or get_settings().notifications_page_size)
    return NotificationsPage(notifications=[notification_out(n) for n in items], total=total)


@app.get("/v1/notifications/unread-count", response_model=UnreadCount)
def unread_count(user: str = Depends(get_current_user), service: NotificationService = Depends(notifications)):
    return UnreadCount(count=service.unread_count(user))


@app.patch("/v1/notifications/read-all", status_code=204)
def mark_all_read(user: str = Depends(get_current_user), service: NotificationService = Depends(notifications)):
    service.mark_all_read(user)
    return Response(status_code=204)


@app.patch("/v1/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: str,
    user: str = Depends(get_current_user),
    service: NotificationService = Depends(notifications),
):
    return notification_out(service.mark_read(notification_id, user))


@app.delete("/v1/notifications/{notification_id}", status_code=204)
def delete_notification(
    notification_id: str,
    user: str = Depends(get_current_user),
    service: NotificationService = Depends(notifications),
):
    service.delete(notification_id, user)
    return Response(status_code=204)

