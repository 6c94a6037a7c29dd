from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import get_settings
from .db import User
from .errors import BadRequestError, ConflictError, NotFoundError
from .utils import MAX_PASSWORD_BYTES, hash_password, verify_password

logger = logging.getLogger(__name__)


class UserService:
    """Identity store: registration and lookups by id, username or email."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create_user(
        self,
        username: str,
        email: str,
        password: str,
        avatar_url: Optional[str] = None,
    ) -> User:
        min_length = get_settings().min_password_length
        if not password or len(password) < min_length:
            raise BadRequestError(f"Password must be at least {min_length} characters long")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise BadRequestError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
        username = username.strip()
        email = email.strip().lower()
        if self.find_by_email(email) is not None:
            raise ConflictError("Email already exists")
        if self.find_by_username(username) is not None:
            raise ConflictError("Username already exists")
        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            avatar_url=avatar_url or None,
        )
        self.session.add(user)
        self.session.commit()
        logger.info("registered user %s (%s)", user.id, username)
        return user

    def get_user(self, user_id: str) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User with ID {user_id} not found")
        return user

    def find_by_username(self, username: str) -> Optional[User]:
        return self.session.scalar(select(User).where(User.username == username))

    def find_by_email(self, email: str) -> Optional[User]:
        return self.session.scalar(select(User).where(User.email == email.lower()))

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user
