# wl_app/storage/users.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from wl_app.core.config import logger
from wl_app.core.errors import CREATE_ERROR, FETCH_ERROR, UPDATE_ERROR, USERNAME_EXISTS, StorageError
from wl_app.core.security import hash_password
from wl_app.db.models import User, utcnow


class UserStorage:
    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def get_user(self, user_id: int) -> Optional[User]:
        try:
            async with self.session_maker() as s:
                return await s.get(User, user_id)
        except SQLAlchemyError as e:
            logger.exception(f"user lookup failed for id={user_id}")
            raise StorageError(FETCH_ERROR, "Failed to fetch user") from e

    async def get_user_by_username(self, username: str) -> Optional[User]:
        try:
            async with self.session_maker() as s:
                return (
                    await s.execute(select(User).where(User.username == username))
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.exception(f"user lookup failed for {username}")
            raise StorageError(FETCH_ERROR, "Failed to fetch user") from e

    async def create_user(self, username: str, password: str, is_active: bool = True) -> User:
        user = User(
            username=username,
            password_hash=hash_password(password),
            is_active=is_active,
        )
        try:
            async with self.session_maker() as s:
                s.add(user)
                await s.commit()
        except IntegrityError:
            raise StorageError(USERNAME_EXISTS, "Username already exists")
        except SQLAlchemyError as e:
            logger.exception(f"user insert failed for {username}")
            raise StorageError(CREATE_ERROR, "Failed to create user") from e
        logger.info(f"user created id={user.id} username={username}")
        return user

    async def record_login(self, user_id: int) -> None:
        try:
            async with self.session_maker() as s:
                await s.execute(update(User).where(User.id == user_id).values(last_login=utcnow()))
                await s.commit()
        except SQLAlchemyError as e:
            logger.exception(f"recording login failed for id={user_id}")
            raise StorageError(UPDATE_ERROR, "Failed to record login") from e
