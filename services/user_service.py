from datetime import UTC, datetime
from typing import Protocol

from sentry_sdk import trace
from sqlalchemy.ext.asyncio import AsyncEngine

from db import db_read, db_write
from models.db.user import UserRow
from models.user import User


class UserStore(Protocol):
    async def get(self, id: str) -> User | None: ...

    async def upsert(self, id: str, email: str | None) -> User: ...


class MemoryUserStore:
    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    async def get(self, id: str) -> User | None:
        return self._users.get(id)

    async def upsert(self, id: str, email: str | None) -> User:
        now = datetime.now(UTC)
        user = self._users.get(id)

        if user is None:
            user = User(
                id=id,
                email=email,
                first_name=None,
                last_name=None,
                profile_image_url=None,
                created_at=now,
                updated_at=now,
            )
        elif email is not None and email != user.email:
            user = user.model_copy(update={'email': email, 'updated_at': now})

        self._users[id] = user
        return user


class DatabaseUserStore:
    """
    Users as seen through the authenticating proxy, recorded on first sight.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @trace
    async def get(self, id: str) -> User | None:
        async with db_read(self._engine) as session:
            row = await session.get(UserRow, id)
            return User.model_validate(row) if (row is not None) else None

    @trace
    async def upsert(self, id: str, email: str | None) -> User:
        async with db_write(self._engine) as session:
            row = await session.get(UserRow, id)

            if row is None:
                row = UserRow(id=id, email=email)
                session.add(row)
            elif email is not None and email != row.email:
                row.email = email

            await session.flush()
            await session.refresh(row)
            user = User.model_validate(row)

        return user
