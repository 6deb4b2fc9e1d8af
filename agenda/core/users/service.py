# agenda/core/users/service.py

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.scheduling.errors import UserAlreadyExists
from agenda.core.scheduling.store import EventStore
from agenda.core.users.models import User

log = logging.getLogger(__name__)


class UsersService:
    """
    Async service for user records.

    A user row and its default calendar are always created together, in
    the same flush, so no committed user is ever without one.
    """

    def __init__(self, db_session: AsyncSession):
        """
        Args:
            db_session (AsyncSession): Active SQLAlchemy session.
        """
        self.db: AsyncSession = db_session
        self.store = EventStore(db_session)

    async def _create(self, user_id: str, name: str | None, email: str | None) -> User:
        user = User(id=user_id, name=name, email=email)
        self.db.add(user)
        await self.db.flush()
        await self.store.create_default_calendar(user_id)
        log.info("Created new user: %r", user)
        return user

    async def register_user(self, user_id: str, name: str | None = None, email: str | None = None) -> User:
        """
        Create a user and its default calendar.

        Raises:
            UserAlreadyExists: A user with this id is already registered.
        """
        if await self.db.get(User, user_id) is not None:
            log.warning("Registration rejected: user %s already exists", user_id)
            raise UserAlreadyExists()
        return await self._create(user_id, name, email)

    async def get_or_create_user(self, user_id: str, name: str | None = None) -> User:
        """
        Find a user by id or register it.

        Args:
            user_id (str): Identity-provider user id.
            name (str | None, optional): Display name for a new user. Defaults to None.

        Returns:
            User: The found or created ORM object.
        """
        log.debug("Ensuring user by id=%s", user_id)
        user = await self.db.get(User, user_id)
        if user is None:
            log.info("User with id=%s not found, creating.", user_id)
            return await self._create(user_id, name, None)
        log.debug("Found existing user: %r", user)
        return user
