"""Authentication gate consumed by the sync controller.

The gate exposes the current principal and notifies subscribers whenever the
session starts or ends. Credential issuance is out of scope; ``LocalAuthGate``
is an in-process provider used by the app and the tests.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from todosync.domain.user import User


logger = logging.getLogger(__name__)

SessionListener = Callable[[User | None], Awaitable[None]]
Unsubscribe = Callable[[], None]


class AuthGate(Protocol):
    """Interface of the authentication provider."""

    @property
    def current_user(self) -> User | None: ...

    def subscribe(self, listener: SessionListener) -> Unsubscribe: ...

    async def sign_out(self) -> None: ...


class LocalAuthGate:
    """In-process session holder that fans session changes out to listeners."""

    def __init__(self) -> None:
        self._user: User | None = None
        self._listeners: list[SessionListener] = []

    @property
    def current_user(self) -> User | None:
        return self._user

    def subscribe(self, listener: SessionListener) -> Unsubscribe:
        """Register a listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sign_in(self, user: User) -> None:
        self._user = user
        logger.info("Session started", extra={"user_id": user.id})
        await self._notify(user)

    async def sign_out(self) -> None:
        if self._user is None:
            return
        user_id = self._user.id
        self._user = None
        logger.info("Session ended", extra={"user_id": user_id})
        await self._notify(None)

    async def _notify(self, user: User | None) -> None:
        for listener in list(self._listeners):
            await listener(user)
