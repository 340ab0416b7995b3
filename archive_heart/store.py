"""
Session storage for the Archive Heart timeline.

This module provides an in-memory holder for the current timeline session that
supports wholesale replacement and streaming of every change to multiple
subscribers.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from .models import SessionStatus, TimelineSession
from .themes import DEFAULT_THEME_ID


class TimelineStore:
    """
    In-memory session storage with real-time streaming capabilities.

    The session is never mutated in place: every transition swaps in a new
    TimelineSession, so readers always see a complete, consistent snapshot.
    """

    def __init__(self, skin_id: str = DEFAULT_THEME_ID) -> None:
        self.default_skin = skin_id
        self._session = TimelineSession(
            status=SessionStatus.EMPTY,
            skin_id=skin_id,
            updated_at=datetime.now(timezone.utc),
        )
        self._condition = asyncio.Condition()
        self._update_counter = 0  # Simple counter to detect updates

    async def replace(self, session: TimelineSession) -> TimelineSession:
        """
        Replace the current session and notify all subscribers.

        Args:
            session: The new session snapshot

        Returns:
            The stored session
        """
        async with self._condition:
            self._session = session
            self._update_counter += 1

            self._condition.notify_all()

            return session

    async def read(self) -> TimelineSession:
        """Get the current session snapshot."""
        async with self._condition:
            return self._session

    @asynccontextmanager
    async def stream(self) -> AsyncGenerator[AsyncGenerator[TimelineSession, None], None]:
        """
        Stream session changes to a subscriber.

        Yields an async generator producing the current session first and then
        every replacement.

        The lock is only held while taking a snapshot, so a slow or paused
        subscriber never blocks writers.
        """

        async def session_generator() -> AsyncGenerator[TimelineSession, None]:
            async with self._condition:
                last_seen_counter = self._update_counter
                snapshot = self._session
            yield snapshot

            while True:
                async with self._condition:
                    await self._condition.wait_for(
                        lambda: self._update_counter > last_seen_counter
                    )
                    last_seen_counter = self._update_counter
                    snapshot = self._session
                yield snapshot

        sessions = session_generator()
        try:
            yield sessions
        finally:
            await sessions.aclose()
