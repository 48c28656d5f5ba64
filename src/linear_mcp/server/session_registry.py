"""Session tracking for the HTTP gateway."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

import anyio

from linear_mcp.server.transport import SessionState, SessionTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[str], SessionTransport]


@dataclass(eq=False)
class Session:
    id: str
    transport: SessionTransport
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_active: float = field(default_factory=time.monotonic)

    @property
    def state(self) -> SessionState:
        return self.transport.state

    def touch(self) -> None:
        self.last_active = time.monotonic()


class SessionRegistry:
    """The single authoritative map of session id to Session.

    Other components look sessions up here for the duration of one request
    and never keep their own references. Every method is synchronous, so the
    map is never observed half-updated by another task.

    Args:
        transport_factory: builds the SessionTransport for a freshly minted id
        idle_timeout: seconds after which a session with no traffic and no push
                      channel is evicted by ``sweep_idle``. None disables expiry.
    """

    def __init__(self, transport_factory: TransportFactory, *, idle_timeout: float | None = None):
        self._transport_factory = transport_factory
        self._idle_timeout = idle_timeout
        self._sessions: dict[str, Session] = {}

    def create(self) -> Session:
        session_id = uuid4().hex
        transport = self._transport_factory(session_id)
        transport.on_close = self._on_transport_closed
        session = Session(id=session_id, transport=transport)
        self._sessions[session_id] = session
        logger.info("Created session %s", session_id)
        return session

    def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        logger.info("Removed session %s", session_id)
        session.transport.close()

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.remove(session_id)

    def sweep_idle(self, now: float | None = None) -> list[str]:
        """Evict sessions idle for longer than the configured timeout.

        Sessions with an event stream attached or a request still running are
        never idle.
        """
        if self._idle_timeout is None:
            return []
        now = time.monotonic() if now is None else now
        expired = [
            session.id
            for session in self._sessions.values()
            if not session.transport.has_push_channel
            and not session.transport.inflight_requests
            and now - session.last_active > self._idle_timeout
        ]
        for session_id in expired:
            logger.info("Session %s idle for more than %ss; evicting", session_id, self._idle_timeout)
            self.remove(session_id)
        return expired

    async def run_sweeper(self, interval: float | None = None) -> None:
        """Periodically call ``sweep_idle`` until cancelled. Returns at once if expiry is disabled."""
        if self._idle_timeout is None:
            return
        interval = interval if interval is not None else max(self._idle_timeout / 2, 1.0)
        while True:
            await anyio.sleep(interval)
            self.sweep_idle()

    def _on_transport_closed(self, transport: SessionTransport) -> None:
        if self._sessions.pop(transport.session_id, None) is not None:
            logger.info("Session %s closed by transport", transport.session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
