from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from gateway.controller import WizardController

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    pass


class WizardSessionStore:
    """In-process wizard sessions. Nothing survives a restart.

    A session untouched for ``ttl_seconds`` is evicted on the next
    ``create`` or ``get``; abandoned wizards are never deleted explicitly.
    """

    def __init__(
        self,
        factory: Callable[[], WizardController],
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, WizardController] = {}
        self._touched: dict[str, float] = {}

    def _prune(self, now: float) -> None:
        expired = [sid for sid, at in self._touched.items() if now - at > self.ttl_seconds]
        for sid in expired:
            del self._sessions[sid]
            del self._touched[sid]
        if expired:
            logger.info("Evicted %d idle wizard sessions", len(expired))

    def create(self) -> tuple[str, WizardController]:
        now = self._clock()
        self._prune(now)
        session_id = uuid.uuid4().hex
        controller = self._factory()
        self._sessions[session_id] = controller
        self._touched[session_id] = now
        return session_id, controller

    def get(self, session_id: str) -> WizardController:
        now = self._clock()
        self._prune(now)
        try:
            controller = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None
        self._touched[session_id] = now
        return controller

    def discard(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFoundError(session_id)
        del self._touched[session_id]

    def __len__(self) -> int:
        return len(self._sessions)
