from __future__ import annotations

import threading
import time
import uuid
from typing import Callable, Dict, List, Optional

from .models import SessionSummary
from .orchestrator import ConversationOrchestrator


class SessionStore:
    """In-memory registry of live conversations; nothing outlives the process."""

    def __init__(
        self,
        factory: Callable[[str], ConversationOrchestrator],
        max_sessions: Optional[int] = None,
    ) -> None:
        """Purpose: Initialize the store with a conversation factory and a session cap.
        Inputs/Outputs: Factory building an orchestrator for a session id, and an
            optional cap; no return value.
        Side Effects / State: None until the first session is created.
        """
        self._factory = factory
        self._max_sessions = max_sessions
        self._sessions: Dict[str, ConversationOrchestrator] = {}
        self._summaries: Dict[str, SessionSummary] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: Optional[str] = None) -> ConversationOrchestrator:
        """Purpose: Return the conversation for ``session_id``, creating it when unknown.
        Side Effects / State: May create a session and evict the least-recent ones.
        Failure Modes: None; a missing id produces a fresh session.
        """
        with self._lock:
            session_id = session_id or uuid.uuid4().hex
            conversation = self._sessions.get(session_id)
            if conversation is None:
                conversation = self._factory(session_id)
                self._sessions[session_id] = conversation
                self._summaries[session_id] = SessionSummary(
                    session_id=session_id,
                    title="Nueva conversación",
                    updated_at=time.time(),
                )
                self._prune_sessions(keep=session_id)
            return conversation

    def get(self, session_id: str) -> Optional[ConversationOrchestrator]:
        return self._sessions.get(session_id)

    def touch(self, session_id: str, message: str) -> None:
        """Refresh activity time; the first user message becomes the session title."""
        with self._lock:
            summary = self._summaries.get(session_id)
            if summary is None:
                return
            title = summary.title
            if title == "Nueva conversación":
                title = message.strip().splitlines()[0][:48] or title
            self._summaries[session_id] = SessionSummary(session_id=session_id, title=title, updated_at=time.time())

    def list_sessions(self) -> List[SessionSummary]:
        return sorted(self._summaries.values(), key=lambda s: s.updated_at, reverse=True)

    def _prune_sessions(self, keep: Optional[str] = None) -> bool:
        """Purpose: Enforce max_sessions by dropping the least-recent sessions.
        Inputs/Outputs: Optional session id that must survive; returns True if any were removed.
        Failure Modes: None; no-op when max_sessions is unset or not exceeded.
        """
        # Remove least-recent sessions when above the configured cap.
        if not self._max_sessions or self._max_sessions <= 0:
            return False
        if len(self._summaries) <= self._max_sessions:
            return False

        sorted_summaries = sorted(self._summaries.values(), key=lambda s: s.updated_at, reverse=True)
        if keep in self._summaries:
            sorted_summaries.sort(key=lambda s: s.session_id != keep)
        keep_ids = {summary.session_id for summary in sorted_summaries[: self._max_sessions]}
        removed = [session_id for session_id in list(self._summaries.keys()) if session_id not in keep_ids]
        for session_id in removed:
            self._summaries.pop(session_id, None)
            self._sessions.pop(session_id, None)
        return bool(removed)
