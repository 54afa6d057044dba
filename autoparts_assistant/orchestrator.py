"""Conversation orchestration for the auto-parts assistant.

Role:
    Sequences one user turn through classification, inventory search or direct reply,
    summary and delivery, and owns the conversation state (history and current product
    results). It is the only writer of that state.

Turn data contract (TurnContext fields passed across steps):
    - criteria: the resolved Criteria variant (SearchCriteria, ChatReply, AgentHandoff).
    - semantic: the SemanticMatch when semantic mode resolved the turn.
    - products: the new product results, or None to keep the current ones.
    - reply, action_label, action_link: the assistant message to deliver.

Step contracts:
    Classify (CLASSIFYING):
        Local heuristic first; then semantic match (semantic mode with credentials) or
        criteria extraction.
    Search (SEARCHING):
        SEARCH only. Inventory lookup, or the semantic matches. InventoryError propagates.
    Direct reply (REPLYING_DIRECT):
        CHAT/AGENT only. AGENT adds the WhatsApp handoff link.
    Summarize (SUMMARIZING):
        SEARCH only. Reasoning summary, or the reply bundled with the semantic match.
    Deliver (DELIVERED):
        Appends exactly one assistant message and swaps in the new product results.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import Settings
from .criteria import AgentHandoff, ChatReply, Criteria, SearchCriteria
from .heuristics import detect_local_intent
from .inventory import Inventory
from .models import ROLE_MODEL, ROLE_USER, ChatMessage, Product
from .reasoning import ReasoningClient, SemanticMatch
from .turn_runtime import (
    CLASSIFYING,
    DELIVERED,
    FAILED,
    RECEIVED,
    REPLYING_DIRECT,
    SEARCHING,
    SUMMARIZING,
    TurnRunner,
    TurnStep,
    check_transition,
)
from .utils import build_whatsapp_link

logger = logging.getLogger("autoparts.orchestrator")

WELCOME_MESSAGE = '¡Hola! Soy tu experto en repuestos. ¿Qué estás buscando hoy? (Ej: "Pastillas de freno para Hilux")'
FAILURE_REPLY = "Tuve un problema de conexión. Por favor intenta de nuevo."
HANDOFF_LABEL = "Hablar con un asesor"
HANDOFF_GREETING = "Hola, quiero hablar con un asesor. Mi consulta: {message}"

TURN_STEPS_LOG = {
    CLASSIFYING: "Analizando tu mensaje...",
    SEARCHING: "Buscando en el inventario...",
    REPLYING_DIRECT: "Preparando la respuesta...",
    SUMMARIZING: "Resumiendo los resultados...",
    DELIVERED: "Respuesta lista.",
}


class TurnInProgressError(RuntimeError):
    """A message arrived while the previous turn of the same conversation is running."""


@dataclass
class TurnContext:
    """Mutable context passed through each turn step."""
    session_id: str
    user_message: str
    history: List[ChatMessage]
    turn_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: str = RECEIVED
    states: List[str] = field(default_factory=lambda: [RECEIVED])
    route: str = ""
    criteria: Optional[Criteria] = None
    semantic: Optional[SemanticMatch] = None
    products: Optional[List[Product]] = None
    reply: str = ""
    action_label: Optional[str] = None
    action_link: Optional[str] = None
    thinking_logs: List[Dict[str, str]] = field(default_factory=list)

    @property
    def intent(self) -> str:
        return self.criteria.intent if self.criteria is not None else ""

    @property
    def is_search(self) -> bool:
        return isinstance(self.criteria, SearchCriteria)

    def transition(self, state: str) -> None:
        check_transition(self.state, state)
        self.state = state
        self.states.append(state)
        if state in TURN_STEPS_LOG:
            self.log(state, TURN_STEPS_LOG[state])

    def log(self, event: str, detail: str, status: str = "success") -> None:
        """Append a UI-facing log entry."""
        self.thinking_logs.append({"event": event, "detail": detail, "status": status})


@dataclass
class TurnResult:
    """What the UI layer receives for one turn."""
    reply: str
    products: List[Product]
    intent: str
    state: str
    action_label: Optional[str] = None
    action_link: Optional[str] = None
    thinking_logs: List[Dict[str, str]] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.state == FAILED


class ConversationOrchestrator:
    def __init__(
        self,
        settings: Settings,
        reasoning: ReasoningClient,
        inventory: Inventory,
        session_id: Optional[str] = None,
        welcome: bool = True,
    ) -> None:
        """Purpose: Build one conversation with its dependencies and turn state machine.
        Inputs/Outputs: Settings, reasoning client and inventory strategy (all passed in,
            nothing is read from the environment); optional session id.
        Side Effects / State: Seeds the history with the welcome message.
        """
        self._settings = settings
        self._reasoning = reasoning
        self._inventory = inventory
        self.session_id = session_id or uuid.uuid4().hex
        self._history: List[ChatMessage] = []
        self._products: List[Product] = []
        self._processing = False
        self._lock = threading.Lock()
        if welcome:
            self._history.append(ChatMessage(role=ROLE_MODEL, text=WELCOME_MESSAGE))
        self._runner = TurnRunner(
            steps=[
                TurnStep("classify", CLASSIFYING, self._step_classify),
                TurnStep("search", SEARCHING, self._step_search, skip_if=lambda ctx: not ctx.is_search),
                TurnStep("direct_reply", REPLYING_DIRECT, self._step_direct_reply, skip_if=lambda ctx: ctx.is_search),
                TurnStep("summarize", SUMMARIZING, self._step_summarize, skip_if=lambda ctx: not ctx.is_search),
                TurnStep("deliver", DELIVERED, self._step_deliver),
            ]
        )

    @property
    def history(self) -> List[ChatMessage]:
        return list(self._history)

    @property
    def products(self) -> List[Product]:
        return list(self._products)

    @property
    def processing(self) -> bool:
        return self._processing

    def handle_message(self, text: str) -> TurnResult:
        """Purpose: Run one user turn and return the reply plus current product results.
        Inputs/Outputs: Raw user text; returns a TurnResult (reply, products, intent,
            final state, optional handoff action).
        Side Effects / State: Appends the user message immediately, then exactly one
            assistant message; replaces product results only on a successful search.
        Failure Modes: Blank text raises ValueError; a concurrent turn raises
            TurnInProgressError. Any step failure ends in FAILED with the fixed apology
            and untouched product results; it is never raised to the caller.
        """
        if not text or not text.strip():
            raise ValueError("message must not be empty")
        if not self._lock.acquire(blocking=False):
            raise TurnInProgressError(f"session {self.session_id} is processing another message")
        try:
            self._processing = True
            prior_history = list(self._history)
            self._history.append(ChatMessage(role=ROLE_USER, text=text))
            context = TurnContext(session_id=self.session_id, user_message=text, history=prior_history)
            logger.info("session=%s turn=%s question=%s", self.session_id, context.turn_id, text)
            try:
                self._runner.run(context)
            except Exception as exc:
                self._fail(context, exc)
            return TurnResult(
                reply=context.reply,
                products=self.products,
                intent=context.intent,
                state=context.state,
                action_label=context.action_label,
                action_link=context.action_link,
                thinking_logs=context.thinking_logs,
            )
        finally:
            self._processing = False
            self._lock.release()

    def _step_classify(self, context: TurnContext) -> None:
        """Resolve intent: heuristic fast path, then semantic match or criteria extraction."""
        local = detect_local_intent(context.user_message)
        if local is not None:
            context.criteria = local
            context.route = "heuristic"
        elif self._settings.semantic_search and self._reasoning.enabled:
            catalog = self._inventory.catalog()
            context.semantic = self._reasoning.semantic_match(context.user_message, context.history, catalog)
            context.criteria = context.semantic.criteria
            context.route = "semantic"
        else:
            context.criteria = self._reasoning.extract_criteria(context.user_message)
            context.route = "reasoning" if self._reasoning.enabled else "local"
        logger.info(
            "session=%s turn=%s intent=%s route=%s criteria=%s",
            context.session_id,
            context.turn_id,
            context.intent,
            context.route,
            context.criteria.to_dict(),
        )

    def _step_search(self, context: TurnContext) -> None:
        if context.semantic is not None:
            # A failed match keeps the previous results on screen.
            if not context.semantic.failed:
                context.products = list(context.semantic.matches)
            return
        context.products = self._inventory.search(context.criteria)

    def _step_direct_reply(self, context: TurnContext) -> None:
        criteria = context.criteria
        if isinstance(criteria, AgentHandoff):
            context.reply = criteria.reply
            context.action_label = HANDOFF_LABEL
            context.action_link = build_whatsapp_link(
                self._settings.whatsapp_number,
                HANDOFF_GREETING.format(message=context.user_message.strip()),
            )
        elif isinstance(criteria, ChatReply):
            context.reply = criteria.reply

    def _step_summarize(self, context: TurnContext) -> None:
        if context.semantic is not None:
            context.reply = context.semantic.reply
            return
        context.reply = self._reasoning.summarize(context.user_message, context.products or [], context.criteria)

    def _step_deliver(self, context: TurnContext) -> None:
        message = ChatMessage(
            role=ROLE_MODEL,
            text=context.reply,
            action_label=context.action_label,
            action_link=context.action_link,
        )
        if context.products is not None:
            self._products = list(context.products)
        self._history.append(message)
        logger.info(
            "session=%s turn=%s state=%s products=%d answer=%s",
            context.session_id,
            context.turn_id,
            context.state,
            len(self._products),
            context.reply,
        )

    def _fail(self, context: TurnContext, exc: Exception) -> None:
        logger.error(
            "session=%s turn=%s state=%s error=%s",
            context.session_id,
            context.turn_id,
            context.state,
            exc,
            exc_info=True,
        )
        context.log(context.state, str(exc), status="error")
        context.state = FAILED
        context.states.append(FAILED)
        context.reply = FAILURE_REPLY
        context.action_label = None
        context.action_link = None
        self._history.append(ChatMessage(role=ROLE_MODEL, text=FAILURE_REPLY))

