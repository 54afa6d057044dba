from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

from .config import Settings, load_settings
from .inventory import Inventory, build_inventory
from .models import ChatRequest, ChatResponse
from .orchestrator import ConversationOrchestrator, TurnInProgressError
from .reasoning import ReasoningClient
from .session_store import SessionStore

BASE_DIR = Path(__file__).resolve().parent

log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logging.getLogger("autoparts").setLevel(log_level)
logger = logging.getLogger("autoparts.app")

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)


def build_app(
    settings: Settings,
    reasoning: Optional[ReasoningClient] = None,
    inventory: Optional[Inventory] = None,
) -> FastAPI:
    """Purpose: Wire settings, reasoning client, inventory and sessions into the HTTP API.
    Inputs/Outputs: Settings plus optional pre-built collaborators (tests); returns FastAPI.
    Side Effects / State: Loads the local catalog when the local strategy is selected;
        the inventory is closed on application shutdown.
    Failure Modes: A missing or malformed local catalog file raises at startup.
    """
    reasoning = reasoning or ReasoningClient(settings)
    inventory = inventory or build_inventory(settings)
    sessions = SessionStore(
        lambda session_id: ConversationOrchestrator(settings, reasoning, inventory, session_id=session_id),
        max_sessions=settings.max_sessions,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        inventory.close()
        logger.info("inventory closed")

    api = FastAPI(title="Autoparts Sales Assistant", lifespan=lifespan)
    api.state.sessions = sessions

    @api.post("/api/chat", response_model=ChatResponse)
    def chat(request: ChatRequest) -> ChatResponse:
        """Purpose: Run one conversation turn for the session.
        Inputs/Outputs: ChatRequest; returns ChatResponse with reply, products and
            optional handoff action.
        Failure Modes: Blank messages return 400; a turn already in flight for the same
            session returns 409. Pipeline failures come back as a normal apology reply.
        """
        if not request.message.strip():
            raise HTTPException(status_code=400, detail="message must not be empty")
        conversation = sessions.get_or_create(request.session_id)
        try:
            result = conversation.handle_message(request.message)
        except TurnInProgressError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        sessions.touch(conversation.session_id, request.message)
        return ChatResponse(
            session_id=conversation.session_id,
            reply=result.reply,
            intent=result.intent,
            products=result.products,
            action_label=result.action_label,
            action_link=result.action_link,
            thinking_logs=result.thinking_logs,
        )

    @api.get("/api/sessions")
    def list_sessions() -> List[dict]:
        return [summary.model_dump() for summary in sessions.list_sessions()]

    @api.get("/api/sessions/{session_id}")
    def get_session(session_id: str) -> dict:
        """Purpose: Return the transcript and current product results of a session.
        Failure Modes: Unknown sessions return 404.
        """
        conversation = sessions.get(session_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="session not found")
        return {
            "session_id": session_id,
            "messages": [message.model_dump() for message in conversation.history],
            "products": [product.model_dump(by_alias=True) for product in conversation.products],
        }

    return api


app = build_app(load_settings())
