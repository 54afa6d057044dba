from __future__ import annotations

import time
import uuid
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ROLE_USER = "user"
ROLE_MODEL = "model"
ROLE_SYSTEM = "system"


class Product(BaseModel):
    """Catalog record; immutable once loaded from the local dataset or the remote source."""
    # Spreadsheet-backed sources send numeric codes ("Codigo": 1001).
    model_config = ConfigDict(frozen=True, populate_by_name=True, coerce_numbers_to_str=True)

    id: str
    name: str
    category: str = ""
    price: float = Field(default=0.0, ge=0)
    currency: str = "USD"
    compatible_models: List[str] = Field(default_factory=list, alias="compatibleModels")
    stock: int = Field(default=0, ge=0)
    image_url: str = Field(default="", alias="imageUrl")
    description: str = ""


class ChatMessage(BaseModel):
    """One entry of the append-only conversation history."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "model", "system"]
    text: str
    timestamp: float = Field(default_factory=time.time)
    action_label: Optional[str] = None
    action_link: Optional[str] = None


class ChatRequest(BaseModel):
    """Request payload for chat API."""
    session_id: Optional[str] = Field(default=None)
    message: str


class ChatResponse(BaseModel):
    """Response payload returned by the chat API."""
    session_id: str
    reply: str
    intent: str
    products: List[Product]
    action_label: Optional[str] = None
    action_link: Optional[str] = None
    thinking_logs: List[Dict[str, str]] = Field(default_factory=list)


class SessionSummary(BaseModel):
    """Lightweight session summary for sidebar listing."""
    session_id: str
    title: str
    updated_at: float
