"""Structured criteria shared by the heuristic, the reasoning client and the search engine.

A turn resolves to exactly one of three variants. Only ``SearchCriteria`` reaches the
inventory; ``ChatReply`` and ``AgentHandoff`` always carry a non-empty reply.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Union

INTENT_SEARCH = "SEARCH"
INTENT_CHAT = "CHAT"
INTENT_AGENT = "AGENT"
INTENTS = (INTENT_SEARCH, INTENT_CHAT, INTENT_AGENT)

DEFAULT_CHAT_REPLY = "¡Hola! Contame qué repuesto estás buscando y para qué vehículo, así te ayudo."
DEFAULT_AGENT_REPLY = (
    "Para ese tipo de consulta te conviene hablar con uno de nuestros asesores. "
    "Te dejo el enlace para contactarnos directamente."
)


@dataclass(frozen=True)
class SearchCriteria:
    intent: ClassVar[str] = INTENT_SEARCH

    part_name: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[str] = None
    category: Optional[str] = None
    expert_advice: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.part_name or self.make or self.model)

    def to_dict(self) -> Dict[str, str]:
        """Wire view with camelCase keys and absent fields dropped."""
        payload = {
            "intent": self.intent,
            "partName": self.part_name,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "category": self.category,
            "expertAdvice": self.expert_advice,
        }
        return {key: value for key, value in payload.items() if value}


@dataclass(frozen=True)
class ChatReply:
    intent: ClassVar[str] = INTENT_CHAT

    reply: str
    expert_advice: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.reply or "").strip():
            raise ValueError("ChatReply requires a non-empty reply")

    def to_dict(self) -> Dict[str, str]:
        return {"intent": self.intent, "conversationalReply": self.reply}


@dataclass(frozen=True)
class AgentHandoff:
    intent: ClassVar[str] = INTENT_AGENT

    reply: str

    def __post_init__(self) -> None:
        if not (self.reply or "").strip():
            raise ValueError("AgentHandoff requires a non-empty reply")

    def to_dict(self) -> Dict[str, str]:
        return {"intent": self.intent, "conversationalReply": self.reply}


Criteria = Union[SearchCriteria, ChatReply, AgentHandoff]


def raw_text_criteria(text: str) -> SearchCriteria:
    """Last-resort guess: the whole message is the part name."""
    return SearchCriteria(part_name=text.strip() or None)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned or cleaned.lower() in {"null", "none", "n/a"}:
        return None
    return cleaned


def parse_criteria(data: Dict[str, Any], raw_text: str = "") -> Criteria:
    """Purpose: Build a criteria variant from a decoded model payload.
    Inputs/Outputs: Input is a dict using the wire (camelCase) keys and the raw user
        text; output is SearchCriteria, ChatReply or AgentHandoff.
    Failure Modes: Unknown or missing intent is treated as SEARCH; CHAT/AGENT with an
        empty reply get the canned reply; a SEARCH payload with no usable field falls
        back to the raw text as part name.
    """
    # Normalize intent first; absent means SEARCH.
    intent = str(data.get("intent") or INTENT_SEARCH).strip().upper()
    if intent not in INTENTS:
        intent = INTENT_SEARCH
    reply = _clean(data.get("conversationalReply"))
    if intent == INTENT_CHAT:
        return ChatReply(reply=reply or DEFAULT_CHAT_REPLY, expert_advice=_clean(data.get("expertAdvice")))
    if intent == INTENT_AGENT:
        return AgentHandoff(reply=reply or DEFAULT_AGENT_REPLY)

    criteria = SearchCriteria(
        part_name=_clean(data.get("partName")),
        make=_clean(data.get("make")),
        model=_clean(data.get("model")),
        year=_clean(data.get("year")),
        category=_clean(data.get("category")),
        expert_advice=_clean(data.get("expertAdvice")),
    )
    if criteria.is_empty() and raw_text.strip():
        return SearchCriteria(
            part_name=raw_text.strip(),
            year=criteria.year,
            category=criteria.category,
            expert_advice=criteria.expert_advice,
        )
    return criteria
