from __future__ import annotations

import re
from typing import Optional, Union

from .criteria import AgentHandoff, ChatReply
from .utils import normalize_text

GREETING_REPLY = (
    "¡Hola! Soy tu experto en repuestos. Decime qué pieza necesitás y para qué vehículo "
    "(por ejemplo: \"pastillas de freno para Gol 2015\")."
)
HANDOFF_REPLY = (
    "¡Con gusto! Para ventas por mayor, distribución o consultas especiales te atiende "
    "directamente un asesor. Tocá el botón para escribirnos por WhatsApp."
)

GREETING_WORDS = [
    "hola",
    "holis",
    "buenas",
    "buen dia",
    "buenos dias",
    "buenas tardes",
    "buenas noches",
    "que tal",
    "gracias",
    "muchas gracias",
    "mil gracias",
    "chau",
    "chao",
    "adios",
    "hasta luego",
    "saludos",
    "hi",
    "hello",
    "hey",
    "thanks",
    "thank you",
    "bye",
]
GREETING_RE = re.compile(
    r"^(?:(?:ok|oka?y?|dale|bueno)\s+)?(?:"
    + "|".join(re.escape(word) for word in sorted(GREETING_WORDS, key=len, reverse=True))
    + r")(?:\s+(?:" + "|".join(re.escape(word) for word in GREETING_WORDS) + r"))*[\s.!?]*$"
)

ESCALATION_TERMS = [
    "por mayor",
    "al mayor",
    "mayorista",
    "mayoristas",
    "mayoreo",
    "distribuidor",
    "distribuidores",
    "distribuir",
    "gremio",
    "revendedor",
    "revendedores",
    "hablar con alguien",
    "hablar con una persona",
    "hablar con un humano",
    "hablar con un asesor",
    "hablar con un vendedor",
    "asesor",
    "asesores",
    "agente",
    "agentes",
    "hablar con soporte",
    "atencion al cliente",
    "wholesale",
    "distributor",
    "bulk",
    "talk to agent",
    "talk to an agent",
    "talk to a human",
    "human agent",
]

# Whole words only: "asesor" must not fire on "asesoramiento", nor "al mayor" on "pedal mayor".
ESCALATION_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(term) for term in sorted(ESCALATION_TERMS, key=len, reverse=True)) + r")\b"
)


def is_greeting(message: str) -> bool:
    """Whole-input match against greeting/thanks/farewell tokens, trailing punctuation allowed."""
    normalized = normalize_text(message)
    if not normalized:
        return False
    return bool(GREETING_RE.match(normalized))


def is_escalation_request(message: str) -> bool:
    normalized = normalize_text(message)
    return bool(ESCALATION_RE.search(normalized))


def detect_local_intent(message: str) -> Optional[Union[ChatReply, AgentHandoff]]:
    """Purpose: Classify the two cheap, high-confidence cases without any network call.
    Inputs/Outputs: Input is raw message text; output is a ChatReply (greeting/closing),
        an AgentHandoff (escalation keyword anywhere in the text) or None to defer.
    Side Effects / State: None; pure function.
    Testing Notes: "hola!!" -> CHAT; "precio por mayor" -> AGENT; part requests -> None.
    """
    # Escalation wins over greeting ("hola, quiero precio por mayor").
    if is_escalation_request(message):
        return AgentHandoff(reply=HANDOFF_REPLY)
    if is_greeting(message):
        return ChatReply(reply=GREETING_REPLY)
    return None
