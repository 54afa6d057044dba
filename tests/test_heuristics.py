import pytest

from autoparts_assistant.criteria import AgentHandoff, ChatReply
from autoparts_assistant.heuristics import GREETING_REPLY, HANDOFF_REPLY, detect_local_intent


@pytest.mark.parametrize("message", ["Hola", "hola!!", "  HOLA  ", "buenas tardes", "Gracias!", "ok gracias", "chau."])
def test_greetings_are_chat(message):
    result = detect_local_intent(message)
    assert isinstance(result, ChatReply)
    assert result.reply == GREETING_REPLY


@pytest.mark.parametrize(
    "message",
    [
        "quiero precio por mayor",
        "quiero comprar al mayor",
        "Soy mayorista de Córdoba",
        "me interesa ser distribuidor",
        "puedo hablar con un asesor?",
        "I want to talk to a human",
        "hola, precio por mayor?",
        "hay asesores disponibles?",
    ],
)
def test_escalation_keywords_are_agent(message):
    result = detect_local_intent(message)
    assert isinstance(result, AgentHandoff)
    assert result.reply == HANDOFF_REPLY


@pytest.mark.parametrize(
    "message",
    [
        "hola necesito pastillas de freno",
        "bomba de agua para fiesta",
        "soporte de motor para gol",
        "necesito asesoramiento con las pastillas",
        "bomba de freno del pedal mayor",
        "",
    ],
)
def test_other_messages_defer(message):
    assert detect_local_intent(message) is None
