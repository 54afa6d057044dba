import pytest

from autoparts_assistant.criteria import (
    DEFAULT_AGENT_REPLY,
    DEFAULT_CHAT_REPLY,
    AgentHandoff,
    ChatReply,
    SearchCriteria,
    parse_criteria,
)


def test_missing_intent_defaults_to_search():
    criteria = parse_criteria({"partName": "bujía", "make": "Fiat"})
    assert isinstance(criteria, SearchCriteria)
    assert criteria.part_name == "bujía"
    assert criteria.make == "Fiat"


def test_unknown_intent_defaults_to_search():
    assert isinstance(parse_criteria({"intent": "BUY", "partName": "filtro"}), SearchCriteria)


def test_chat_without_reply_gets_canned_reply():
    criteria = parse_criteria({"intent": "chat", "conversationalReply": "   "})
    assert isinstance(criteria, ChatReply)
    assert criteria.reply == DEFAULT_CHAT_REPLY


def test_agent_keeps_model_reply():
    criteria = parse_criteria({"intent": "AGENT", "conversationalReply": "Te paso con un asesor."})
    assert isinstance(criteria, AgentHandoff)
    assert criteria.reply == "Te paso con un asesor."
    assert parse_criteria({"intent": "AGENT"}).reply == DEFAULT_AGENT_REPLY


def test_empty_search_falls_back_to_raw_text():
    criteria = parse_criteria({"intent": "SEARCH", "partName": "null", "year": 2015}, "algo para mi auto")
    assert criteria.part_name == "algo para mi auto"
    assert criteria.year == "2015"


def test_reply_variants_reject_empty_reply():
    with pytest.raises(ValueError):
        ChatReply(reply="")
    with pytest.raises(ValueError):
        AgentHandoff(reply="  ")


def test_to_dict_drops_absent_fields():
    assert SearchCriteria(part_name="freno", model="Gol").to_dict() == {
        "intent": "SEARCH",
        "partName": "freno",
        "model": "Gol",
    }
