"""Shared fixtures: settings without credentials, a small catalog and a scripted Gemini fake."""

import pytest

from autoparts_assistant.config import Settings
from autoparts_assistant.inventory import LocalInventory
from autoparts_assistant.models import Product
from autoparts_assistant.orchestrator import ConversationOrchestrator
from autoparts_assistant.reasoning import ReasoningClient


class FakeGemini:
    """Stands in for GeminiClient; replays scripted answers or raises."""

    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    def _next(self, kind, payload, kwargs):
        self.calls.append({"kind": kind, "payload": payload, **kwargs})
        if self.error is not None:
            raise self.error
        if not self.responses:
            return ""
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def generate_json(self, contents, schema, **kwargs):
        return self._next("json", contents, {"schema": schema, **kwargs})

    def generate_text(self, prompt, **kwargs):
        return self._next("text", prompt, kwargs)


def make_product(product_id, name, compatible, category="General", price=10.0, description=""):
    return Product(
        id=product_id,
        name=name,
        category=category,
        price=price,
        currency="USD",
        compatibleModels=compatible,
        stock=5,
        imageUrl="",
        description=description or name,
    )


@pytest.fixture
def settings():
    return Settings(gemini_api_key="", min_search_delay=0.0, whatsapp_number="+54 9 11 2233-4455")


@pytest.fixture
def products():
    return [
        make_product("REP-003", "Bomba de Agua", ["Ford Fiesta"], category="Refrigeración"),
        make_product("REP-004", "Juego de Pastillas de Freno", ["Volkswagen", "Gol"], category="Frenos"),
        make_product("REP-005", "Filtro de Aceite", ["Fiat", "Palio"], category="Mantenimiento"),
        make_product("REP-006", "Batería 12V", ["Ford", "Fiesta", "Gol"], category="Eléctrico"),
    ]


@pytest.fixture
def make_orchestrator(settings, products):
    def factory(gemini=None, inventory=None, custom_settings=None):
        active = custom_settings or settings
        reasoning = ReasoningClient(active, gemini=gemini)
        return ConversationOrchestrator(active, reasoning, inventory or LocalInventory(products))

    return factory
