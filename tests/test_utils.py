import pytest

from autoparts_assistant.utils import (
    build_whatsapp_link,
    normalize_text,
    safe_json_loads,
    singular_variants,
    strip_json_fences,
)


def test_normalize_text_strips_accents_and_punctuation():
    assert normalize_text("¡Hola!!") == "hola"
    assert normalize_text("  Suspensión   TRASERA ") == "suspension trasera"
    assert normalize_text("") == ""


@pytest.mark.parametrize(
    "raw",
    [
        '{"intent": "CHAT"}',
        '```json\n{"intent": "CHAT"}\n```',
        '```\n{"intent": "CHAT"}\n```',
        'Claro, aquí está:\n```json\n{"intent": "CHAT"}\n```\nSaludos',
        'Respuesta: {"intent": "CHAT"} fin',
        '```json\n{"intent": "CHAT"}',
        '\ufeff{"intent": "CHAT"}',
    ],
)
def test_safe_json_loads_accepts_wrapped_objects(raw):
    assert safe_json_loads(raw) == {"intent": "CHAT"}


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "lo siento, no puedo ayudar",
        '```json\n{"intent": "CHAT",\n```',
        '{"intent": }',
        "[1, 2, 3]",
        "} {",
    ],
)
def test_safe_json_loads_rejects_malformed(raw):
    assert safe_json_loads(raw) is None


def test_strip_json_fences_keeps_unfenced_text():
    assert strip_json_fences('  {"a": 1}  ') == '{"a": 1}'
    assert strip_json_fences('```JSON\n{"a": 1}```') == '{"a": 1}'


def test_singular_variants():
    assert "filtro" in singular_variants("filtros")
    assert "motor" in singular_variants("motores")
    assert singular_variants("freno") == ["freno"]


def test_build_whatsapp_link_uses_digits_only():
    link = build_whatsapp_link("+54 9 11 2233-4455", "Hola, quiero hablar")
    assert link == "https://wa.me/5491122334455?text=Hola%2C%20quiero%20hablar"
