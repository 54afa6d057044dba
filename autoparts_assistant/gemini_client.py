from __future__ import annotations

from typing import Any, Dict, Optional

import google.generativeai as genai
from google.generativeai.types import HarmBlockThreshold, HarmCategory

from .config import Settings

DEFAULT_SAFETY_SETTINGS = [
    {"category": HarmCategory.HARM_CATEGORY_HARASSMENT, "threshold": HarmBlockThreshold.BLOCK_NONE},
    {"category": HarmCategory.HARM_CATEGORY_HATE_SPEECH, "threshold": HarmBlockThreshold.BLOCK_NONE},
    {"category": HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT, "threshold": HarmBlockThreshold.BLOCK_NONE},
    {"category": HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT, "threshold": HarmBlockThreshold.BLOCK_NONE},
]


class GeminiClient:
    """Thin wrapper around Gemini SDK with model caching, JSON mode and timeouts."""

    def __init__(self, settings: Settings) -> None:
        """Purpose: Configure the Gemini SDK and initialize model cache.
        Inputs/Outputs: Input is Settings; no return value.
        Side Effects / State: Configures SDK global API key and caches model instances.
        Failure Modes: Raises ValueError if API key or model name is missing.
        Testing Notes: Callers without credentials never construct this class.
        """
        # Configure API key and seed default model cache.
        if not settings.has_credentials:
            raise ValueError("GEMINI_API_KEY is required")
        genai.configure(api_key=settings.gemini_api_key)
        self._timeout = settings.request_timeout
        self._models: Dict[str, genai.GenerativeModel] = {}
        self._default_model = _normalize_model_name(settings.gemini_model)
        if self._default_model:
            self._models[self._default_model] = genai.GenerativeModel(self._default_model)

    def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        temperature: float = 0.4,
        max_output_tokens: int = 1024,
    ) -> str:
        """Purpose: Generate a single free-text response from a string prompt.
        Inputs/Outputs: Input is prompt string and optional model/config; returns text.
        Failure Modes: SDK transport, timeout and blocked-response errors propagate.
        """
        response = self._get_model(model, system_instruction).generate_content(
            prompt,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            },
            safety_settings=DEFAULT_SAFETY_SETTINGS,
            request_options={"timeout": self._timeout},
        )
        return _response_text(response)

    def generate_json(
        self,
        contents: Any,
        schema: Dict[str, Any],
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        temperature: float = 0.1,
        max_output_tokens: int = 4096,
    ) -> str:
        """Purpose: Generate a response constrained to a JSON schema.
        Inputs/Outputs: Input is a prompt string or role-tagged contents plus an
            OpenAPI-style schema dict; returns the raw response text (unparsed).
        Side Effects / State: May add a model to the internal cache.
        Failure Modes: SDK transport, timeout and blocked-response errors propagate;
            the caller still has to parse defensively, the service may fence the JSON.
        """
        response = self._get_model(model, system_instruction).generate_content(
            contents,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
                "response_mime_type": "application/json",
                "response_schema": schema,
            },
            safety_settings=DEFAULT_SAFETY_SETTINGS,
            request_options={"timeout": self._timeout},
        )
        return _response_text(response)

    def _get_model(self, model: Optional[str], system_instruction: Optional[str]) -> genai.GenerativeModel:
        # System instructions are bound per model instance, so those are not cached.
        model_name = _normalize_model_name(model) if model else self._default_model
        if not model_name:
            raise ValueError("Gemini model name is required")
        if system_instruction:
            return genai.GenerativeModel(model_name, system_instruction=system_instruction)
        if model_name not in self._models:
            self._models[model_name] = genai.GenerativeModel(model_name)
        return self._models[model_name]


def _response_text(response: object) -> str:
    text: Optional[str] = getattr(response, "text", None)
    return (text or "").strip()


def _normalize_model_name(name: Optional[str]) -> str:
    """Purpose: Normalize model names by stripping prefix and whitespace.
    Inputs/Outputs: Input is a model name string; output is normalized name.
    Failure Modes: Returns empty string for falsy input.
    Testing Notes: Ensure "models/foo" becomes "foo" and whitespace is trimmed.
    """
    # Strip "models/" prefix and whitespace.
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned


def history_to_contents(history: list, limit: int) -> list:
    """Convert the most recent chat messages into Gemini role-tagged contents."""
    contents = []
    for message in history[-limit:] if limit > 0 else []:
        text = getattr(message, "text", "")
        role = getattr(message, "role", "")
        if not text or role == "system":
            continue
        contents.append({"role": "user" if role == "user" else "model", "parts": [{"text": text}]})
    # The API rejects a conversation that opens with a model turn.
    while contents and contents[0]["role"] != "user":
        contents.pop(0)
    return contents
