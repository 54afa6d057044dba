"""Remote reasoning operations backed by Gemini, each with a deterministic local fallback.

Operations:
    extract_criteria:
        Message -> Criteria. Falls back to the local heuristic, then to a raw-text search.
    semantic_match:
        Message + history + catalog -> SemanticMatch. Only ids are trusted from the model;
        products are always resolved against the supplied catalog.
    summarize:
        Query + products + criteria -> reply text. Falls back to a count-based sentence.

None of the operations raise on transport, timeout or parse failures. Without credentials
the network is never touched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .config import Settings
from .criteria import INTENTS, Criteria, SearchCriteria, parse_criteria, raw_text_criteria
from .gemini_client import GeminiClient, history_to_contents
from .heuristics import detect_local_intent
from .models import ChatMessage, Product
from .prompt_loader import render_prompt
from .utils import safe_json_loads

logger = logging.getLogger("autoparts.reasoning")

CLASSIFIER_INSTRUCTION = (
    "You are a smart assistant. Distinguish between Product Search, Small Talk, "
    "and requests requiring a Human Agent (Wholesale/Info)."
)
SEMANTIC_FAILURE_REPLY = (
    "Perdón, no pude procesar tu consulta en este momento. "
    "¿Me la repetís indicando la pieza, la marca y el modelo del vehículo?"
)

_STRING = {"type": "STRING"}

CRITERIA_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "intent": {"type": "STRING", "enum": list(INTENTS)},
        "conversationalReply": _STRING,
        "expertAdvice": _STRING,
        "partName": _STRING,
        "make": _STRING,
        "model": _STRING,
        "year": _STRING,
        "category": _STRING,
    },
    "required": ["intent"],
}

SEMANTIC_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "intent": {"type": "STRING", "enum": list(INTENTS)},
        "matchIds": {"type": "ARRAY", "items": _STRING},
        "reply": _STRING,
        "expertAdvice": _STRING,
        "partName": _STRING,
        "make": _STRING,
        "model": _STRING,
        "year": _STRING,
    },
    "required": ["matchIds", "reply"],
}


@dataclass
class SemanticMatch:
    """Outcome of a semantic match; ``failed`` marks the apologetic fallback."""
    matches: List[Product]
    reply: str
    criteria: Criteria
    failed: bool = False


def summary_fallback(count: int, attempted: bool = False) -> str:
    if attempted:
        return f"He encontrado {count} productos compatibles."
    return f"Encontré {count} resultados para tu búsqueda."


def condense_catalog(catalog: Sequence[Product]) -> List[Dict[str, Any]]:
    """Reduce products to the fields the model needs to pick ids."""
    return [
        {
            "id": product.id,
            "name": product.name,
            "compatibleModels": list(product.compatible_models),
            "category": product.category,
            "price": product.price,
        }
        for product in catalog
    ]


class ReasoningClient:
    def __init__(self, settings: Settings, gemini: Optional[GeminiClient] = None) -> None:
        """Purpose: Bind the reasoning operations to settings and an optional Gemini client.
        Inputs/Outputs: Settings plus an injected client (tests); no return value.
        Side Effects / State: Builds a GeminiClient when credentials exist and none is given.
        Failure Modes: None; missing credentials simply disable remote calls.
        """
        self._settings = settings
        if gemini is None and settings.has_credentials:
            gemini = GeminiClient(settings)
        self._gemini = gemini

    @property
    def enabled(self) -> bool:
        return self._gemini is not None

    def extract_criteria(self, text: str) -> Criteria:
        """Purpose: Classify a message and extract search fields through the model.
        Inputs/Outputs: Raw user text; returns a Criteria variant.
        Failure Modes: Transport errors, timeouts and unparseable output all return the
            local heuristic result if any, else ``SearchCriteria(part_name=text)``.
        """
        fallback = detect_local_intent(text) or raw_text_criteria(text)
        if not self.enabled:
            logger.info("op=extract_criteria route=local intent=%s", fallback.intent)
            return fallback

        prompt = render_prompt(self._settings.prompts_dir / "intent_detection.txt", message=text)
        try:
            raw = self._gemini.generate_json(prompt, CRITERIA_SCHEMA, system_instruction=CLASSIFIER_INSTRUCTION)
        except Exception as exc:
            logger.warning("op=extract_criteria status=transport_error error=%s", exc)
            return fallback

        data = safe_json_loads(raw)
        if data is None:
            logger.warning("op=extract_criteria status=parse_error raw=%r", raw[:200])
            return fallback
        criteria = parse_criteria(data, text)
        logger.debug("op=extract_criteria criteria=%s", json.dumps(criteria.to_dict(), ensure_ascii=False))
        return criteria

    def semantic_match(self, text: str, history: Sequence[ChatMessage], catalog: Sequence[Product]) -> SemanticMatch:
        """Purpose: Let the model pick catalog ids for the message, using recent history.
        Inputs/Outputs: Message, prior conversation (current message excluded) and the
            authoritative catalog; returns a SemanticMatch.
        Side Effects / State: One network call when credentials exist.
        Failure Modes: Any transport, schema or parse failure returns empty matches and
            SEMANTIC_FAILURE_REPLY with ``failed=True``; never raises.
        Testing Notes: Unknown ids in the response must never surface as products.
        """
        if not self.enabled:
            logger.info("op=semantic_match route=disabled")
            return _semantic_failure()

        catalog_json = json.dumps(condense_catalog(catalog), ensure_ascii=False)
        system_instruction = render_prompt(self._settings.prompts_dir / "semantic_match.txt", catalog_json=catalog_json)
        contents = history_to_contents(list(history), self._settings.history_window)
        contents.append({"role": "user", "parts": [{"text": text}]})
        try:
            raw = self._gemini.generate_json(contents, SEMANTIC_SCHEMA, system_instruction=system_instruction)
        except Exception as exc:
            logger.warning("op=semantic_match status=transport_error error=%s", exc)
            return _semantic_failure()

        data = safe_json_loads(raw)
        if data is None or not isinstance(data.get("matchIds"), list):
            logger.warning("op=semantic_match status=schema_error raw=%r", (raw or "")[:200])
            return _semantic_failure()

        by_id = {product.id: product for product in catalog}
        matches: List[Product] = []
        unknown: List[str] = []
        for value in data["matchIds"]:
            product_id = str(value).strip()
            product = by_id.get(product_id)
            if product is None:
                unknown.append(product_id)
            elif product not in matches:
                matches.append(product)
        if unknown:
            logger.warning("op=semantic_match dropped_unknown_ids=%s", unknown)

        reply = str(data.get("reply") or "").strip()
        criteria = parse_criteria({**data, "conversationalReply": reply})
        if isinstance(criteria, SearchCriteria):
            reply = reply or summary_fallback(len(matches))
        else:
            # Small talk and handoffs never carry products.
            matches = []
            reply = criteria.reply
        logger.info("op=semantic_match intent=%s matches=%d", criteria.intent, len(matches))
        return SemanticMatch(matches=matches, reply=reply, criteria=criteria)

    def summarize(self, query: str, products: Sequence[Product], criteria: SearchCriteria) -> str:
        """Purpose: Produce a short sales-style summary of the search results.
        Inputs/Outputs: Query, final product list and criteria; returns non-empty text.
        Failure Modes: Returns a count-based sentence on missing credentials, transport
            errors, timeouts or an empty model answer.
        """
        if not self.enabled:
            return summary_fallback(len(products))

        preview = [
            {
                "name": product.name,
                "price": product.price,
                "currency": product.currency,
                "compatibleModels": list(product.compatible_models),
                "stock": product.stock,
            }
            for product in list(products)[: self._settings.summary_preview]
        ]
        advice = f"Diagnóstico sugerido: {criteria.expert_advice}\n" if criteria.expert_advice else ""
        prompt = render_prompt(
            self._settings.prompts_dir / "summary.txt",
            query=query,
            criteria_json=json.dumps(criteria.to_dict(), ensure_ascii=False),
            count=str(len(products)),
            products_json=json.dumps(preview, ensure_ascii=False),
            advice=advice,
        )
        try:
            text = self._gemini.generate_text(prompt)
        except Exception as exc:
            logger.warning("op=summarize status=transport_error error=%s", exc)
            return summary_fallback(len(products), attempted=True)
        return text.strip() or summary_fallback(len(products), attempted=True)


def _semantic_failure() -> SemanticMatch:
    return SemanticMatch(matches=[], reply=SEMANTIC_FAILURE_REPLY, criteria=SearchCriteria(), failed=True)
