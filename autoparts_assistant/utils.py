import json
import re
import unicodedata
from typing import Any, Dict, List, Optional
from urllib.parse import quote

FENCE_RE = re.compile(r"```(?:[a-zA-Z0-9_-]+)?\s*(.*?)```", re.DOTALL)


def normalize_text(text: str) -> str:
    """Purpose: Normalize free-form text for stable matching in the pipeline.
    Inputs/Outputs: Input is a raw string; output is a lowercase ASCII-only string with
        diacritics removed and whitespace collapsed.
    Side Effects / State: None; pure function.
    Dependencies: Uses unicodedata and regex; called by the intent heuristic and the
        local inventory filter.
    Failure Modes: Returns an empty string when input is falsy; punctuation such as
        "!" or "?" is dropped, which is intended for matching.
    Testing Notes: "¡Hola!!" -> "hola", "Suspensión" -> "suspension".
    """
    # Normalize to lowercase and strip diacritics for consistent matching.
    if not text:
        return ""
    lowered = str(text).lower()
    decomposed = unicodedata.normalize("NFD", lowered)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    cleaned = re.sub(r"[^a-z0-9\s\-_/.]+", " ", stripped)
    return re.sub(r"\s+", " ", cleaned).strip()


def normalize_key(text: str) -> str:
    """Compact normalization key without spaces, used for column-name matching."""
    return normalize_text(text).replace(" ", "")


def singular_variants(term: str) -> List[str]:
    """Return the term plus naive singular forms ("filtros" -> "filtro", "motores" -> "motor")."""
    variants = [term]
    if len(term) > 3 and term.endswith("es"):
        variants.append(term[:-2])
    if len(term) > 2 and term.endswith("s"):
        variants.append(term[:-1])
    return variants


def strip_json_fences(text: str) -> str:
    """Purpose: Remove markdown code fences and surrounding prose from model output.
    Inputs/Outputs: Input is raw model text; output is the most likely JSON payload
        (still unparsed).
    Side Effects / State: None; pure function.
    Dependencies: Shared by every reasoning operation through safe_json_loads.
    Failure Modes: Returns the trimmed input when no fence is found; an unterminated
        fence is dropped from the front only.
    Testing Notes: Cover ```json fences, bare ``` fences, prose before/after, and
        unterminated fences.
    """
    # Prefer the first fenced block, then tolerate an opening fence with no close.
    if not text:
        return ""
    cleaned = text.strip().lstrip("\ufeff").strip()
    match = FENCE_RE.search(cleaned)
    if match:
        return match.group(1).strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned[:4].lower() == "json":
            cleaned = cleaned[4:]
    return cleaned.strip()


def extract_json_block(text: str) -> Optional[str]:
    """Purpose: Extract the first JSON object block from an arbitrary string.
    Inputs/Outputs: Input is a raw string; output is JSON substring or None.
    Side Effects / State: None; pure function.
    Failure Modes: Returns None if braces are missing or inverted.
    """
    # Locate the outermost JSON braces to extract a parseable block.
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1]


def safe_json_loads(text: str) -> Optional[Dict[str, Any]]:
    """Purpose: Parse a JSON object from a model output string safely.
    Inputs/Outputs: Input is raw text; output is a dict or None if parsing fails.
    Side Effects / State: None; pure function.
    Dependencies: Uses strip_json_fences, extract_json_block and json.loads.
    Failure Modes: Returns None on JSONDecodeError, missing JSON block, or a
        top-level value that is not an object.
    Testing Notes: Valid, fenced, prose-wrapped, truncated and non-object payloads.
    """
    # Parse only the extracted JSON block to avoid non-JSON prefixes/suffixes.
    block = extract_json_block(strip_json_fences(text))
    if not block:
        return None
    try:
        data = json.loads(block)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    return data


def build_whatsapp_link(phone: str, message: str) -> str:
    """Build a wa.me deep link with the non-digit characters stripped from the phone."""
    digits = re.sub(r"[^0-9]", "", phone or "")
    return f"https://wa.me/{digits}?text={quote(message)}"
