from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

PLACEHOLDER_RE = re.compile(r"<<([A-Z_]+)>>")


@lru_cache(maxsize=32)
def load_prompt(prompt_path: Path) -> str:
    """Purpose: Load a prompt file as UTF-8 text and strip BOM if present.
    Inputs/Outputs: Input is a Path to the prompt file; output is the decoded string.
    Side Effects / State: Cached per path for the life of the process.
    Failure Modes: Missing files raise FileNotFoundError; undecodable bytes are dropped.
    """
    try:
        return prompt_path.read_text(encoding="utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        raw = prompt_path.read_bytes()
        return raw.decode("utf-8", errors="ignore").lstrip("\ufeff")


def render_prompt(prompt_path: Path, **values: str) -> str:
    """Fill ``<<NAME>>`` placeholders of a prompt template in a single pass.

    Substituted values are never rescanned, so user text containing ``<<COUNT>>``
    stays literal. Unknown placeholders are left as they are.
    """
    text = load_prompt(prompt_path)
    replacements = {key.upper(): value for key, value in values.items()}
    return PLACEHOLDER_RE.sub(lambda match: replacements.get(match.group(1), match.group(0)), text)
