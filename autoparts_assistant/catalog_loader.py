"""Catalog loader for the local inventory dataset.

Reads a JSON export (a list, or an object with an ``items`` list) into Product records.
Column names are matched through synonym lists so a spreadsheet export with Spanish
headers (Codigo, Repuesto, Marca, ...) loads the same as the camelCase wire format.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .models import Product
from .utils import normalize_key

logger = logging.getLogger("autoparts.catalog")

ID_KEYS = ["id", "codigo", "cod", "sku", "code"]
NAME_KEYS = ["name", "repuesto", "nombre", "producto", "descripcion corta"]
CATEGORY_KEYS = ["category", "categoria", "rubro", "familia"]
PRICE_KEYS = ["price", "precio", "precio unitario"]
CURRENCY_KEYS = ["currency", "moneda"]
COMPAT_KEYS = ["compatibleModels", "compatible models", "marca", "modelos", "compatibilidad", "aplicacion"]
STOCK_KEYS = ["stock", "existencia", "cantidad", "disponible"]
IMAGE_KEYS = ["imageUrl", "image url", "imagen", "foto", "url imagen"]
DESC_KEYS = ["description", "descripcion", "detalle"]


@dataclass
class CatalogMeta:
    """Metadata describing the catalog file version for logging."""
    file_name: str
    updated_at: str
    sha256: str
    skipped: int = 0


class CatalogLoader:
    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> Tuple[List[Product], CatalogMeta]:
        """Purpose: Load and normalize catalog data from the dataset file.
        Inputs/Outputs: No inputs; returns a list of Product and CatalogMeta.
        Side Effects / State: Reads file contents and computes hash/mtime.
        Failure Modes: Missing files and JSON decode errors raise to the caller; rows
            without id/name or with invalid price/stock are skipped and counted.
        """
        # Read bytes for hashing and parse JSON into normalized products.
        raw_bytes = self._path.read_bytes()
        sha256 = hashlib.sha256(raw_bytes).hexdigest()
        updated_at = datetime.fromtimestamp(self._path.stat().st_mtime).isoformat()

        data = json.loads(raw_bytes.decode("utf-8-sig"))
        rows: List[Any]
        if isinstance(data, dict):
            rows = data.get("items", [])
        elif isinstance(data, list):
            rows = data
        else:
            rows = []

        products: List[Product] = []
        seen: set = set()
        skipped = 0
        for row in rows:
            product = product_from_row(row) if isinstance(row, dict) else None
            if product is None or product.id in seen:
                skipped += 1
                continue
            seen.add(product.id)
            products.append(product)

        meta = CatalogMeta(file_name=self._path.name, updated_at=updated_at, sha256=sha256, skipped=skipped)
        logger.info(
            "catalog=%s products=%d skipped=%d sha256=%s updated_at=%s",
            meta.file_name,
            len(products),
            skipped,
            sha256[:12],
            updated_at,
        )
        return products, meta


def product_from_row(row: Dict[str, Any]) -> Optional[Product]:
    """Map a raw catalog row onto Product; returns None for unusable rows."""
    product_id = _get_first_value(row, ID_KEYS)
    name = _get_first_value(row, NAME_KEYS)
    if not _has_value(product_id) or not _has_value(name):
        return None
    try:
        return Product(
            id=str(product_id).strip(),
            name=str(name).strip(),
            category=str(_get_first_value(row, CATEGORY_KEYS) or "").strip(),
            price=_parse_number(_get_first_value(row, PRICE_KEYS)),
            currency=str(_get_first_value(row, CURRENCY_KEYS) or "USD").strip(),
            compatible_models=_parse_list(_get_first_value(row, COMPAT_KEYS)),
            stock=int(_parse_number(_get_first_value(row, STOCK_KEYS))),
            image_url=str(_get_first_value(row, IMAGE_KEYS) or "").strip(),
            description=str(_get_first_value(row, DESC_KEYS) or "").strip(),
        )
    except (ValidationError, ValueError):
        return None


def _get_first_value(item: Dict[str, Any], keys: List[str]) -> Optional[Any]:
    """Purpose: Find the first matching field in a dict by key synonyms.
    Inputs/Outputs: Input is a raw dict and a list of candidate keys; returns value or None.
    Failure Modes: Returns None when no keys match or values are empty.
    """
    # Exact normalized key match only; partial matches would confuse "precio" columns.
    normalized_map = {normalize_key(str(k)): k for k in item.keys()}
    for key in keys:
        actual = normalized_map.get(normalize_key(key))
        if actual is not None and _has_value(item.get(actual)):
            return item.get(actual)
    return None


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _parse_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    cleaned = re.sub(r"[^0-9,.\-]", "", str(value))
    # "1.234,50" and "35,00" use a decimal comma; "1,234.50" a thousands comma.
    if "," in cleaned and cleaned.rfind(",") > cleaned.rfind("."):
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")
    return float(cleaned) if cleaned else 0.0


def _parse_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [str(entry).strip() for entry in value if _has_value(entry)]
    return [part.strip() for part in re.split(r"[,;/|]", str(value)) if part.strip()]
