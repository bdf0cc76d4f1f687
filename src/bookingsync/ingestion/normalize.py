"""Normalization helpers.

Centralizes defensive parsing of gateway rows.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from bookingsync.exceptions import GatewayError

TModel = TypeVar("TModel", bound=BaseModel)


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def embedded(row: Mapping[str, Any], key: str) -> dict[str, Any]:
    """Return the joined record under *key*; to-one joins may arrive as a one-element list."""
    value = row.get(key)
    if isinstance(value, list):
        value = value[0] if value else None
    return dict(value) if isinstance(value, dict) else {}


def parse_row(model: type[TModel], row: Mapping[str, Any], *, relation: str) -> TModel:
    """Validate *row* into *model*, surfacing malformed rows as a gateway read failure."""
    try:
        return model.model_validate(dict(row))
    except ValidationError as exc:
        raise GatewayError(
            f"Malformed {relation} row {row.get('id', '?')}: {exc.error_count()} validation error(s)",
            relation=relation,
        ) from exc
