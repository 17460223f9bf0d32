"""Holding records sent to the external persistence service.

Records are validated against ``schemas/holding_record.schema.json`` before
they leave the engine so a malformed write fails locally, before any remote
call is made.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import best_match

from models.holding import Holding

SCHEMA_PATH = Path(__file__).parent / "schemas" / "holding_record.schema.json"


@lru_cache(maxsize=1)
def _validator() -> jsonschema.Draft202012Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    jsonschema.Draft202012Validator.check_schema(schema)
    return jsonschema.Draft202012Validator(schema)


def validate_record(record: dict[str, Any]) -> dict[str, Any]:
    """Return *record* unchanged or raise ``jsonschema.ValidationError``."""
    error = best_match(_validator().iter_errors(record))
    if error is not None:
        raise error
    return record


def holding_record(
    user_id: str,
    startup_id: str,
    amount: float,
    equity: float,
    current_value: float,
    status: str = "active",
) -> dict[str, Any]:
    """Build and validate a create request for a new holding."""
    return validate_record(
        {
            "user_id": user_id,
            "startup_id": startup_id,
            "amount": amount,
            "equity": equity,
            "current_value": current_value,
            "status": status,
        }
    )


def record_from_holding(holding: Holding) -> dict[str, Any]:
    """Full record for an existing holding (used for updates)."""
    return holding_record(
        user_id=holding.user_id,
        startup_id=holding.startup_id,
        amount=holding.invested_amount,
        equity=holding.equity_fraction,
        current_value=holding.current_value,
        status=holding.status.value,
    )


def divestiture_fields(holding: Holding) -> dict[str, Any]:
    """Update payload for a partially sold holding."""
    record = record_from_holding(holding)
    return {key: record[key] for key in ("amount", "equity", "current_value")}
