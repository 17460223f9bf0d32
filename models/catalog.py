"""Startup catalog models.

Records arrive from the external catalog service with loosely named, often
missing fields.  ``StartupCatalogEntry`` is the single ingestion boundary:
aliases are resolved and defaults applied here, once, so engine code never
has to guess.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationInfo, model_validator

DEFAULT_MIN_INVESTMENT = 1000.0


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


class StartupCatalogEntry(BaseModel):
    """A pitched company, as far as the engine cares.

    ``equity_offered`` holds a fraction in ``[0, 1]``.  Inputs under
    ``equity_offered`` / ``equityOffered`` are percentages, as the backend
    stores them (``15`` is 15%, ``0.5`` is half a percent); pass
    ``equity_offered_fraction`` to supply a fraction directly.

    ``min_investment`` is always populated.  ``suggested_investment`` is the
    opening amount shown in offer flows: the declared minimum when the record
    has one, else 10% of the ask.
    """

    id: str
    name: str = ""
    industry: str = ""
    stage: str = ""
    valuation: float = Field(default=0.0, ge=0)
    ask_amount: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("ask_amount", "askAmount", "askamount", "funding_goal"),
    )
    equity_offered: float = Field(
        default=0.0,
        ge=0,
        le=1,
        validation_alias=AliasChoices("equity_offered", "equityOffered"),
    )
    min_investment: float = Field(
        default=DEFAULT_MIN_INVESTMENT,
        gt=0,
        validation_alias=AliasChoices("min_investment", "minInvestment"),
    )
    suggested_investment: float = Field(default=0.0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any, info: ValidationInfo) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        context = info.context or {}
        default_min = context.get("default_min_investment", DEFAULT_MIN_INVESTMENT)

        for key in ("valuation", "ask_amount", "askAmount", "askamount", "funding_goal"):
            if key in data:
                value = _number(data[key])
                data[key] = max(value, 0.0) if value is not None else 0.0

        ask = next(
            (
                data[k]
                for k in ("ask_amount", "askAmount", "askamount", "funding_goal")
                if k in data
            ),
            0.0,
        )

        for key in ("equity_offered", "equityOffered"):
            if key in data:
                # Backend stores the offered stake as a percentage.
                value = _number(data.pop(key)) or 0.0
                data["equity_offered"] = max(value, 0.0) / 100
        if "equity_offered_fraction" in data:
            value = _number(data.pop("equity_offered_fraction")) or 0.0
            data["equity_offered"] = max(value, 0.0)

        declared_min = None
        for key in ("min_investment", "minInvestment"):
            if key in data:
                declared_min = _number(data.pop(key))
        if declared_min is not None and declared_min > 0:
            data["min_investment"] = declared_min
            data.setdefault("suggested_investment", declared_min)
        else:
            data["min_investment"] = default_min
            data.setdefault("suggested_investment", float(round(ask * 0.1)))

        if "id" in data and not isinstance(data["id"], str):
            data["id"] = str(data["id"])
        return data

    @property
    def implied_valuation(self) -> float:
        """Valuation implied by the ask and offered stake (0 if nothing is offered)."""
        if self.equity_offered <= 0:
            return 0.0
        return self.ask_amount / self.equity_offered
