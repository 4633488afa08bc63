"""Responsibility weight and entry validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

MIN_WEIGHT = 0
MAX_WEIGHT = 100


@dataclass(frozen=True)
class WeightValidation:
    """Outcome of a weight check."""

    valid: bool
    total: int
    required: int = 100

    @property
    def message(self) -> str:
        return f"current total: {self.total}%, required: {self.required}%"


def _weight_of(item: Any) -> int:
    if isinstance(item, Mapping):
        return int(item.get("weight") or 0)
    return int(item.weight)


def validate_weights(responsibilities: Iterable[Any], required_total: int = 100) -> WeightValidation:
    """Check that responsibility weights sum to exactly ``required_total``.

    Accepts responsibility objects or mappings with a ``weight`` key. An
    empty list is never valid: a plan without responsibilities has nothing
    to submit.
    """
    weights = [_weight_of(r) for r in responsibilities]
    total = sum(weights)
    return WeightValidation(
        valid=bool(weights) and total == required_total,
        total=total,
        required=required_total,
    )


def validate_responsibility_entries(entries: Sequence[Mapping[str, Any]]) -> list[dict[str, str]]:
    """Validate raw responsibility entries before they are stored.

    Returns a list of ``{"field", "message"}`` errors, empty if all entries
    are well formed. Weight totals are not checked here; a plan may be saved
    mid-edit with any total.
    """
    errors: list[dict[str, str]] = []

    for index, entry in enumerate(entries):
        prefix = f"responsibilities[{index}]"
        if not isinstance(entry, Mapping):
            errors.append({"field": prefix, "message": "Entry must be an object"})
            continue

        description = entry.get("description")
        if not isinstance(description, str) or not description.strip():
            errors.append(
                {
                    "field": f"{prefix}.description",
                    "message": f"Key responsibility {index + 1} must have a description",
                }
            )

        weight = entry.get("weight")
        if isinstance(weight, bool) or not isinstance(weight, int):
            errors.append({"field": f"{prefix}.weight", "message": "Weight must be a whole number"})
        elif not MIN_WEIGHT <= weight <= MAX_WEIGHT:
            errors.append(
                {
                    "field": f"{prefix}.weight",
                    "message": f"Weight must be between {MIN_WEIGHT} and {MAX_WEIGHT}",
                }
            )

        indicators = entry.get("success_indicators") or []
        if not isinstance(indicators, (list, tuple)):
            errors.append(
                {"field": f"{prefix}.success_indicators", "message": "Success indicators must be a list"}
            )
            continue
        for i, indicator in enumerate(indicators):
            text = indicator.get("indicator") if isinstance(indicator, Mapping) else None
            if not isinstance(text, str) or not text.strip():
                errors.append(
                    {
                        "field": f"{prefix}.success_indicators[{i}].indicator",
                        "message": "Success indicator text is required",
                    }
                )

    return errors
