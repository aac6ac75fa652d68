from __future__ import annotations

from dataclasses import fields
from typing import Dict, Mapping, Optional, Tuple

from .models import CapacitySettings, Complexity, Role

NEUTRAL_MULTIPLIER = 1.0

CAPACITY_HOURS_RANGE: Tuple[float, float] = (1.0, 168.0)
MULTIPLIER_RANGE: Tuple[float, float] = (0.1, 5.0)

SETTINGS_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(CapacitySettings))

_ROLE_FIELDS: Dict[Role, str] = {
    "lead": "role_multiplier_lead",
    "contributor": "role_multiplier_contributor",
    "reviewer": "role_multiplier_reviewer",
    "advisor": "role_multiplier_advisor",
}

_COMPLEXITY_FIELDS: Dict[Complexity, str] = {
    "low": "complexity_low",
    "medium": "complexity_medium",
    "high": "complexity_high",
}


def resolve_settings(record: Optional[Mapping[str, object]]) -> CapacitySettings:
    """Build a fully populated settings value from a stored record.

    A missing record, or a missing or null field, falls back to the default.
    """
    if not record:
        return CapacitySettings()
    values: Dict[str, float] = {}
    for name in SETTINGS_FIELDS:
        value = record.get(name)
        if value is not None:
            values[name] = float(value)  # type: ignore[arg-type]
    return CapacitySettings(**values)


def validate_settings(record: Mapping[str, object]) -> Dict[str, float]:
    if not isinstance(record, Mapping):
        raise ValueError("capacity settings must be an object")
    unknown = sorted(set(record) - set(SETTINGS_FIELDS))
    if unknown:
        raise ValueError(f"unknown capacity settings: {', '.join(unknown)}")
    cleaned: Dict[str, float] = {}
    for name, value in record.items():
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{name} must be a number")
        low, high = CAPACITY_HOURS_RANGE if name == "weekly_capacity_hours" else MULTIPLIER_RANGE
        if not (low <= float(value) <= high):
            raise ValueError(f"{name} must be in [{low:g}, {high:g}]: {value}")
        cleaned[name] = float(value)
    return cleaned


def role_multiplier(settings: Optional[CapacitySettings], role: Optional[str]) -> float:
    if settings is None or role not in _ROLE_FIELDS:
        return NEUTRAL_MULTIPLIER
    return getattr(settings, _ROLE_FIELDS[role])


def complexity_multiplier(settings: Optional[CapacitySettings], complexity: Optional[str]) -> float:
    if settings is None or complexity not in _COMPLEXITY_FIELDS:
        return NEUTRAL_MULTIPLIER
    return getattr(settings, _COMPLEXITY_FIELDS[complexity])


def effective_load(
    hours: float,
    role: Optional[str],
    complexity: Optional[str],
    settings: Optional[CapacitySettings],
) -> float:
    """Weighted weekly demand of one allocation. Unrounded."""
    return hours * role_multiplier(settings, role) * complexity_multiplier(settings, complexity)
