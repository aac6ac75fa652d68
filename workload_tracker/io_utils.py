from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import pandas as pd
from dateutil import parser as dateparser

from .capacity import validate_settings
from .models import (
    DEFAULT_COMPLEXITY,
    UNKNOWN_STATUS,
    Allocation,
    ExecutionSignal,
    Initiative,
    Person,
    WorkloadSnapshot,
)

LOGGER = logging.getLogger(__name__)

INPUT_FILES = {
    "people": "people.json",
    "initiatives": "initiatives.json",
    "allocations": "allocations.csv",
    "settings": "settings.json",
}

_ALLOCATION_REQUIRED_COLUMNS = {
    "id",
    "person_id",
    "initiative_id",
    "role",
    "allocated_hours_per_week",
    "start_date",
}


class WorkloadDataError(RuntimeError):
    """Raised when the inputs of a workload report cannot be loaded."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"could not load workload data: {reason}")
        self.reason = reason


def _require_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    missing = sorted(col for col in required if col not in df.columns)
    if missing:
        raise ValueError(f"{source} missing required columns: {', '.join(missing)}")


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or (isinstance(value, float) and pd.isna(value)):
        raise ValueError("is_active contains missing values")
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "t", "1", "yes", "y"}:
            return True
        if lowered in {"false", "f", "0", "no", "n"}:
            return False
    raise ValueError(f"cannot interpret boolean value '{value}'")


def parse_optional_date(value: object, field_name: str) -> Optional[date]:
    if _is_missing(value):
        return None
    if isinstance(value, date):
        return value
    try:
        return dateparser.isoparse(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid date in '{field_name}': {value}") from exc


def _optional_str(value: object) -> Optional[str]:
    if _is_missing(value):
        return None
    return str(value).strip()


def _read_json_array(path: str | Path, label: str) -> List[Mapping[str, object]]:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError(f"{label} file must be a JSON array")
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError(f"{label} entries must be objects")
    return data


def load_people(path: str | Path) -> List[Person]:
    people: List[Person] = []
    for entry in _read_json_array(path, "people"):
        person_id = _optional_str(entry.get("id"))
        full_name = _optional_str(entry.get("full_name"))
        if not person_id:
            raise ValueError("person id is required")
        if not full_name:
            raise ValueError(f"full_name is required for person {person_id}")
        people.append(
            Person(
                id=person_id,
                full_name=full_name,
                department=_optional_str(entry.get("department")),
                role_title=_optional_str(entry.get("role_title")),
                is_active=_parse_bool(entry.get("is_active", True)),
            )
        )
    return people


def _single_signal(entry: Mapping[str, object]) -> Optional[ExecutionSignal]:
    # An initiative has at most one execution signal; list-shaped joins keep the first.
    signal = entry.get("signal")
    if signal is None:
        signals = entry.get("execution_signals")
        if isinstance(signals, list):
            signal = signals[0] if signals else None
        else:
            signal = signals
    if signal is None:
        return None
    if not isinstance(signal, dict):
        raise ValueError(f"execution signal for initiative {entry.get('id')} must be an object")
    return ExecutionSignal(health_status=_optional_str(signal.get("health_status")))


def _product_name(entry: Mapping[str, object]) -> Optional[str]:
    product = entry.get("product")
    if isinstance(product, dict):
        return _optional_str(product.get("name"))
    return _optional_str(entry.get("product_name"))


def load_initiatives(path: str | Path) -> Dict[str, Initiative]:
    initiatives: Dict[str, Initiative] = {}
    for entry in _read_json_array(path, "initiatives"):
        initiative_id = _optional_str(entry.get("id"))
        if not initiative_id:
            raise ValueError("initiative id is required")
        initiatives[initiative_id] = Initiative(
            id=initiative_id,
            title=_optional_str(entry.get("title")) or initiative_id,
            status=_optional_str(entry.get("status")) or UNKNOWN_STATUS,
            priority_level=_optional_str(entry.get("priority_level")),
            complexity=_optional_str(entry.get("complexity")) or DEFAULT_COMPLEXITY,
            tentative_delivery_date=parse_optional_date(
                entry.get("tentative_delivery_date"), "tentative_delivery_date"
            ),
            product_name=_product_name(entry),
            signal=_single_signal(entry),
        )
    return initiatives


def _parse_hours(value: object, allocation_id: str) -> int:
    try:
        hours = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid allocated_hours_per_week for allocation {allocation_id}") from exc
    if pd.isna(hours) or hours <= 0 or not hours.is_integer():
        raise ValueError(
            f"allocated_hours_per_week must be a positive integer for allocation {allocation_id}"
        )
    return int(hours)


def load_allocations(path: str | Path, initiatives: Mapping[str, Initiative]) -> List[Allocation]:
    df = pd.read_csv(path, dtype={"id": str, "person_id": str, "initiative_id": str})
    _require_columns(df, _ALLOCATION_REQUIRED_COLUMNS, "allocations.csv")
    if "end_date" not in df.columns:
        df["end_date"] = None
    allocations: List[Allocation] = []
    for row in df.itertuples(index=False):
        allocation_id = str(row.id)
        start_date = parse_optional_date(row.start_date, "start_date")
        if start_date is None:
            raise ValueError(f"start_date is required for allocation {allocation_id}")
        end_date = parse_optional_date(row.end_date, "end_date")
        if end_date is not None and end_date < start_date:
            LOGGER.warning("allocation %s ends before it starts; it is never active", allocation_id)
        initiative_id = _optional_str(row.initiative_id)
        allocations.append(
            Allocation(
                id=allocation_id,
                person_id=str(row.person_id).strip(),
                role=_optional_str(row.role) or "",
                allocated_hours_per_week=_parse_hours(row.allocated_hours_per_week, allocation_id),
                start_date=start_date,
                end_date=end_date,
                initiative=initiatives.get(initiative_id) if initiative_id else None,
            )
        )
    return allocations


def load_settings_record(path: Optional[str | Path]) -> Optional[Dict[str, float]]:
    """Read the stored capacity settings; a missing file means defaults apply."""
    if path is None or not Path(path).exists():
        return None
    data = json.loads(Path(path).read_text())
    return validate_settings(data)


def save_settings_record(path: str | Path, record: Mapping[str, object]) -> Dict[str, float]:
    cleaned = validate_settings(record)
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(cleaned, indent=2) + "\n")
    return cleaned


def load_snapshot(
    people_path: str | Path,
    initiatives_path: str | Path,
    allocations_path: str | Path,
    settings_path: Optional[str | Path] = None,
) -> WorkloadSnapshot:
    try:
        settings = load_settings_record(settings_path)
        people = load_people(people_path)
        initiatives = load_initiatives(initiatives_path)
        allocations = load_allocations(allocations_path, initiatives)
    except (OSError, ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise WorkloadDataError(str(exc)) from exc
    return WorkloadSnapshot(settings=settings, people=tuple(people), allocations=tuple(allocations))


def input_paths(project_dir: str | Path) -> Dict[str, Path]:
    input_dir = Path(project_dir) / "input"
    return {key: input_dir / name for key, name in INPUT_FILES.items()}


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
