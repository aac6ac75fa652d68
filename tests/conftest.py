from __future__ import annotations

import json
from pathlib import Path

import pytest

PEOPLE = [
    {"id": "p1", "full_name": "Ada Lovelace", "department": "Engineering", "role_title": "Staff Engineer", "is_active": True},
    {"id": "p2", "full_name": "Grace Hopper", "department": "Engineering", "role_title": "Engineer", "is_active": True},
    {"id": "p3", "full_name": "Linus Pauling", "department": "Research", "role_title": None, "is_active": False},
]

INITIATIVES = [
    {
        "id": "i1",
        "title": "Checkout revamp",
        "status": "in_progress",
        "priority_level": "high",
        "complexity": "high",
        "tentative_delivery_date": "2024-05-01",
        "product": {"name": "Shop"},
        "execution_signals": [{"health_status": "red"}],
    },
    {
        "id": "i2",
        "title": "Search tuning",
        "status": "approved",
        "priority_level": "low",
        "tentative_delivery_date": None,
        "product_name": "Search",
        "signal": {"health_status": "amber"},
    },
    {"id": "i3", "title": "Legacy cleanup", "status": "dropped", "priority_level": "medium", "complexity": "low"},
]

ALLOCATIONS_CSV = """id,person_id,initiative_id,role,allocated_hours_per_week,start_date,end_date
a1,p1,i1,lead,20,2024-01-01,
a2,p1,i2,contributor,25,2024-02-01,2024-12-31
a3,p2,i3,reviewer,10,2024-03-01,
a4,p2,i2,advisor,8,2023-01-01,2023-12-31
a5,p3,i1,contributor,30,2024-01-01,
"""


def write_portfolio(root: Path, settings: dict | None = None) -> Path:
    input_dir = root / "input"
    input_dir.mkdir(parents=True, exist_ok=True)
    (input_dir / "people.json").write_text(json.dumps(PEOPLE))
    (input_dir / "initiatives.json").write_text(json.dumps(INITIATIVES))
    (input_dir / "allocations.csv").write_text(ALLOCATIONS_CSV)
    if settings is not None:
        (input_dir / "settings.json").write_text(json.dumps(settings))
    return root


@pytest.fixture
def portfolio_dir(tmp_path: Path) -> Path:
    return write_portfolio(tmp_path / "sample")
