from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .engine import OVERLOADED_THRESHOLD_PCT, WARNING_THRESHOLD_PCT
from .models import CapacitySettings, PersonWorkload

ALL = "all"

WORKLOAD_COLUMNS = [
    "id",
    "full_name",
    "department",
    "role_title",
    "total_allocated_hours",
    "total_effective_load",
    "utilization_pct",
    "workload_category",
    "active_initiatives",
    "completed_initiatives",
    "high_priority_count",
    "medium_priority_count",
    "low_priority_count",
    "blocked_count",
    "overdue_count",
    "red_health_count",
    "amber_health_count",
]

DETAIL_COLUMNS = [
    "person_id",
    "full_name",
    "allocation_id",
    "initiative_id",
    "title",
    "status",
    "priority_level",
    "complexity",
    "role",
    "allocated_hours_per_week",
    "effective_load",
    "start_date",
    "end_date",
    "tentative_delivery_date",
    "health_status",
    "product_name",
]


def _is_disabled(value: Optional[str]) -> bool:
    return value is None or value == "" or value == ALL


def sort_by_utilization(
    workloads: Iterable[PersonWorkload], *, descending: bool = True
) -> List[PersonWorkload]:
    ordered = sorted(workloads, key=lambda w: w.full_name)
    return sorted(ordered, key=lambda w: w.utilization_percentage, reverse=descending)


def filter_workloads(
    workloads: Iterable[PersonWorkload],
    *,
    department: Optional[str] = None,
    priority: Optional[str] = None,
    status: Optional[str] = None,
) -> List[PersonWorkload]:
    result = list(workloads)
    if not _is_disabled(department):
        result = [w for w in result if w.department == department]
    if not _is_disabled(priority):
        result = [w for w in result if w.priority_count(str(priority)) > 0]
    if not _is_disabled(status):
        result = [w for w in result if any(d.status == status for d in w.allocations)]
    return result


def departments(workloads: Iterable[PersonWorkload]) -> List[str]:
    return sorted({w.department for w in workloads if w.department})


def summarize(workloads: Sequence[PersonWorkload]) -> Dict[str, int]:
    total = len(workloads)
    avg_utilization = (
        int(round(sum(w.utilization_percentage for w in workloads) / total)) if total else 0
    )
    return {
        "total": total,
        "healthy": sum(1 for w in workloads if w.workload_category == "healthy"),
        "warning": sum(1 for w in workloads if w.workload_category == "warning"),
        "overloaded": sum(1 for w in workloads if w.workload_category == "overloaded"),
        "avg_utilization": avg_utilization,
    }


def workloads_to_frame(workloads: Iterable[PersonWorkload]) -> pd.DataFrame:
    rows = []
    for w in workloads:
        rows.append(
            {
                "id": w.id,
                "full_name": w.full_name,
                "department": w.department,
                "role_title": w.role_title,
                "total_allocated_hours": w.total_allocated_hours,
                "total_effective_load": round(w.total_effective_load, 1),
                "utilization_pct": round(w.utilization_percentage, 1),
                "workload_category": w.workload_category,
                "active_initiatives": w.active_initiatives,
                "completed_initiatives": w.completed_initiatives,
                "high_priority_count": w.high_priority_count,
                "medium_priority_count": w.medium_priority_count,
                "low_priority_count": w.low_priority_count,
                "blocked_count": w.blocked_count,
                "overdue_count": w.overdue_count,
                "red_health_count": w.red_health_count,
                "amber_health_count": w.amber_health_count,
            }
        )
    return pd.DataFrame(rows, columns=WORKLOAD_COLUMNS)


def details_to_frame(workloads: Iterable[PersonWorkload]) -> pd.DataFrame:
    rows = []
    for w in workloads:
        for detail in w.allocations:
            row = detail.to_dict()
            row["effective_load"] = round(detail.effective_load, 1)
            row["person_id"] = w.id
            row["full_name"] = w.full_name
            rows.append(row)
    return pd.DataFrame(rows, columns=DETAIL_COLUMNS)


def render_summary_markdown(
    workloads: Sequence[PersonWorkload],
    summary: Dict[str, int],
    settings: CapacitySettings,
    *,
    reference_date: Optional[str] = None,
) -> str:
    lines: List[str] = ["# Delegation Report", ""]
    if reference_date:
        lines.append(f"As of {reference_date}, capacity {settings.weekly_capacity_hours:g}h/week.")
    else:
        lines.append(f"Capacity {settings.weekly_capacity_hours:g}h/week.")
    lines.append("")
    lines.append(f"- People with active allocations: {summary['total']}")
    lines.append(f"- Healthy (up to {WARNING_THRESHOLD_PCT:g}%): {summary['healthy']}")
    lines.append(
        f"- Warning (above {WARNING_THRESHOLD_PCT:g}% up to {OVERLOADED_THRESHOLD_PCT:g}%): "
        f"{summary['warning']}"
    )
    lines.append(f"- Overloaded (above {OVERLOADED_THRESHOLD_PCT:g}%): {summary['overloaded']}")
    lines.append(f"- Average utilization: {summary['avg_utilization']}%")
    lines.append("")
    if not workloads:
        lines.append("No people with active allocations.")
        return "\n".join(lines) + "\n"
    lines.append("| Name | Department | Hours | Effective load | Utilization | Category |")
    lines.append("| --- | --- | ---: | ---: | ---: | --- |")
    for w in workloads:
        lines.append(
            f"| {w.full_name} | {w.department or '-'} | {w.total_allocated_hours} | "
            f"{w.total_effective_load:.1f} | {w.utilization_percentage:.1f}% | {w.workload_category} |"
        )
    return "\n".join(lines) + "\n"
