from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Literal, Optional, Tuple


Role = Literal["lead", "contributor", "reviewer", "advisor"]
Complexity = Literal["low", "medium", "high"]
PriorityLevel = Literal["high", "medium", "low"]
WorkloadCategory = Literal["healthy", "warning", "overloaded"]

PRIORITY_LEVELS: Tuple[PriorityLevel, ...] = ("high", "medium", "low")
OPEN_STATUSES: Tuple[str, ...] = ("approved", "in_progress", "blocked")

DEFAULT_COMPLEXITY = "medium"
UNKNOWN_TITLE = "Unknown"
UNKNOWN_STATUS = "unknown"


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class CapacitySettings:
    """Weekly capacity and weighting multipliers used for a single report run."""

    weekly_capacity_hours: float = 40.0
    role_multiplier_lead: float = 1.2
    role_multiplier_contributor: float = 1.0
    role_multiplier_reviewer: float = 0.6
    role_multiplier_advisor: float = 0.3
    complexity_low: float = 0.8
    complexity_medium: float = 1.0
    complexity_high: float = 1.3

    def to_dict(self) -> Dict[str, float]:
        return {
            "weekly_capacity_hours": self.weekly_capacity_hours,
            "role_multiplier_lead": self.role_multiplier_lead,
            "role_multiplier_contributor": self.role_multiplier_contributor,
            "role_multiplier_reviewer": self.role_multiplier_reviewer,
            "role_multiplier_advisor": self.role_multiplier_advisor,
            "complexity_low": self.complexity_low,
            "complexity_medium": self.complexity_medium,
            "complexity_high": self.complexity_high,
        }


@dataclass(frozen=True)
class Person:
    id: str
    full_name: str
    department: Optional[str] = None
    role_title: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class ExecutionSignal:
    health_status: Optional[str]


@dataclass(frozen=True)
class Initiative:
    """Initiative fields consumed by the workload report.

    An initiative carries zero or one execution signal.
    """

    id: str
    title: str
    status: str
    priority_level: Optional[str] = None
    complexity: str = DEFAULT_COMPLEXITY
    tentative_delivery_date: Optional[date] = None
    product_name: Optional[str] = None
    signal: Optional[ExecutionSignal] = None

    @property
    def health_status(self) -> Optional[str]:
        return self.signal.health_status if self.signal else None

    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def is_overdue(self, today: date) -> bool:
        if self.tentative_delivery_date is None:
            return False
        return self.tentative_delivery_date < today


@dataclass(frozen=True)
class Allocation:
    """A person's weekly hour commitment to an initiative over a date range."""

    id: str
    person_id: str
    role: str
    allocated_hours_per_week: int
    start_date: date
    end_date: Optional[date] = None
    initiative: Optional[Initiative] = None


@dataclass(frozen=True)
class WorkloadSnapshot:
    """Everything the engine reads, fetched before computation starts."""

    settings: Optional[Dict[str, object]]
    people: Tuple[Person, ...]
    allocations: Tuple[Allocation, ...]


@dataclass(frozen=True)
class AllocationDetail:
    allocation_id: str
    initiative_id: Optional[str]
    title: str
    status: str
    priority_level: Optional[str]
    complexity: str
    role: str
    allocated_hours_per_week: int
    effective_load: float
    start_date: date
    end_date: Optional[date]
    tentative_delivery_date: Optional[date]
    health_status: Optional[str]
    product_name: Optional[str]

    def to_dict(self) -> Dict[str, object]:
        return {
            "allocation_id": self.allocation_id,
            "initiative_id": self.initiative_id,
            "title": self.title,
            "status": self.status,
            "priority_level": self.priority_level,
            "complexity": self.complexity,
            "role": self.role,
            "allocated_hours_per_week": self.allocated_hours_per_week,
            "effective_load": self.effective_load,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "tentative_delivery_date": _iso(self.tentative_delivery_date),
            "health_status": self.health_status,
            "product_name": self.product_name,
        }


@dataclass(frozen=True)
class PersonWorkload:
    id: str
    full_name: str
    department: Optional[str]
    role_title: Optional[str]
    weekly_capacity_hours: float
    total_allocated_hours: int
    total_effective_load: float
    utilization_percentage: float
    workload_category: WorkloadCategory
    active_initiatives: int = 0
    completed_initiatives: int = 0
    high_priority_count: int = 0
    medium_priority_count: int = 0
    low_priority_count: int = 0
    blocked_count: int = 0
    overdue_count: int = 0
    red_health_count: int = 0
    amber_health_count: int = 0
    allocations: Tuple[AllocationDetail, ...] = field(default_factory=tuple)

    def priority_count(self, level: str) -> int:
        return {
            "high": self.high_priority_count,
            "medium": self.medium_priority_count,
            "low": self.low_priority_count,
        }.get(level, 0)

    def to_dict(self) -> Dict[str, object]:
        allocations: List[Dict[str, object]] = [detail.to_dict() for detail in self.allocations]
        return {
            "id": self.id,
            "full_name": self.full_name,
            "department": self.department,
            "role_title": self.role_title,
            "weekly_capacity_hours": self.weekly_capacity_hours,
            "total_allocated_hours": self.total_allocated_hours,
            "total_effective_load": self.total_effective_load,
            "utilization_percentage": self.utilization_percentage,
            "workload_category": self.workload_category,
            "active_initiatives": self.active_initiatives,
            "completed_initiatives": self.completed_initiatives,
            "high_priority_count": self.high_priority_count,
            "medium_priority_count": self.medium_priority_count,
            "low_priority_count": self.low_priority_count,
            "blocked_count": self.blocked_count,
            "overdue_count": self.overdue_count,
            "red_health_count": self.red_health_count,
            "amber_health_count": self.amber_health_count,
            "allocations": allocations,
        }
