from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from .capacity import effective_load, resolve_settings
from .models import (
    DEFAULT_COMPLEXITY,
    PRIORITY_LEVELS,
    UNKNOWN_STATUS,
    UNKNOWN_TITLE,
    Allocation,
    AllocationDetail,
    CapacitySettings,
    Person,
    PersonWorkload,
    PriorityLevel,
    WorkloadCategory,
    WorkloadSnapshot,
)

LOGGER = logging.getLogger(__name__)

WARNING_THRESHOLD_PCT = 70.0
OVERLOADED_THRESHOLD_PCT = 90.0


@dataclass
class _PersonTally:
    person: Person
    total_allocated_hours: int = 0
    total_effective_load: float = 0.0
    active_initiatives: int = 0
    completed_initiatives: int = 0
    priority_counts: Dict[PriorityLevel, int] = field(
        default_factory=lambda: dict.fromkeys(PRIORITY_LEVELS, 0)
    )
    blocked_count: int = 0
    overdue_count: int = 0
    red_health_count: int = 0
    amber_health_count: int = 0
    details: List[AllocationDetail] = field(default_factory=list)

    def add(self, allocation: Allocation, load: float, today: date) -> None:
        self.total_allocated_hours += allocation.allocated_hours_per_week
        self.total_effective_load += load
        self.details.append(_detail_row(allocation, load))
        initiative = allocation.initiative
        if initiative is None:
            return
        if initiative.is_open():
            self.active_initiatives += 1
            if initiative.priority_level in self.priority_counts:
                self.priority_counts[initiative.priority_level] += 1
            if initiative.status == "blocked":
                self.blocked_count += 1
            if initiative.is_overdue(today):
                self.overdue_count += 1
            if initiative.health_status == "red":
                self.red_health_count += 1
            elif initiative.health_status == "amber":
                self.amber_health_count += 1
        elif initiative.status == "delivered":
            self.completed_initiatives += 1
        # Dropped work keeps its hours and load but counts nowhere else.


def is_allocation_active(allocation: Allocation, today: date) -> bool:
    if allocation.start_date > today:
        return False
    return allocation.end_date is None or allocation.end_date >= today


def classify_utilization(utilization_pct: float) -> WorkloadCategory:
    if utilization_pct > OVERLOADED_THRESHOLD_PCT:
        return "overloaded"
    if utilization_pct > WARNING_THRESHOLD_PCT:
        return "warning"
    return "healthy"


def utilization_percentage(total_effective_load: float, settings: CapacitySettings) -> float:
    return (total_effective_load / settings.weekly_capacity_hours) * 100


def _allocation_complexity(allocation: Allocation) -> str:
    if allocation.initiative is None or not allocation.initiative.complexity:
        return DEFAULT_COMPLEXITY
    return allocation.initiative.complexity


def _detail_row(allocation: Allocation, load: float) -> AllocationDetail:
    initiative = allocation.initiative
    return AllocationDetail(
        allocation_id=allocation.id,
        initiative_id=initiative.id if initiative else None,
        title=initiative.title if initiative else UNKNOWN_TITLE,
        status=initiative.status if initiative else UNKNOWN_STATUS,
        priority_level=initiative.priority_level if initiative else None,
        complexity=_allocation_complexity(allocation),
        role=allocation.role,
        allocated_hours_per_week=allocation.allocated_hours_per_week,
        effective_load=load,
        start_date=allocation.start_date,
        end_date=allocation.end_date,
        tentative_delivery_date=initiative.tentative_delivery_date if initiative else None,
        health_status=initiative.health_status if initiative else None,
        product_name=initiative.product_name if initiative else None,
    )


def _assemble(tally: _PersonTally, settings: CapacitySettings) -> PersonWorkload:
    person = tally.person
    utilization = utilization_percentage(tally.total_effective_load, settings)
    return PersonWorkload(
        id=person.id,
        full_name=person.full_name,
        department=person.department,
        role_title=person.role_title,
        weekly_capacity_hours=settings.weekly_capacity_hours,
        total_allocated_hours=tally.total_allocated_hours,
        total_effective_load=tally.total_effective_load,
        utilization_percentage=utilization,
        workload_category=classify_utilization(utilization),
        active_initiatives=tally.active_initiatives,
        completed_initiatives=tally.completed_initiatives,
        high_priority_count=tally.priority_counts["high"],
        medium_priority_count=tally.priority_counts["medium"],
        low_priority_count=tally.priority_counts["low"],
        blocked_count=tally.blocked_count,
        overdue_count=tally.overdue_count,
        red_health_count=tally.red_health_count,
        amber_health_count=tally.amber_health_count,
        allocations=tuple(tally.details),
    )


def compute_workloads(
    snapshot: WorkloadSnapshot,
    today: date,
    settings: Optional[CapacitySettings] = None,
) -> List[PersonWorkload]:
    """Compute one workload record per active person with a current allocation.

    ``today`` is the single reference date for every comparison in the run.
    People come back in roster order and their detail rows in allocation order;
    callers sort for presentation.
    """
    resolved = settings if settings is not None else resolve_settings(snapshot.settings)
    roster: Dict[str, Person] = {}
    for person in snapshot.people:
        if person.is_active:
            roster.setdefault(person.id, person)

    tallies: Dict[str, _PersonTally] = {}
    skipped_inactive = 0
    skipped_out_of_window = 0
    for allocation in snapshot.allocations:
        person = roster.get(allocation.person_id)
        if person is None:
            skipped_inactive += 1
            continue
        if not is_allocation_active(allocation, today):
            skipped_out_of_window += 1
            continue
        load = effective_load(
            allocation.allocated_hours_per_week,
            allocation.role,
            _allocation_complexity(allocation),
            resolved,
        )
        tally = tallies.get(person.id)
        if tally is None:
            tally = tallies[person.id] = _PersonTally(person=person)
        tally.add(allocation, load, today)

    LOGGER.debug(
        "workload run for %s: %d allocations counted, %d outside window, %d without active person",
        today.isoformat(),
        sum(len(t.details) for t in tallies.values()),
        skipped_out_of_window,
        skipped_inactive,
    )
    return [_assemble(tallies[pid], resolved) for pid in roster if pid in tallies]
