"""Tests for workload_tracker.engine: filtering, aggregation and classification."""

from __future__ import annotations

from datetime import date
from typing import Optional

import pytest

from workload_tracker.engine import (
    classify_utilization,
    compute_workloads,
    is_allocation_active,
)
from workload_tracker.models import (
    Allocation,
    CapacitySettings,
    ExecutionSignal,
    Initiative,
    Person,
    WorkloadSnapshot,
)

TODAY = date(2024, 6, 15)


def _person(pid: str = "p1", name: str = "Ada Lovelace", active: bool = True, dept: str = "Eng") -> Person:
    return Person(id=pid, full_name=name, department=dept, role_title="Engineer", is_active=active)


def _initiative(
    iid: str = "i1",
    status: str = "in_progress",
    priority: Optional[str] = "medium",
    complexity: str = "medium",
    delivery: Optional[date] = None,
    health: Optional[str] = None,
    product: Optional[str] = "Core",
) -> Initiative:
    return Initiative(
        id=iid,
        title=f"Initiative {iid}",
        status=status,
        priority_level=priority,
        complexity=complexity,
        tentative_delivery_date=delivery,
        product_name=product,
        signal=ExecutionSignal(health_status=health) if health else None,
    )


def _allocation(
    aid: str = "a1",
    person_id: str = "p1",
    role: str = "contributor",
    hours: int = 10,
    start: date = date(2024, 1, 1),
    end: Optional[date] = None,
    initiative: Optional[Initiative] = None,
) -> Allocation:
    return Allocation(
        id=aid,
        person_id=person_id,
        role=role,
        allocated_hours_per_week=hours,
        start_date=start,
        end_date=end,
        initiative=initiative if initiative is not None else _initiative(),
    )


def _snapshot(people, allocations, settings=None) -> WorkloadSnapshot:
    return WorkloadSnapshot(settings=settings, people=tuple(people), allocations=tuple(allocations))


class TestTemporalFilter:
    def test_open_ended_started_is_active(self):
        assert is_allocation_active(_allocation(start=date(2024, 6, 1)), TODAY)

    def test_starts_today_is_active(self):
        assert is_allocation_active(_allocation(start=TODAY), TODAY)

    def test_ends_today_is_active(self):
        assert is_allocation_active(_allocation(start=date(2024, 1, 1), end=TODAY), TODAY)

    def test_future_start_is_inactive(self):
        assert not is_allocation_active(_allocation(start=date(2024, 6, 16)), TODAY)

    def test_ended_yesterday_is_inactive(self):
        assert not is_allocation_active(
            _allocation(start=date(2024, 1, 1), end=date(2024, 6, 14)), TODAY
        )


class TestClassifier:
    def test_exactly_70_is_healthy(self):
        assert classify_utilization(70.0) == "healthy"

    def test_just_above_70_is_warning(self):
        assert classify_utilization(70.01) == "warning"

    def test_exactly_90_is_warning(self):
        assert classify_utilization(90.0) == "warning"

    def test_just_above_90_is_overloaded(self):
        assert classify_utilization(90.01) == "overloaded"

    def test_zero_is_healthy(self):
        assert classify_utilization(0.0) == "healthy"

    def test_far_above_is_overloaded(self):
        assert classify_utilization(250.0) == "overloaded"


class TestEndToEnd:
    def test_single_lead_allocation_is_healthy(self):
        settings = {"weekly_capacity_hours": 40, "role_multiplier_lead": 1.2, "complexity_medium": 1.0}
        snapshot = _snapshot(
            [_person()],
            [_allocation(role="lead", hours=20, initiative=_initiative(complexity="medium"))],
            settings,
        )
        [workload] = compute_workloads(snapshot, TODAY)
        assert workload.total_allocated_hours == 20
        assert workload.total_effective_load == pytest.approx(24.0)
        assert workload.utilization_percentage == pytest.approx(60.0)
        assert workload.workload_category == "healthy"
        assert workload.allocations[0].effective_load == pytest.approx(24.0)

    def test_two_allocations_overloaded(self):
        snapshot = _snapshot(
            [_person()],
            [
                _allocation("a1", role="contributor", hours=25, initiative=_initiative("i1", complexity="medium")),
                _allocation("a2", role="lead", hours=20, initiative=_initiative("i2", complexity="high")),
            ],
        )
        [workload] = compute_workloads(snapshot, TODAY)
        loads = [d.effective_load for d in workload.allocations]
        assert loads == [pytest.approx(25.0), pytest.approx(31.2)]
        assert workload.total_allocated_hours == 45
        assert workload.total_effective_load == pytest.approx(56.2)
        assert workload.utilization_percentage == pytest.approx(140.5)
        assert workload.workload_category == "overloaded"

    def test_explicit_settings_override_snapshot_record(self):
        snapshot = _snapshot([_person()], [_allocation(hours=20)], {"weekly_capacity_hours": 20})
        [workload] = compute_workloads(snapshot, TODAY, CapacitySettings(weekly_capacity_hours=80))
        assert workload.utilization_percentage == pytest.approx(25.0)
        assert workload.weekly_capacity_hours == 80

    def test_unknown_role_uses_neutral_multiplier(self):
        snapshot = _snapshot([_person()], [_allocation(role="sponsor", hours=10)])
        [workload] = compute_workloads(snapshot, TODAY)
        assert workload.total_effective_load == 10


class TestBoundariesEndToEnd:
    def test_exactly_70_percent_is_healthy(self):
        snapshot = _snapshot([_person()], [_allocation(role="contributor", hours=28)])
        [workload] = compute_workloads(snapshot, TODAY)
        assert workload.utilization_percentage == 70.0
        assert workload.workload_category == "healthy"

    def test_exactly_90_percent_is_warning(self):
        snapshot = _snapshot([_person()], [_allocation(role="contributor", hours=36)])
        [workload] = compute_workloads(snapshot, TODAY)
        assert workload.utilization_percentage == 90.0
        assert workload.workload_category == "warning"

    def test_one_hour_over_90_percent_is_overloaded(self):
        snapshot = _snapshot([_person()], [_allocation(role="contributor", hours=37)])
        [workload] = compute_workloads(snapshot, TODAY)
        assert workload.workload_category == "overloaded"


class TestEligibility:
    def test_inactive_person_never_appears(self):
        snapshot = _snapshot([_person(active=False)], [_allocation()])
        assert compute_workloads(snapshot, TODAY) == []

    def test_person_with_only_expired_allocations_is_excluded(self):
        snapshot = _snapshot(
            [_person()],
            [
                _allocation("a1", end=date(2024, 5, 31)),
                _allocation("a2", start=date(2024, 7, 1)),
            ],
        )
        assert compute_workloads(snapshot, TODAY) == []

    def test_person_without_allocations_is_excluded(self):
        snapshot = _snapshot([_person("p1"), _person("p2", "Grace Hopper")], [_allocation(person_id="p1")])
        result = compute_workloads(snapshot, TODAY)
        assert [w.id for w in result] == ["p1"]

    def test_allocation_for_unknown_person_is_dropped(self):
        snapshot = _snapshot([_person("p1")], [_allocation(person_id="ghost")])
        assert compute_workloads(snapshot, TODAY) == []

    def test_total_hours_only_count_active_allocations(self):
        snapshot = _snapshot(
            [_person()],
            [
                _allocation("a1", hours=10),
                _allocation("a2", hours=8, end=date(2024, 6, 1)),
                _allocation("a3", hours=6, start=date(2024, 6, 15)),
            ],
        )
        [workload] = compute_workloads(snapshot, TODAY)
        assert workload.total_allocated_hours == 16
        assert [d.allocation_id for d in workload.allocations] == ["a1", "a3"]

    def test_people_follow_roster_order(self):
        people = [_person("p2", "Zed"), _person("p1", "Amy")]
        allocations = [_allocation("a1", person_id="p1"), _allocation("a2", person_id="p2")]
        result = compute_workloads(_snapshot(people, allocations), TODAY)
        assert [w.id for w in result] == ["p2", "p1"]


class TestCounts:
    def _workload(self, *initiatives):
        allocations = [
            _allocation(f"a{idx}", initiative=initiative) for idx, initiative in enumerate(initiatives)
        ]
        [workload] = compute_workloads(_snapshot([_person()], allocations), TODAY)
        return workload

    def test_open_statuses_increment_active_and_priority(self):
        w = self._workload(
            _initiative("i1", status="approved", priority="high"),
            _initiative("i2", status="in_progress", priority="medium"),
            _initiative("i3", status="blocked", priority="low"),
        )
        assert w.active_initiatives == 3
        assert (w.high_priority_count, w.medium_priority_count, w.low_priority_count) == (1, 1, 1)
        assert w.blocked_count == 1
        assert w.completed_initiatives == 0

    def test_delivered_counts_as_completed_only(self):
        w = self._workload(
            _initiative("i1", status="delivered", priority="high", health="red", delivery=date(2024, 1, 1))
        )
        assert w.completed_initiatives == 1
        assert w.active_initiatives == 0
        assert w.high_priority_count == 0
        assert w.red_health_count == 0
        assert w.overdue_count == 0

    def test_dropped_contributes_load_but_no_counts(self):
        w = self._workload(
            _initiative("i1", status="dropped", priority="high", health="red", delivery=date(2024, 1, 1))
        )
        assert w.total_allocated_hours == 10
        assert w.total_effective_load == 10
        assert w.active_initiatives == 0
        assert w.completed_initiatives == 0
        assert (w.high_priority_count, w.medium_priority_count, w.low_priority_count) == (0, 0, 0)
        assert (w.blocked_count, w.overdue_count, w.red_health_count, w.amber_health_count) == (0, 0, 0, 0)

    def test_overdue_is_strictly_before_today(self):
        w = self._workload(
            _initiative("i1", delivery=date(2024, 6, 14)),
            _initiative("i2", delivery=TODAY),
            _initiative("i3", delivery=None),
        )
        assert w.overdue_count == 1

    def test_health_counts(self):
        w = self._workload(
            _initiative("i1", health="red"),
            _initiative("i2", health="amber"),
            _initiative("i3", health="amber"),
            _initiative("i4", health="green"),
            _initiative("i5", health=None),
        )
        assert w.red_health_count == 1
        assert w.amber_health_count == 2

    def test_unknown_priority_counts_as_active_only(self):
        w = self._workload(_initiative("i1", priority=None))
        assert w.active_initiatives == 1
        assert (w.high_priority_count, w.medium_priority_count, w.low_priority_count) == (0, 0, 0)


class TestDetailRows:
    def test_missing_initiative_defaults(self):
        allocation = Allocation(
            id="a1",
            person_id="p1",
            role="reviewer",
            allocated_hours_per_week=10,
            start_date=date(2024, 1, 1),
            initiative=None,
        )
        [workload] = compute_workloads(_snapshot([_person()], [allocation]), TODAY)
        [detail] = workload.allocations
        assert detail.title == "Unknown"
        assert detail.status == "unknown"
        assert detail.initiative_id is None
        assert detail.priority_level is None
        assert detail.health_status is None
        assert detail.product_name is None
        assert detail.complexity == "medium"
        assert detail.effective_load == pytest.approx(6.0)
        assert workload.active_initiatives == 0
        assert workload.completed_initiatives == 0

    def test_detail_carries_initiative_fields(self):
        initiative = _initiative(
            "i9", status="blocked", priority="high", complexity="low",
            delivery=date(2024, 9, 1), health="amber", product="Billing",
        )
        allocation = _allocation("a1", role="advisor", hours=10, end=date(2024, 12, 31), initiative=initiative)
        [workload] = compute_workloads(_snapshot([_person()], [allocation]), TODAY)
        detail = workload.allocations[0].to_dict()
        assert detail == {
            "allocation_id": "a1",
            "initiative_id": "i9",
            "title": "Initiative i9",
            "status": "blocked",
            "priority_level": "high",
            "complexity": "low",
            "role": "advisor",
            "allocated_hours_per_week": 10,
            "effective_load": pytest.approx(10 * 0.3 * 0.8),
            "start_date": "2024-01-01",
            "end_date": "2024-12-31",
            "tentative_delivery_date": "2024-09-01",
            "health_status": "amber",
            "product_name": "Billing",
        }


class TestIdempotence:
    def test_repeated_runs_are_identical(self):
        snapshot = _snapshot(
            [_person("p1"), _person("p2", "Grace Hopper", dept="Ops")],
            [
                _allocation("a1", person_id="p1", role="lead", hours=20, initiative=_initiative("i1", complexity="high")),
                _allocation("a2", person_id="p2", role="reviewer", hours=12, initiative=_initiative("i2", status="dropped")),
                _allocation("a3", person_id="p1", hours=5, initiative=_initiative("i3", health="red")),
            ],
            {"weekly_capacity_hours": 36},
        )
        first = compute_workloads(snapshot, TODAY)
        second = compute_workloads(snapshot, TODAY)
        assert first == second
        assert [w.to_dict() for w in first] == [w.to_dict() for w in second]
