"""
Delegation recommendations built on top of a computed workload report.

Answers the two questions the delegation view is used for:
- Who is overloaded, and by how many effective hours
- Who can take more work, and how much before reaching the warning band

and pairs them into concrete reassignment suggestions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from .engine import OVERLOADED_THRESHOLD_PCT, WARNING_THRESHOLD_PCT
from .models import AllocationDetail, CapacitySettings, OPEN_STATUSES, PersonWorkload

CRITICAL_UTILIZATION_PCT = 120.0

# Lowest priority is handed off first; unknown priority is treated as lowest.
_HANDOFF_ORDER = {None: 0, "low": 0, "medium": 1, "high": 2}


@dataclass
class OverloadFinding:
    person_id: str
    full_name: str
    department: Optional[str]
    utilization_pct: float
    excess_hours: float  # effective hours above the overloaded threshold
    severity: str  # "critical", "high"


@dataclass
class AvailabilityFinding:
    person_id: str
    full_name: str
    department: Optional[str]
    utilization_pct: float
    headroom_hours: float  # effective hours until the warning threshold


@dataclass
class ReassignmentSuggestion:
    from_person: str
    to_person: str
    allocation_id: str
    initiative_title: str
    role: str
    effective_load: float
    same_department: bool
    reason: str


class DelegationAdvisor:
    """Turns a workload report into delegation suggestions."""

    def __init__(self, workloads: Sequence[PersonWorkload], settings: CapacitySettings):
        self.workloads = list(workloads)
        self.settings = settings

        self.overloaded: List[OverloadFinding] = []
        self.available: List[AvailabilityFinding] = []
        self.reassignments: List[ReassignmentSuggestion] = []

    def analyze(self) -> Dict[str, object]:
        self._find_overloaded()
        self._find_available()
        self._suggest_reassignments()
        return {
            "overloaded": [self._overload_to_dict(o) for o in self.overloaded],
            "available": [self._available_to_dict(a) for a in self.available],
            "reassignments": [self._reassignment_to_dict(r) for r in self.reassignments],
            "summary": self._generate_summary(),
        }

    def _threshold_hours(self, pct: float) -> float:
        return self.settings.weekly_capacity_hours * pct / 100

    def _find_overloaded(self) -> None:
        limit = self._threshold_hours(OVERLOADED_THRESHOLD_PCT)
        for w in self.workloads:
            if w.workload_category != "overloaded":
                continue
            self.overloaded.append(OverloadFinding(
                person_id=w.id,
                full_name=w.full_name,
                department=w.department,
                utilization_pct=w.utilization_percentage,
                excess_hours=w.total_effective_load - limit,
                severity="critical" if w.utilization_percentage > CRITICAL_UTILIZATION_PCT else "high",
            ))
        self.overloaded.sort(key=lambda o: (-o.utilization_pct, o.full_name))

    def _find_available(self) -> None:
        limit = self._threshold_hours(WARNING_THRESHOLD_PCT)
        for w in self.workloads:
            if w.workload_category != "healthy":
                continue
            self.available.append(AvailabilityFinding(
                person_id=w.id,
                full_name=w.full_name,
                department=w.department,
                utilization_pct=w.utilization_percentage,
                headroom_hours=max(0.0, limit - w.total_effective_load),
            ))
        self.available.sort(key=lambda a: (-a.headroom_hours, a.full_name))

    @staticmethod
    def _handoff_candidates(workload: PersonWorkload) -> List[AllocationDetail]:
        candidates = [
            d for d in workload.allocations
            if d.status in OPEN_STATUSES and d.role != "lead"
        ]
        candidates.sort(
            key=lambda d: (_HANDOFF_ORDER.get(d.priority_level, 0), -d.effective_load, d.allocation_id)
        )
        return candidates

    def _suggest_reassignments(self) -> None:
        by_id = {w.id: w for w in self.workloads}
        used: Set[str] = set()
        for finding in self.overloaded:
            workload = by_id[finding.person_id]
            for detail in self._handoff_candidates(workload):
                receiver = self._pick_receiver(detail, workload.department, used)
                if receiver is None:
                    continue
                used.update({finding.person_id, receiver.person_id})
                self.reassignments.append(ReassignmentSuggestion(
                    from_person=finding.full_name,
                    to_person=receiver.full_name,
                    allocation_id=detail.allocation_id,
                    initiative_title=detail.title,
                    role=detail.role,
                    effective_load=detail.effective_load,
                    same_department=receiver.department == workload.department,
                    reason=(
                        f"{finding.full_name} is at {finding.utilization_pct:.0f}% utilization; "
                        f"{receiver.full_name} has {receiver.headroom_hours:.1f}h of headroom"
                    ),
                ))
                break

    def _pick_receiver(
        self, detail: AllocationDetail, department: Optional[str], used: Set[str]
    ) -> Optional[AvailabilityFinding]:
        fits = [
            a for a in self.available
            if a.person_id not in used and a.headroom_hours >= detail.effective_load
        ]
        if not fits:
            return None
        same_department = [a for a in fits if department and a.department == department]
        return (same_department or fits)[0]

    def _generate_summary(self) -> Dict[str, object]:
        return {
            "overloaded_people": len(self.overloaded),
            "critical_people": sum(1 for o in self.overloaded if o.severity == "critical"),
            "available_people": len(self.available),
            "total_headroom_hours": round(sum(a.headroom_hours for a in self.available), 1),
            "reassignment_suggestions": len(self.reassignments),
        }

    @staticmethod
    def _overload_to_dict(o: OverloadFinding) -> Dict:
        return {
            "type": "overloaded",
            "person_id": o.person_id,
            "full_name": o.full_name,
            "department": o.department,
            "utilization_pct": round(o.utilization_pct, 1),
            "excess_hours": round(o.excess_hours, 1),
            "severity": o.severity,
        }

    @staticmethod
    def _available_to_dict(a: AvailabilityFinding) -> Dict:
        return {
            "type": "available",
            "person_id": a.person_id,
            "full_name": a.full_name,
            "department": a.department,
            "utilization_pct": round(a.utilization_pct, 1),
            "headroom_hours": round(a.headroom_hours, 1),
        }

    @staticmethod
    def _reassignment_to_dict(r: ReassignmentSuggestion) -> Dict:
        return {
            "type": "reassignment",
            "from_person": r.from_person,
            "to_person": r.to_person,
            "allocation_id": r.allocation_id,
            "initiative_title": r.initiative_title,
            "role": r.role,
            "effective_load": round(r.effective_load, 1),
            "same_department": r.same_department,
            "reason": r.reason,
        }
