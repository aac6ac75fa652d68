from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from .capacity import resolve_settings
from .engine import compute_workloads
from .io_utils import (
    WorkloadDataError,
    ensure_directory,
    input_paths,
    load_snapshot,
    parse_optional_date,
    write_csv,
)
from .models import PersonWorkload
from .reporting import (
    details_to_frame,
    filter_workloads,
    render_summary_markdown,
    sort_by_utilization,
    summarize,
    workloads_to_frame,
)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Workload and capacity report (JSON/CSV in, CSV/markdown out)."
    )
    parser.add_argument(
        "--project-dir",
        help="Portfolio directory containing input/ and output/ subfolders",
    )
    parser.add_argument("--people", help="Path to people JSON (overrides project-dir default)")
    parser.add_argument("--initiatives", help="Path to initiatives JSON (overrides project-dir default)")
    parser.add_argument("--allocations", help="Path to allocations CSV (overrides project-dir default)")
    parser.add_argument(
        "--settings",
        help="Path to capacity settings JSON; defaults apply when the file is absent",
    )
    parser.add_argument(
        "--today",
        help="Reference date (YYYY-MM-DD) for active allocations and overdue checks (default: today)",
    )
    parser.add_argument(
        "--outdir",
        default=None,
        help="Output directory for generated files (default: <project-dir>/output or ./out)",
    )
    parser.add_argument("--department", help="Only report people in this department")
    parser.add_argument(
        "--priority",
        choices=["all", "high", "medium", "low"],
        help="Only report people with open work at this priority",
    )
    parser.add_argument("--status", help="Only report people with an allocation in this initiative status")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute and print the report without writing output files",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def _resolve_io_paths(args: argparse.Namespace) -> Dict[str, Optional[Path]]:
    project_dir = Path(args.project_dir).resolve() if args.project_dir else None
    if project_dir and not project_dir.exists():
        raise ValueError(f"project directory not found: {project_dir}")
    defaults = input_paths(project_dir) if project_dir else {}

    def _pick(path_value: Optional[str], key: str) -> Optional[Path]:
        if path_value:
            return Path(path_value)
        return defaults.get(key)

    paths: Dict[str, Optional[Path]] = {
        "people": _pick(args.people, "people"),
        "initiatives": _pick(args.initiatives, "initiatives"),
        "allocations": _pick(args.allocations, "allocations"),
        "settings": _pick(args.settings, "settings"),
    }
    missing = [key for key in ("people", "initiatives", "allocations") if paths[key] is None]
    if missing:
        joined = ", ".join(f"--{name}" for name in missing)
        raise ValueError(f"missing required input paths: {joined} (or provide --project-dir)")

    if args.outdir:
        paths["outdir"] = Path(args.outdir)
    elif project_dir:
        paths["outdir"] = project_dir / "output"
    else:
        paths["outdir"] = Path("out")
    return paths


def _resolve_today(raw: Optional[str]) -> date:
    parsed = parse_optional_date(raw, "today")
    return parsed if parsed is not None else date.today()


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _print_dry_run_summary(workloads: List[PersonWorkload], summary: Dict[str, int]) -> None:
    if not workloads:
        print("No people with active allocations.")
        return
    print("Workload by utilization:")
    for w in workloads:
        print(
            f"- {w.full_name} ({w.department or 'no department'}): "
            f"{w.total_allocated_hours}h allocated, {w.total_effective_load:.1f}h effective, "
            f"{w.utilization_percentage:.1f}% [{w.workload_category}]"
        )
    print(
        f"\nTotal {summary['total']}: {summary['healthy']} healthy, "
        f"{summary['warning']} warning, {summary['overloaded']} overloaded "
        f"(avg {summary['avg_utilization']}%)"
    )


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    _configure_logging(args.log_level)
    try:
        paths = _resolve_io_paths(args)
        today = _resolve_today(args.today)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    try:
        snapshot = load_snapshot(
            paths["people"], paths["initiatives"], paths["allocations"], paths["settings"]
        )
    except WorkloadDataError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    settings = resolve_settings(snapshot.settings)
    workloads = compute_workloads(snapshot, today, settings)
    workloads = filter_workloads(
        workloads, department=args.department, priority=args.priority, status=args.status
    )
    workloads = sort_by_utilization(workloads)
    summary = summarize(workloads)
    logging.getLogger(__name__).info(
        "computed workload for %d people as of %s", summary["total"], today.isoformat()
    )

    if args.dry_run:
        _print_dry_run_summary(workloads, summary)
        return

    outdir_path = ensure_directory(paths["outdir"])
    workload_path = outdir_path / "person_workload.csv"
    detail_path = outdir_path / "allocation_detail.csv"
    report_path = outdir_path / "delegation_report.md"
    write_csv(workloads_to_frame(workloads), workload_path)
    write_csv(details_to_frame(workloads), detail_path)
    report_path.write_text(
        render_summary_markdown(workloads, summary, settings, reference_date=today.isoformat())
    )
    print(f"Wrote {workload_path}")
    print(f"Wrote {detail_path}")
    print(f"Wrote {report_path}")


if __name__ == "__main__":
    main()
