from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from flask import Flask, jsonify, request

from workload_tracker.capacity import resolve_settings
from workload_tracker.engine import compute_workloads
from workload_tracker.io_utils import (
    INPUT_FILES,
    WorkloadDataError,
    input_paths,
    load_settings_record,
    load_snapshot,
    parse_optional_date,
    save_settings_record,
)
from workload_tracker.recommendations import DelegationAdvisor
from workload_tracker.reporting import departments, filter_workloads, sort_by_utilization, summarize

LOGGER = logging.getLogger(__name__)

REQUIRED_INPUT_FILES = (INPUT_FILES["people"], INPUT_FILES["initiatives"], INPUT_FILES["allocations"])


def _default_portfolios_root() -> Path:
    return (Path(__file__).resolve().parent.parent / "portfolios").resolve()


def _resolve_portfolios_root() -> Path:
    env_value = os.getenv("WORKLOAD_ROOT")
    if env_value:
        return Path(env_value).expanduser().resolve()
    return _default_portfolios_root()


def _validate_within_root(path: Path, root: Path) -> None:
    try:
        path.relative_to(root)
    except ValueError as exc:
        raise ValueError(f"Portfolio directory must be inside {root}") from exc


def _check_input_dir(portfolio_dir: Path) -> Tuple[Path, List[str]]:
    input_dir = portfolio_dir / "input"
    if not input_dir.is_dir():
        return input_dir, list(REQUIRED_INPUT_FILES)
    missing = [name for name in REQUIRED_INPUT_FILES if not (input_dir / name).is_file()]
    return input_dir, missing


def _resolve_portfolio(name: str, root: Path) -> Path:
    portfolio_dir = (root / name).resolve()
    _validate_within_root(portfolio_dir, root)
    if not portfolio_dir.is_dir():
        raise FileNotFoundError(f"Portfolio not found: {name}")
    return portfolio_dir


def _list_portfolios(root: Path) -> List[Dict[str, object]]:
    entries: List[Dict[str, object]] = []
    if not root.exists():
        return entries
    for child in sorted(root.iterdir()):
        if not child.is_dir():
            continue
        input_dir, missing = _check_input_dir(child)
        entries.append(
            {
                "name": child.relative_to(root).as_posix(),
                "input_dir": input_dir.as_posix(),
                "is_valid": not missing,
            }
        )
    return entries


def _stored_settings(path: Path) -> Optional[Dict[str, float]]:
    try:
        return load_settings_record(path)
    except (OSError, ValueError) as exc:
        raise WorkloadDataError(str(exc)) from exc


def _reference_date() -> date:
    parsed = parse_optional_date(request.args.get("today"), "today")
    return parsed if parsed is not None else date.today()


def create_app() -> Flask:
    app = Flask(__name__)
    portfolios_root = _resolve_portfolios_root()
    app.config["WORKLOAD_ROOT"] = portfolios_root

    def _load(name: str):
        portfolio_dir = _resolve_portfolio(name, portfolios_root)
        paths = input_paths(portfolio_dir)
        snapshot = load_snapshot(
            paths["people"], paths["initiatives"], paths["allocations"], paths["settings"]
        )
        return snapshot, resolve_settings(snapshot.settings)

    @app.errorhandler(WorkloadDataError)
    def handle_data_error(exc: WorkloadDataError):
        LOGGER.warning("workload fetch failed: %s", exc.reason)
        return jsonify({"error": "could not load workload data", "detail": exc.reason}), 500

    @app.errorhandler(FileNotFoundError)
    def handle_not_found(exc: FileNotFoundError):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(ValueError)
    def handle_invalid(exc: ValueError):
        return jsonify({"error": str(exc)}), 400

    @app.get("/dirs")
    def directories():
        return jsonify({"portfolios": _list_portfolios(portfolios_root)})

    @app.get("/api/workload/<portfolio_name>")
    def get_workload(portfolio_name: str):
        today = _reference_date()
        snapshot, settings = _load(portfolio_name)
        workloads = compute_workloads(snapshot, today, settings)
        filtered = filter_workloads(
            workloads,
            department=request.args.get("department"),
            priority=request.args.get("priority"),
            status=request.args.get("status"),
        )
        ordered = sort_by_utilization(filtered)
        return jsonify(
            {
                "today": today.isoformat(),
                "settings": settings.to_dict(),
                "departments": departments(workloads),
                "summary": summarize(ordered),
                "people": [w.to_dict() for w in ordered],
            }
        )

    @app.get("/api/recommendations/<portfolio_name>")
    def get_recommendations(portfolio_name: str):
        today = _reference_date()
        snapshot, settings = _load(portfolio_name)
        workloads = compute_workloads(snapshot, today, settings)
        return jsonify(DelegationAdvisor(workloads, settings).analyze())

    @app.get("/api/settings/<portfolio_name>")
    def get_settings(portfolio_name: str):
        portfolio_dir = _resolve_portfolio(portfolio_name, portfolios_root)
        record = _stored_settings(input_paths(portfolio_dir)["settings"])
        return jsonify({"is_default": record is None, "settings": resolve_settings(record).to_dict()})

    @app.post("/api/settings/<portfolio_name>")
    def save_settings(portfolio_name: str):
        portfolio_dir = _resolve_portfolio(portfolio_name, portfolios_root)
        updates = request.get_json(silent=True)
        if not isinstance(updates, dict):
            return jsonify({"error": "settings must be a JSON object"}), 400
        settings_path = input_paths(portfolio_dir)["settings"]
        current = _stored_settings(settings_path) or {}
        merged = {**current, **updates}
        saved = save_settings_record(settings_path, merged)
        LOGGER.info("capacity settings updated for %s", portfolio_name)
        return jsonify({"success": True, "settings": resolve_settings(saved).to_dict()})

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
