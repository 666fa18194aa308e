from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional

from visitplan.assigners import run_assigners
from visitplan.month import build_calendar
from visitplan.recheck import validate_schedule
from visitplan.store import RULE_DEFAULTS, VIP, ScheduleStore

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["date", "team", "customer", "frequency", "type", "location"]


def _extract_assignments(store: ScheduleStore) -> List[Dict[str, Any]]:
    assignments: List[Dict[str, Any]] = []
    for key, day in store.days.items():
        for team in store.teams:
            for visit in day["jobs"].get(team, []):
                assignments.append({
                    "date": key,
                    "team": team,
                    "customer": visit["customer"],
                    "frequency": visit["frequency"],
                    "type": visit["type"],
                    "location": visit.get("location"),
                })
    return assignments


def _summarize(store: ScheduleStore, customers: List[Dict[str, Any]]) -> Dict[str, Any]:
    capacity = int(store.rules["capacity_limit"])
    working = store.working_days()
    peak_day: Optional[str] = None
    peak_load = 0
    over_capacity: List[str] = []
    for key, day in store.days.items():
        total = store.total_load(day)
        if total > peak_load:
            peak_load = total
            peak_day = key
        if total > capacity:
            over_capacity.append(key)
    average = round(store.summary["total_visits"] / len(working), 2) if working else 0.0
    return {
        "total_customers": len(customers),
        "total_visits": store.summary["total_visits"],
        "visits_by_frequency": dict(store.summary["visits_by_frequency"]),
        "visits_by_team": dict(store.summary["visits_by_team"]),
        "working_days": len(working),
        "average_jobs_per_working_day": average,
        "peak_day": peak_day,
        "peak_load": peak_load,
        "over_capacity_days": over_capacity,
        "capacity_limit": capacity,
    }


def build_schedule(
    customers: List[Dict[str, Any]],
    rules: Dict[str, Any],
    *,
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    merged = {**RULE_DEFAULTS, **rules}
    year = int(merged["year"])
    month = int(merged["month"])
    if seed is None and merged.get("seed") is not None:
        seed = int(merged["seed"])

    calendar = build_calendar(year, month, int(merged["rest_weekday"]))
    teams = {c["team"] for c in customers}
    vip_teams = {c["team"] for c in customers if c["frequency"] == VIP}
    store = ScheduleStore(calendar, teams, vip_teams=vip_teams, rules=merged)
    logger.info(
        "scheduling %d customers over %04d-%02d (%d teams, %d VIP teams)",
        len(customers), year, month, len(store.teams), len(vip_teams),
    )

    # VIP -> Bi-Monthly -> Monthly -> Quarterly
    run_assigners(store, customers, random.Random(seed))
    valid = validate_schedule(store, customers)

    return {
        "status": "OK",
        "year": year,
        "month": month,
        "days": list(store.days.keys()),
        "working_days": [key for key, day in store.days.items() if day["is_working_day"]],
        "teams": list(store.teams),
        "vip_teams": sorted(vip_teams),
        "assignments": _extract_assignments(store),
        "schedule": {key: day["jobs"] for key, day in store.days.items()},
        "summary": _summarize(store, customers),
        "violations": list(store.violations),
        "valid": valid,
        "validation_check": "PASSED" if valid else "FAILED",
        "seed": seed,
    }


def to_csv(assignments: List[Dict[str, Any]]) -> str:
    import csv
    import io

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)
    for entry in assignments:
        writer.writerow([entry.get(col) if entry.get(col) is not None else "" for col in CSV_COLUMNS])
    return output.getvalue()
