from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List

from visitplan.month import build_calendar
from visitplan.store import (
    BI_MONTHLY,
    MONTHLY,
    RULE_DEFAULTS,
    VIP,
    VISIT_TYPES,
    VISIT_TYPES_BY_FREQUENCY,
    ScheduleStore,
    is_vip_visit,
)

logger = logging.getLogger(__name__)


def _check_days(store: ScheduleStore) -> None:
    cap = int(store.rules["vip_day_team_cap"])
    for key, day in store.days.items():
        if not day["is_working_day"]:
            for team, visits in day["jobs"].items():
                for visit in visits:
                    if not is_vip_visit(visit) or team not in store.vip_teams:
                        store.record_violation(
                            f"Rest day {key}: {visit['type']} visit for {visit['customer']} (team {team})"
                        )

        if not store.has_vip(day):
            continue
        non_vip_teams = [t for t in store.active_teams(day) if t not in store.vip_teams]
        if len(non_vip_teams) > cap:
            store.record_violation(
                f"VIP day {key}: {len(non_vip_teams)} non-VIP teams active, limit is {cap}"
            )
        for team, visits in day["jobs"].items():
            if not any(is_vip_visit(v) for v in visits):
                continue
            for visit in visits:
                if not is_vip_visit(visit):
                    store.record_violation(
                        f"VIP route team {team} on {key} also has {visit['type']} visit for {visit['customer']}"
                    )


def _check_monthly(store: ScheduleStore, customer: Dict[str, Any], dates: List[dt.date]) -> None:
    gap_min = int(store.rules["monthly_gap_min"])
    gap_max = int(store.rules["monthly_gap_max"])
    if len(dates) != 2:
        store.record_violation(
            f"Monthly violation for {customer['name']}: expected 2 visits, found {len(dates)}"
        )
        return
    gap = (dates[1] - dates[0]).days
    if gap < gap_min or gap > gap_max:
        store.record_violation(f"Monthly violation for {customer['name']}: gap is {gap} days.")


def _check_vip(store: ScheduleStore, customer: Dict[str, Any], dates: List[dt.date]) -> None:
    interval = int(store.rules["vip_interval_days"])
    days = store.ordered_days()
    if not days:
        return
    first = days[0]["date"].replace(day=1)
    expected = {d["date"] for d in days if (d["date"] - first).days % interval == 0}
    actual = set(dates)
    for repeated in sorted(d for d in actual if dates.count(d) > 1):
        store.record_violation(
            f"VIP violation for {customer['name']}: {dates.count(repeated)} visits on {repeated.isoformat()}"
        )
    for missing in sorted(expected - actual):
        store.record_violation(f"VIP violation for {customer['name']}: no visit on {missing.isoformat()}")
    for extra in sorted(actual - expected):
        store.record_violation(
            f"VIP violation for {customer['name']}: visit on {extra.isoformat()} breaks the {interval}-day cadence"
        )


def validate_schedule(store: ScheduleStore, customers: List[Dict[str, Any]]) -> bool:
    """Re-derive the schedule rules from the committed store and log every breach.

    Works from the store contents alone, so visits the assigners failed to place
    show up again here. Returns True only when the whole log is empty.
    """
    _check_days(store)
    for customer in customers:
        dates = sorted(date for date, _, _ in store.visits_for(customer["name"]))
        frequency = customer["frequency"]
        if frequency == MONTHLY:
            _check_monthly(store, customer, dates)
        elif frequency == BI_MONTHLY and len(dates) != 1:
            store.record_violation(
                f"Bi-Monthly violation for {customer['name']}: expected 1 visit, found {len(dates)}"
            )
        elif frequency == VIP:
            _check_vip(store, customer, dates)

    ok = len(store.violations) == 0
    logger.info("validation %s (%d violations)", "PASSED" if ok else "FAILED", len(store.violations))
    return ok


def recheck_assignments(
    assignments: List[Dict[str, Any]],
    customers: List[Dict[str, Any]],
    rules: Dict[str, Any],
) -> Dict[str, Any]:
    merged = {**RULE_DEFAULTS, **rules}
    year = int(merged["year"])
    month = int(merged["month"])
    calendar = build_calendar(year, month, int(merged["rest_weekday"]))

    customer_by_name = {c["name"]: c for c in customers}
    teams = {c["team"] for c in customers}
    vip_teams = {c["team"] for c in customers if c["frequency"] == VIP}
    store = ScheduleStore(calendar, teams, vip_teams=vip_teams, rules=merged)

    for entry in assignments:
        name = str(entry.get("customer"))
        date_key = str(entry.get("date"))
        visit_type = entry.get("type")
        if name not in customer_by_name:
            store.record_violation(f"unknown customer {name}")
            continue
        if date_key not in store.days:
            store.record_violation(f"date out of month {date_key} for {name}")
            continue
        if visit_type not in VISIT_TYPES:
            store.record_violation(f"unknown visit type {visit_type} for {name} at {date_key}")
            continue
        customer = customer_by_name[name]
        if visit_type not in VISIT_TYPES_BY_FREQUENCY.get(customer["frequency"], ()):
            store.record_violation(
                f"visit type {visit_type} does not match {customer['frequency']} for {name} at {date_key}"
            )
        team = str(entry.get("team") or customer["team"])
        store.add_visit(store.get_day(date_key), team, customer, visit_type)

    ok = validate_schedule(store, customers)
    return {
        "ok": ok,
        "violations": list(store.violations),
        "summary": {
            "total_customers": len(customers),
            **store.summary,
        },
    }
