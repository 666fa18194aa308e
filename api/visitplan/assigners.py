from __future__ import annotations

import logging
import random
from typing import Any, Dict, Iterable, List, Optional

from visitplan.admissibility import can_place
from visitplan.store import BI_MONTHLY, MONTHLY, QUARTERLY, VIP, ScheduleStore, VisitType

logger = logging.getLogger(__name__)


def _of_frequency(customers: Iterable[Dict[str, Any]], frequency: str) -> List[Dict[str, Any]]:
    return [c for c in customers if c["frequency"] == frequency]


def rank_days(store: ScheduleStore, customer: Dict[str, Any], days: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Order candidate days: least busy for the customer's team first, then days
    where the team already works the customer's location, then least busy overall.

    ``sorted`` is stable, so remaining ties stay in date order.
    """
    team = customer["team"]
    location = customer.get("location")
    return sorted(
        days,
        key=lambda day: (
            store.team_load(day, team),
            0 if store.has_location(day, team, location) else 1,
            store.total_load(day),
        ),
    )


def _place_first(
    store: ScheduleStore,
    customer: Dict[str, Any],
    candidates: Iterable[Dict[str, Any]],
    visit_type: VisitType,
) -> Optional[Dict[str, Any]]:
    for day in rank_days(store, customer, candidates):
        if can_place(store, day, customer["team"], customer):
            store.add_visit(day, customer["team"], customer, visit_type)
            return day
    return None


def assign_vip(store: ScheduleStore, customers: Iterable[Dict[str, Any]]) -> None:
    interval = int(store.rules["vip_interval_days"])
    days = store.ordered_days()
    if not days:
        return
    first = days[0]["date"].replace(day=1)
    for customer in _of_frequency(customers, VIP):
        for day in days:
            if (day["date"] - first).days % interval:
                continue
            if can_place(store, day, customer["team"], customer, allow_rest_day=True):
                store.add_visit(day, customer["team"], customer, "VIP")
            else:
                store.record_violation(
                    f"Missed VIP visit for {customer['name']} on {day['date'].isoformat()}"
                )


def assign_bimonthly(store: ScheduleStore, customers: Iterable[Dict[str, Any]]) -> None:
    for customer in _of_frequency(customers, BI_MONTHLY):
        if _place_first(store, customer, store.working_days(), "Bi-Monthly") is None:
            store.record_violation(f"Could not schedule Bi-Monthly visit for {customer['name']}")


def assign_monthly(
    store: ScheduleStore,
    customers: Iterable[Dict[str, Any]],
    rng: Optional[random.Random] = None,
) -> None:
    rules = store.rules
    last_first_day = int(rules["monthly_first_visit_last_day"])
    gap_min = int(rules["monthly_gap_min"])
    gap_max = int(rules["monthly_gap_max"])

    monthly = _of_frequency(customers, MONTHLY)
    # spread customers of the same team instead of stacking them on the first quiet day
    (rng or random.Random()).shuffle(monthly)

    for customer in monthly:
        first_window = [d for d in store.working_days() if d["date"].day <= last_first_day]
        first = _place_first(store, customer, first_window, "Monthly_1")
        if first is None:
            store.record_violation(f"Missing Monthly_1 for {customer['name']}")
            continue

        first_date = first["date"]
        second_window = [
            d for d in store.working_days()
            if gap_min <= (d["date"] - first_date).days <= gap_max
        ]
        if _place_first(store, customer, second_window, "Monthly_2") is None:
            store.record_violation(
                f"Missing Monthly_2 for {customer['name']}: no admissible day "
                f"{gap_min}-{gap_max} days after {first_date.isoformat()}"
            )


def assign_quarterly(store: ScheduleStore, customers: Iterable[Dict[str, Any]]) -> None:
    for customer in _of_frequency(customers, QUARTERLY):
        if _place_first(store, customer, store.working_days(), "Quarterly") is None:
            store.record_violation(f"Could not schedule Quarterly for {customer['name']}")


def run_assigners(
    store: ScheduleStore,
    customers: List[Dict[str, Any]],
    rng: Optional[random.Random] = None,
) -> None:
    assign_vip(store, customers)
    assign_bimonthly(store, customers)
    assign_monthly(store, customers, rng)
    assign_quarterly(store, customers)
    logger.info(
        "assigned %d visits for %d customers (%d placement failures)",
        store.summary["total_visits"],
        len(customers),
        len(store.violations),
    )
