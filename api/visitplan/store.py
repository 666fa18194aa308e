from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

VisitType = Literal["VIP", "Bi-Monthly", "Monthly_1", "Monthly_2", "Quarterly"]
VISIT_TYPES: Tuple[VisitType, ...] = ("VIP", "Bi-Monthly", "Monthly_1", "Monthly_2", "Quarterly")

VIP = "VIP_Every_2_Days"
BI_MONTHLY = "Bi-Monthly"
MONTHLY = "Monthly"
QUARTERLY = "Quarterly"
FREQUENCIES: Tuple[str, ...] = (VIP, BI_MONTHLY, MONTHLY, QUARTERLY)

VISIT_TYPES_BY_FREQUENCY: Dict[str, Tuple[VisitType, ...]] = {
    VIP: ("VIP",),
    BI_MONTHLY: ("Bi-Monthly",),
    MONTHLY: ("Monthly_1", "Monthly_2"),
    QUARTERLY: ("Quarterly",),
}

RULE_DEFAULTS: Dict[str, Any] = {
    "rest_weekday": 6,
    "capacity_limit": 18,
    "vip_day_team_cap": 2,
    "normal_day_team_cap": 3,
    "vip_interval_days": 2,
    "monthly_first_visit_last_day": 15,
    "monthly_gap_min": 12,
    "monthly_gap_max": 16,
    "teams": [],
    "team_aliases": {},
    "seed": None,
}


def is_vip(customer: Dict[str, Any]) -> bool:
    return customer.get("frequency") == VIP


def is_vip_visit(visit: Dict[str, Any]) -> bool:
    # both the tag and the customer's class must say VIP
    return visit.get("type") == "VIP" and visit.get("frequency") == VIP


class ScheduleStore:
    """Day -> team -> visits for one month, plus the violation log and visit counters.

    Day records are only ever changed through ``add_visit``; committed visits are
    never moved or removed.
    """

    def __init__(
        self,
        calendar: Sequence[Dict[str, Any]],
        teams: Iterable[str],
        vip_teams: Iterable[str] = (),
        rules: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.rules: Dict[str, Any] = {**RULE_DEFAULTS, **(rules or {})}
        self.teams: List[str] = sorted(set(teams))
        self.vip_teams = set(vip_teams)
        self.days: Dict[str, Dict[str, Any]] = {}
        for entry in sorted(calendar, key=lambda e: e["date"]):
            self.days[entry["date"].isoformat()] = {
                "date": entry["date"],
                "is_working_day": bool(entry["is_working_day"]),
                "jobs": {team: [] for team in self.teams},
            }
        self.violations: List[str] = []
        self.summary: Dict[str, Any] = {
            "total_visits": 0,
            "visits_by_frequency": {},
            "visits_by_team": {},
        }

    def ordered_days(self) -> List[Dict[str, Any]]:
        return list(self.days.values())

    def working_days(self) -> List[Dict[str, Any]]:
        return [day for day in self.days.values() if day["is_working_day"]]

    def get_day(self, when: dt.date | str) -> Dict[str, Any]:
        key = when if isinstance(when, str) else when.isoformat()
        return self.days[key]

    def add_visit(self, day: Dict[str, Any], team: str, customer: Dict[str, Any], visit_type: VisitType) -> Dict[str, Any]:
        visit = {
            "customer": customer["name"],
            "frequency": customer["frequency"],
            "type": visit_type,
            "location": customer.get("location"),
        }
        day["jobs"].setdefault(team, []).append(visit)
        if team not in self.teams:
            self.teams = sorted({*self.teams, team})
        freq_counts = self.summary["visits_by_frequency"]
        team_counts = self.summary["visits_by_team"]
        self.summary["total_visits"] += 1
        freq_counts[customer["frequency"]] = freq_counts.get(customer["frequency"], 0) + 1
        team_counts[team] = team_counts.get(team, 0) + 1
        logger.debug("%s %s: %s (%s)", day["date"].isoformat(), team, customer["name"], visit_type)
        return visit

    def team_load(self, day: Dict[str, Any], team: str) -> int:
        return len(day["jobs"].get(team, []))

    def total_load(self, day: Dict[str, Any]) -> int:
        return sum(len(visits) for visits in day["jobs"].values())

    def has_vip(self, day: Dict[str, Any]) -> bool:
        return any(is_vip_visit(v) for visits in day["jobs"].values() for v in visits)

    def team_has_vip(self, day: Dict[str, Any], team: str) -> bool:
        return any(is_vip_visit(v) for v in day["jobs"].get(team, []))

    def active_teams(self, day: Dict[str, Any]) -> List[str]:
        return [team for team, visits in day["jobs"].items() if visits]

    def has_location(self, day: Dict[str, Any], team: str, location: Optional[str]) -> bool:
        if not location:
            return False
        return any(v.get("location") == location for v in day["jobs"].get(team, []))

    def visits_for(self, customer_name: str) -> List[Tuple[dt.date, str, Dict[str, Any]]]:
        found: List[Tuple[dt.date, str, Dict[str, Any]]] = []
        for day in self.days.values():
            for team, visits in day["jobs"].items():
                for visit in visits:
                    if visit["customer"] == customer_name:
                        found.append((day["date"], team, visit))
        return found

    def record_violation(self, message: str) -> None:
        logger.info("violation: %s", message)
        self.violations.append(message)
