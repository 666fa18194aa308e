from __future__ import annotations

from typing import Any, Dict

from visitplan.store import ScheduleStore, is_vip


def can_place(
    store: ScheduleStore,
    day: Dict[str, Any],
    team: str,
    customer: Dict[str, Any],
    allow_rest_day: bool = False,
) -> bool:
    """Return True if a visit for ``customer`` by ``team`` may be added to ``day``.

    Reads the store only. Callers must ask again right before every commit since
    each commit changes the answer for later candidates.
    """
    if not day["is_working_day"] and not allow_rest_day:
        return False

    rules = store.rules
    active = store.active_teams(day)
    team_active = team in active

    if store.has_vip(day):
        # the VIP team's vehicle stays on its VIP route for the day
        if store.team_has_vip(day, team) and not is_vip(customer):
            return False
        if team not in store.vip_teams:
            non_vip_active = [t for t in active if t not in store.vip_teams]
            if not team_active and len(non_vip_active) >= int(rules["vip_day_team_cap"]):
                return False
    elif not team_active and len(active) >= int(rules["normal_day_team_cap"]):
        return False

    if store.total_load(day) >= int(rules["capacity_limit"]):
        return False
    return True
