import random

from visitplan.assigners import (
    assign_bimonthly,
    assign_monthly,
    assign_quarterly,
    assign_vip,
    rank_days,
)
from visitplan.engine import build_schedule
from visitplan.month import build_calendar
from visitplan.recheck import validate_schedule
from visitplan.store import VIP, ScheduleStore


def _customer(name, team, frequency, location=None):
    return {"name": name, "team": team, "frequency": frequency, "location": location, "force_vip": False}


def _store(year=2026, month=4, calendar=None, teams=("A", "B"), vip_teams=(), **rules):
    return ScheduleStore(
        calendar if calendar is not None else build_calendar(year, month),
        teams,
        vip_teams=vip_teams,
        rules={"year": year, "month": month, **rules},
    )


def test_rank_days_prefers_team_load_then_location_then_total():
    store = _store()
    customer = _customer("Shop", "A", "Quarterly", "Maadi")
    d1, d2, d3, d6 = (store.get_day(f"2026-04-0{n}") for n in (1, 2, 3, 6))
    store.add_visit(d1, "A", _customer("x1", "A", "Quarterly", "Giza"), "Quarterly")
    store.add_visit(d2, "A", _customer("x2", "A", "Quarterly", "Maadi"), "Quarterly")
    store.add_visit(d3, "B", _customer("x3", "B", "Quarterly", "Zamalek"), "Quarterly")

    assert [d["date"].day for d in rank_days(store, customer, [d1, d2, d3, d6])] == [6, 3, 2, 1]


def test_rank_days_keeps_date_order_on_full_ties():
    store = _store()
    customer = _customer("Shop", "A", "Quarterly")
    days = [store.get_day("2026-04-07"), store.get_day("2026-04-08"), store.get_day("2026-04-09")]
    assert rank_days(store, customer, days) == days


def test_single_quarterly_customer_lands_on_the_first():
    result = build_schedule([_customer("Shop", "A", "Quarterly")], {"year": 2026, "month": 4})
    assert result["assignments"] == [{
        "date": "2026-04-01",
        "team": "A",
        "customer": "Shop",
        "frequency": "Quarterly",
        "type": "Quarterly",
        "location": None,
    }]
    assert result["violations"] == []
    assert result["validation_check"] == "PASSED"


def test_vip_every_second_day_including_rest_days():
    store = _store(month=3, teams=("V",), vip_teams={"V"})
    vip = _customer("EDR", "V", VIP)
    assign_vip(store, [vip])
    dates = [d.day for d, _, _ in store.visits_for("EDR")]
    assert dates == list(range(1, 32, 2))
    # 2026-03-01 is a Sunday
    assert store.get_day("2026-03-01")["is_working_day"] is False
    assert store.violations == []


def test_vip_missed_dates_are_logged_once_and_not_retried():
    store = _store(month=3, teams=("V", "F"), vip_teams={"V"}, capacity_limit=3)
    vip = _customer("EDR", "V", VIP)
    vip_dates = [d for d in store.ordered_days() if (d["date"].day - 1) % 2 == 0]
    blocked = [d for d in vip_dates[1::2] if d["is_working_day"]]
    for day in blocked:
        for n in range(3):
            store.add_visit(day, "F", _customer(f"filler-{n}", "F", "Quarterly"), "Quarterly")

    assign_vip(store, [vip])

    missed = [f"Missed VIP visit for EDR on {d['date'].isoformat()}" for d in blocked]
    assert store.violations == missed
    placed = {d for d, _, _ in store.visits_for("EDR")}
    assert placed == {d["date"] for d in vip_dates} - {d["date"] for d in blocked}

    assert validate_schedule(store, [vip]) is False
    from_validator = [v for v in store.violations if v.startswith("VIP violation for EDR: no visit on")]
    assert from_validator == [f"VIP violation for EDR: no visit on {d['date'].isoformat()}" for d in blocked]


def test_bimonthly_gets_exactly_one_visit():
    store = _store()
    customer = _customer("Pharmacy", "A", "Bi-Monthly")
    assign_bimonthly(store, [customer])
    visits = store.visits_for("Pharmacy")
    assert len(visits) == 1
    date, team, visit = visits[0]
    assert date.isoformat() == "2026-04-01" and team == "A" and visit["type"] == "Bi-Monthly"


def test_no_working_day_logs_bimonthly_and_quarterly_failures():
    sunday_only = [d for d in build_calendar(2026, 4) if d["date"].day == 5]
    store = _store(calendar=sunday_only)
    assign_bimonthly(store, [_customer("Pharmacy", "A", "Bi-Monthly")])
    assign_quarterly(store, [_customer("Clinic", "B", "Quarterly")])
    assert store.violations == [
        "Could not schedule Bi-Monthly visit for Pharmacy",
        "Could not schedule Quarterly for Clinic",
    ]
    assert store.summary["total_visits"] == 0


def test_monthly_visits_are_12_to_16_days_apart():
    store = _store()
    customers = [_customer(f"M{n}", "A" if n % 2 else "B", "Monthly") for n in range(6)]
    assign_monthly(store, customers, random.Random(3))
    assert store.violations == []
    for customer in customers:
        visits = sorted(store.visits_for(customer["name"]), key=lambda v: v[0])
        assert [v[2]["type"] for v in visits] == ["Monthly_1", "Monthly_2"]
        assert visits[0][0].day <= 15
        assert 12 <= (visits[1][0] - visits[0][0]).days <= 16


def test_monthly_second_visit_missing_keeps_first():
    # month cut after the 12th: nothing exists 12-16 days after the 1st
    calendar = build_calendar(2026, 4)[:12]
    store = _store(calendar=calendar)
    customer = _customer("Bakery", "A", "Monthly")
    assign_monthly(store, [customer], random.Random(0))

    visits = store.visits_for("Bakery")
    assert [(d.isoformat(), v["type"]) for d, _, v in visits] == [("2026-04-01", "Monthly_1")]
    assert len(store.violations) == 1
    assert store.violations[0].startswith("Missing Monthly_2 for Bakery")


def test_monthly_first_visit_missing_skips_second():
    store = _store(capacity_limit=1)
    for day in store.working_days():
        if day["date"].day <= 15:
            store.add_visit(day, "B", _customer(f"fill-{day['date'].day}", "B", "Quarterly"), "Quarterly")
    assign_monthly(store, [_customer("Bakery", "A", "Monthly")], random.Random(0))
    assert store.violations == ["Missing Monthly_1 for Bakery"]
    assert store.visits_for("Bakery") == []


def test_monthly_order_is_reproducible_with_a_seed():
    customers = [_customer(f"M{n}", "A", "Monthly") for n in range(8)]
    first = build_schedule(customers, {"year": 2026, "month": 4}, seed=11)
    second = build_schedule(customers, {"year": 2026, "month": 4}, seed=11)
    assert first["assignments"] == second["assignments"]
    assert first["seed"] == 11
