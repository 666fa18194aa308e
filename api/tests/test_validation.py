import json
import pathlib

import pytest

from visitplan.month import build_calendar, days_in_month
from visitplan.store import VIP
from visitplan.validation import load_and_validate, parse_bool

ROOT = pathlib.Path(__file__).parents[2]
SCHEMAS = ROOT / "packages/schemas"
RULES = ROOT / "samples/rules.json"


def _write_csv(tmp_path: pathlib.Path, lines) -> pathlib.Path:
    path = tmp_path / "customers.csv"
    path.write_text("\n".join(["name,team,frequency,location,force_vip", *lines]) + "\n", encoding="utf-8")
    return path


def test_load_and_validate_samples():
    customers, rules = load_and_validate(ROOT / "samples/customers.csv", RULES, SCHEMAS)
    assert isinstance(customers, list) and len(customers) == 20
    assert rules["year"] == 2026 and rules["month"] == 3
    by_name = {c["name"]: c for c in customers}
    assert by_name["EDR"]["frequency"] == VIP
    assert by_name["EDR"]["force_vip"] is True
    assert by_name["Nile Bakery"]["team"] == "Ahmed"
    assert by_name["Cairo Mall Food Court"]["team"] == "Ahmed"
    assert by_name["Maadi Grand Hotel"]["team"] == "Karim"
    assert {c["team"] for c in customers} == {"Ahmed", "Karim", "Samir", "Youssef"}


def test_rule_defaults_are_filled(tmp_path):
    rules_path = tmp_path / "rules.json"
    rules_path.write_text(json.dumps({"year": 2026, "month": 4}), encoding="utf-8")
    customers_path = _write_csv(tmp_path, ["Shop,A,Quarterly,,"])
    customers, rules = load_and_validate(customers_path, rules_path, SCHEMAS)
    assert rules["capacity_limit"] == 18
    assert rules["vip_day_team_cap"] == 2
    assert rules["monthly_gap_min"] == 12 and rules["monthly_gap_max"] == 16
    assert customers[0]["location"] is None
    assert customers[0]["force_vip"] is False


def test_unknown_team_is_rejected(tmp_path):
    customers_path = _write_csv(tmp_path, ["Shop,Zed,Quarterly,Giza,"])
    with pytest.raises(ValueError, match="unknown team 'Zed'"):
        load_and_validate(customers_path, RULES, SCHEMAS)


def test_duplicate_customer_name_is_rejected(tmp_path):
    customers_path = _write_csv(tmp_path, ["Shop,Karim,Quarterly,,", "Shop,Samir,Monthly,,"])
    with pytest.raises(ValueError, match="duplicate customer 'Shop'"):
        load_and_validate(customers_path, RULES, SCHEMAS)


def test_frequency_is_case_sensitive(tmp_path):
    customers_path = _write_csv(tmp_path, ["Shop,Karim,monthly,,"])
    with pytest.raises(ValueError, match=r"customers\[0\]\.frequency"):
        load_and_validate(customers_path, RULES, SCHEMAS)


def test_missing_team_names_the_field(tmp_path):
    customers_path = _write_csv(tmp_path, ["Shop,,Monthly,,"])
    with pytest.raises(ValueError, match=r"customers\[0\]\.team"):
        load_and_validate(customers_path, RULES, SCHEMAS)


def test_missing_month_in_rules(tmp_path):
    rules_path = tmp_path / "rules.json"
    rules_path.write_text(json.dumps({"year": 2026}), encoding="utf-8")
    customers_path = _write_csv(tmp_path, ["Shop,A,Quarterly,,"])
    with pytest.raises(ValueError, match="'month' is a required property"):
        load_and_validate(customers_path, rules_path, SCHEMAS)


def test_json_customers_with_force_vip(tmp_path):
    customers_path = tmp_path / "customers.json"
    customers_path.write_text(json.dumps([
        {"name": "HQ", "team": "kareem", "frequency": "Quarterly", "force_vip": True},
        {"name": "Shop", "team": "Karim", "frequency": "Monthly", "location": "Maadi"},
    ]), encoding="utf-8")
    customers, _ = load_and_validate(customers_path, RULES, SCHEMAS)
    assert customers[0]["frequency"] == VIP
    assert customers[0]["team"] == "Karim"
    assert customers[1]["frequency"] == "Monthly"
    assert customers[1]["location"] == "Maadi"


def test_missing_customers_file(tmp_path):
    with pytest.raises(OSError):
        load_and_validate(tmp_path / "nope.csv", RULES, SCHEMAS)


def test_parse_bool():
    assert parse_bool("YES") is True
    assert parse_bool(" 0 ") is False
    assert parse_bool("") is False
    assert parse_bool("maybe") is None
    assert parse_bool(None) is None


def test_calendar_marks_sundays_as_rest_days():
    assert len(days_in_month(2026, 2)) == 28
    calendar = build_calendar(2026, 3)
    assert len(calendar) == 31
    assert calendar[0]["date"].isoformat() == "2026-03-01"
    assert calendar[0]["is_working_day"] is False
    rest = [d["date"].day for d in calendar if not d["is_working_day"]]
    assert rest == [1, 8, 15, 22, 29]


def test_calendar_custom_rest_day():
    calendar = build_calendar(2026, 4, rest_weekday=4)
    rest = [d["date"].day for d in calendar if not d["is_working_day"]]
    assert rest == [3, 10, 17, 24]


def test_inverted_monthly_gap_is_rejected(tmp_path):
    rules_path = tmp_path / "rules.json"
    rules_path.write_text(
        json.dumps({"year": 2026, "month": 4, "monthly_gap_min": 16, "monthly_gap_max": 12}), encoding="utf-8"
    )
    customers_path = _write_csv(tmp_path, ["Shop,A,Monthly,,"])
    with pytest.raises(ValueError, match="monthly_gap_min: 16 is greater than monthly_gap_max 12"):
        load_and_validate(customers_path, rules_path, SCHEMAS)


def test_first_visit_cutoff_past_month_end(tmp_path):
    rules_path = tmp_path / "rules.json"
    rules_path.write_text(
        json.dumps({"year": 2026, "month": 2, "monthly_first_visit_last_day": 30}), encoding="utf-8"
    )
    customers_path = _write_csv(tmp_path, ["Shop,A,Monthly,,"])
    with pytest.raises(ValueError, match=r"past the end of 2026-02 \(28 days\)"):
        load_and_validate(customers_path, rules_path, SCHEMAS)
