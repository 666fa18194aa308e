import calendar
import csv
import json
import logging
import pathlib
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from visitplan.store import RULE_DEFAULTS, VIP

logger = logging.getLogger(__name__)


def load_json(path: str | pathlib.Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_schema(schema_path: str | pathlib.Path) -> Draft202012Validator:
    schema = load_json(schema_path)
    return Draft202012Validator(schema)


def parse_bool(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in {"true", "1", "yes", "y"}:
        return True
    if v in {"false", "0", "no", "n", ""}:
        return False
    return None


def _clean_customer(row: Dict[str, Any]) -> Dict[str, Any]:
    location = row.get("location")
    location = str(location).strip() if location is not None else ""
    force_vip = parse_bool(row.get("force_vip"))
    return {
        "name": str(row.get("name") or "").strip(),
        "team": str(row.get("team") or "").strip(),
        "frequency": str(row.get("frequency") or "").strip(),
        "location": location or None,
        "force_vip": force_vip if force_vip is not None else row.get("force_vip"),
    }


def parse_customers_csv(csv_path: str | pathlib.Path) -> List[Dict[str, Any]]:
    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        return [_clean_customer(row) for row in csv.DictReader(f)]


def parse_customers_json(json_path: str | pathlib.Path) -> List[Dict[str, Any]]:
    payload = load_json(json_path)
    if isinstance(payload, dict):
        payload = payload.get("customers")
    if not isinstance(payload, list):
        raise ValueError(f"{json_path}: expected a list of customers or {{'customers': [...]}}")
    return [_clean_customer(row) if isinstance(row, dict) else row for row in payload]


def load_customers(path: str | pathlib.Path) -> List[Dict[str, Any]]:
    path = pathlib.Path(path)
    if path.suffix.lower() == ".json":
        return parse_customers_json(path)
    return parse_customers_csv(path)


def validate_customers(customers: List[Any], schema_path: str | pathlib.Path) -> List[str]:
    validator = load_schema(schema_path)
    errors: List[str] = []
    # item-by-item so messages carry the record index
    for idx, customer in enumerate(customers):
        for err in validator.iter_errors([customer]):  # schema expects array
            field = ".".join(str(p) for p in list(err.path)[1:])
            prefix = f"customers[{idx}]" + (f".{field}" if field else "")
            errors.append(f"{prefix}: {err.message}")
    return errors


def validate_rules(rules: Dict[str, Any], schema_path: str | pathlib.Path) -> List[str]:
    validator = load_schema(schema_path)
    errors: List[str] = []
    for err in validator.iter_errors(rules):
        field = ".".join(str(p) for p in err.path)
        errors.append(f"{field}: {err.message}" if field else err.message)
    return errors


def apply_rule_defaults(rules: Dict[str, Any]) -> Dict[str, Any]:
    merged = {**RULE_DEFAULTS, **rules}
    merged["teams"] = list(merged.get("teams") or [])
    merged["team_aliases"] = dict(merged.get("team_aliases") or {})
    return merged


def check_rule_ranges(rules: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    gap_min, gap_max = int(rules["monthly_gap_min"]), int(rules["monthly_gap_max"])
    if gap_min > gap_max:
        errors.append(f"monthly_gap_min: {gap_min} is greater than monthly_gap_max {gap_max}")
    month_len = calendar.monthrange(int(rules["year"]), int(rules["month"]))[1]
    last_day = int(rules["monthly_first_visit_last_day"])
    if last_day > month_len:
        errors.append(
            f"monthly_first_visit_last_day: {last_day} is past the end of "
            f"{rules['year']}-{int(rules['month']):02d} ({month_len} days)"
        )
    return errors


def normalize_customers(customers: List[Dict[str, Any]], rules: Dict[str, Any]) -> tuple[List[Dict[str, Any]], List[str]]:
    """Map team spellings onto canonical names, apply ``force_vip`` and check
    name uniqueness. Returns the cleaned records and any structural errors."""
    aliases = {str(k).strip().lower(): str(v).strip() for k, v in (rules.get("team_aliases") or {}).items()}
    canonical = [str(t).strip() for t in rules.get("teams") or []]
    canonical_by_key = {t.lower(): t for t in canonical}

    errors: List[str] = []
    seen: Dict[str, int] = {}
    cleaned: List[Dict[str, Any]] = []
    for idx, customer in enumerate(customers):
        record = dict(customer)
        key = record["team"].strip().lower()
        team = aliases.get(key) or canonical_by_key.get(key) or record["team"].strip()
        if canonical and team not in canonical:
            errors.append(f"customers[{idx}].team: unknown team {record['team']!r}")
        record["team"] = team
        if record.get("force_vip") is True:
            record["frequency"] = VIP
        record["force_vip"] = bool(record.get("force_vip"))
        if record["name"] in seen:
            errors.append(
                f"customers[{idx}].name: duplicate customer {record['name']!r} (first at customers[{seen[record['name']]}])"
            )
        else:
            seen[record["name"]] = idx
        cleaned.append(record)
    return cleaned, errors


def load_and_validate(
    customers_path: str | pathlib.Path,
    rules_json: str | pathlib.Path,
    schemas_dir: str | pathlib.Path,
) -> tuple[List[Dict[str, Any]], Dict[str, Any]]:
    schemas_dir = pathlib.Path(schemas_dir)
    customers_schema = schemas_dir / "customers.schema.json"
    rules_schema = schemas_dir / "rules.schema.json"

    customers = load_customers(customers_path)
    rules = load_json(rules_json)
    if not isinstance(rules, dict):
        raise ValueError(f"{rules_json}: rules must be a JSON object")

    cerrs = validate_customers(customers, customers_schema)
    rerrs = validate_rules(rules, rules_schema)
    if not rerrs:
        rules = apply_rule_defaults(rules)
        rerrs = check_rule_ranges(rules)
    if not cerrs and not rerrs:
        customers, cerrs = normalize_customers(customers, rules)
    if cerrs or rerrs:
        msg = "\n".join(["CUSTOMERS ERRORS:"] + cerrs + ["", "RULES ERRORS:"] + rerrs)
        raise ValueError(msg)

    logger.info("loaded %d customers for %s-%02d", len(customers), rules["year"], int(rules["month"]))
    return customers, rules
