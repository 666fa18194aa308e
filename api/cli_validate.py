import argparse
import logging
import pathlib
import sys

from visitplan.validation import load_and_validate


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate customers and rules.json")
    parser.add_argument("--customers", default=str(pathlib.Path(__file__).parents[1] / "samples/customers.csv"))
    parser.add_argument("--rules", default=str(pathlib.Path(__file__).parents[1] / "samples/rules.json"))
    parser.add_argument(
        "--schemas-dir",
        default=str(pathlib.Path(__file__).parents[1] / "packages/schemas"),
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        customers, rules = load_and_validate(args.customers, args.rules, args.schemas_dir)
    except (ValueError, OSError) as exc:
        logging.error("invalid input: %s", exc)
        sys.exit(1)
    teams = sorted({c["team"] for c in customers})
    print(f"OK: customers={len(customers)} teams={len(teams)} rules.year={rules.get('year')} rules.month={rules.get('month')}")


if __name__ == "__main__":
    main()
