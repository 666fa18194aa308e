import argparse
import logging
import pathlib
import sys

from visitplan.engine import build_schedule, to_csv
from visitplan.pdf import schedule_to_pdf
from visitplan.validation import load_and_validate
from visitplan.xlsx import schedule_to_xlsx

logger = logging.getLogger("visitplan.cli")


def write_reports(result: dict, out_dir: pathlib.Path, formats: list) -> list:
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = f"schedule_{result['year']}_{int(result['month']):02d}"
    written = []
    for fmt in formats:
        path = out_dir / f"{stem}.{fmt}"
        if fmt == "csv":
            path.write_text(to_csv(result["assignments"]), encoding="utf-8")
        elif fmt == "pdf":
            path.write_bytes(schedule_to_pdf(result))
        else:
            path.write_bytes(schedule_to_xlsx(result))
        logger.info("report written: %s", path)
        written.append(path)
    return written


def main() -> None:
    root = pathlib.Path(__file__).parents[1]
    parser = argparse.ArgumentParser(description="Build the monthly service visit schedule")
    parser.add_argument("--customers", default=str(root / "samples/customers.csv"))
    parser.add_argument("--rules", default=str(root / "samples/rules.json"))
    parser.add_argument("--schemas-dir", default=str(root / "packages/schemas"))
    parser.add_argument("--out-dir", default="output")
    parser.add_argument("--seed", type=int, default=None, help="seed for the Monthly customer shuffle")
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        choices=["xlsx", "pdf", "csv"],
        help="report format, repeatable (default: xlsx)",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        customers, rules = load_and_validate(args.customers, args.rules, args.schemas_dir)
        result = build_schedule(customers, rules, seed=args.seed)
        written = write_reports(result, pathlib.Path(args.out_dir), args.formats or ["xlsx"])
    except (ValueError, OSError) as exc:
        logger.error("CRITICAL ERROR: %s", exc)
        sys.exit(1)

    summary = result["summary"]
    print(f"Total Visits: {summary['total_visits']}")
    print(f"Validation: {result['validation_check']}")
    if not result["valid"]:
        print(f"Violations Found: {len(result['violations'])}")
        for message in result["violations"]:
            print(f" - {message}")
    print(f"Visits by Team: {summary['visits_by_team']}")
    print(f"Visits by Frequency: {summary['visits_by_frequency']}")
    for path in written:
        print(f"Report generated: {path}")


if __name__ == "__main__":
    main()
